"""Typed data gateway over the Supabase relations.

Every method is a single remote round trip (no retries, last write wins)
and returns pydantic models instead of raw rows.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from viblo.errors import NotFoundError
from viblo.models.campaign import Campaign
from viblo.models.messaging import ConversationSummary, Message
from viblo.models.payment import Payment, PaymentStatus, Payout, PayoutMethod
from viblo.models.profile import Profile, SocialLink, SocialPlatform
from viblo.models.submission import ContentSubmission, SubmissionStatus
from viblo.services.supabase_service import SupabaseService

logger = logging.getLogger(__name__)

CAMPAIGN_WITH_BRAND = "*, profile:profiles!campaigns_brand_id_fkey(*)"
SUBMISSION_WITH_INFLUENCER = "*, influencer:profiles!content_submissions_influencer_id_fkey(*)"
SUBMISSION_WITH_CAMPAIGN = "*, campaign:campaigns(*)"
PAYMENT_WITH_CAMPAIGN = "*, campaign:campaigns(title)"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(rows: Any) -> Optional[dict[str, Any]]:
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows


class DataGateway:
    """CRUD over campaigns, submissions, payments, payout methods, profiles,
    social links, oauth tokens and the inbox."""

    # ── Campaigns ────────────────────────────────────────────────

    @classmethod
    async def get_campaign(cls, token: str, campaign_id: str) -> Campaign:
        row = await (
            SupabaseService.table("campaigns", token)
            .select("*").eq("id", campaign_id).single().execute()
        )
        return Campaign.model_validate(row)

    @classmethod
    async def get_campaign_with_brand(
        cls, token: str, campaign_id: str
    ) -> tuple[Campaign, Optional[Profile]]:
        row = await (
            SupabaseService.table("campaigns", token)
            .select(CAMPAIGN_WITH_BRAND).eq("id", campaign_id).single().execute()
        )
        brand = row.get("profile")
        return Campaign.model_validate(row), Profile.model_validate(brand) if brand else None

    @classmethod
    async def get_brand_campaign(cls, token: str, campaign_id: str, brand_id: str) -> Campaign:
        row = await (
            SupabaseService.table("campaigns", token)
            .select("*").eq("id", campaign_id).eq("brand_id", brand_id).single().execute()
        )
        return Campaign.model_validate(row)

    @classmethod
    async def list_brand_campaigns(
        cls,
        token: str,
        brand_id: str,
        sort: str = "created_at",
        row_range: tuple[int, int] = (0, 9),
    ) -> list[Campaign]:
        rows = await (
            SupabaseService.table("campaigns", token)
            .select("*").eq("brand_id", brand_id)
            .order(sort, desc=True).range(*row_range).execute()
        )
        return [Campaign.model_validate(r) for r in rows or []]

    @classmethod
    async def search_campaigns_for_influencer(
        cls,
        token: str,
        search_term: str,
        niches: list[str],
        location: Optional[str],
        sort: str = "created_at",
        row_range: tuple[int, int] = (0, 9),
    ) -> list[Campaign]:
        rows = await SupabaseService.rpc(
            "search_campaigns_for_influencer",
            {
                "p_search_term": search_term,
                "p_target_niches": niches or None,
                "p_user_location": location or None,
            },
            access_token=token,
            order=(sort, True),
            row_range=row_range,
        )
        return [Campaign.model_validate(r) for r in rows or []]

    @classmethod
    async def insert_campaign(cls, token: str, values: dict[str, Any]) -> Campaign:
        row = await (
            SupabaseService.table("campaigns", token)
            .insert(values).select().single().execute()
        )
        logger.info("Created campaign %s", row.get("id"))
        return Campaign.model_validate(row)

    @classmethod
    async def update_campaign(cls, token: str, campaign_id: str, values: dict[str, Any]) -> Campaign:
        rows = await (
            SupabaseService.table("campaigns", token)
            .update(values).eq("id", campaign_id).select().execute()
        )
        row = _first(rows)
        if row is None:
            raise NotFoundError("campaign", campaign_id)
        return Campaign.model_validate(row)

    @classmethod
    async def delete_campaign(cls, token: str, campaign_id: str, brand_id: str) -> None:
        await (
            SupabaseService.table("campaigns", token)
            .delete().eq("id", campaign_id).eq("brand_id", brand_id).execute()
        )
        logger.info("Deleted campaign %s", campaign_id)

    # ── Submissions ──────────────────────────────────────────────

    @classmethod
    async def get_submission_status(
        cls, token: str, influencer_id: str, campaign_id: str
    ) -> Optional[SubmissionStatus]:
        status = await SupabaseService.rpc(
            "get_submission_status",
            {"p_influencer_id": influencer_id, "p_campaign_id": campaign_id},
            access_token=token,
        )
        return SubmissionStatus(status) if status else None

    @classmethod
    async def find_submission(
        cls, token: str, influencer_id: str, campaign_id: str
    ) -> Optional[ContentSubmission]:
        """The unique submission of an (influencer, campaign) pair, if any."""
        rows = await (
            SupabaseService.table("content_submissions", token)
            .select("*").eq("campaign_id", campaign_id)
            .eq("influencer_id", influencer_id).limit(1).execute()
        )
        row = _first(rows)
        return ContentSubmission.model_validate(row) if row else None

    @classmethod
    async def get_submission(cls, token: str, submission_id: str) -> ContentSubmission:
        row = await (
            SupabaseService.table("content_submissions", token)
            .select("*").eq("id", submission_id).single().execute()
        )
        return ContentSubmission.model_validate(row)

    @classmethod
    async def list_influencer_submissions(
        cls,
        token: str,
        influencer_id: str,
        status: Optional[SubmissionStatus] = None,
    ) -> list[dict[str, Any]]:
        """Submissions joined with their campaign, newest first."""
        query = (
            SupabaseService.table("content_submissions", token)
            .select(SUBMISSION_WITH_CAMPAIGN).eq("influencer_id", influencer_id)
        )
        if status is not None:
            query = query.eq("status", status)
        return await query.order("submitted_at", desc=True).execute() or []

    @classmethod
    async def list_campaign_submission_statuses(cls, token: str, campaign_id: str) -> list[str]:
        rows = await (
            SupabaseService.table("content_submissions", token)
            .select("status").eq("campaign_id", campaign_id).execute()
        )
        return [r["status"] for r in rows or []]

    @classmethod
    async def list_campaign_submissions(
        cls,
        token: str,
        campaign_id: str,
        statuses: Optional[list[SubmissionStatus]] = None,
    ) -> list[dict[str, Any]]:
        query = (
            SupabaseService.table("content_submissions", token)
            .select(SUBMISSION_WITH_INFLUENCER).eq("campaign_id", campaign_id)
        )
        if statuses:
            query = query.in_("status", statuses)
        return await query.execute() or []

    @classmethod
    async def insert_submission(cls, token: str, values: dict[str, Any]) -> ContentSubmission:
        row = await (
            SupabaseService.table("content_submissions", token)
            .insert(values).select().single().execute()
        )
        return ContentSubmission.model_validate(row)

    @classmethod
    async def update_submission(
        cls, token: str, submission_id: str, values: dict[str, Any]
    ) -> ContentSubmission:
        rows = await (
            SupabaseService.table("content_submissions", token)
            .update(values).eq("id", submission_id).select().execute()
        )
        row = _first(rows)
        if row is None:
            raise NotFoundError("submission", submission_id)
        return ContentSubmission.model_validate(row)

    @classmethod
    async def list_earned_amounts(cls, token: str, influencer_id: str) -> list[float]:
        rows = await (
            SupabaseService.table("content_submissions", token)
            .select("earned_amount").eq("influencer_id", influencer_id).execute()
        )
        return [float(r.get("earned_amount") or 0) for r in rows or []]

    # ── Payments ─────────────────────────────────────────────────

    @classmethod
    async def list_brand_payments(cls, token: str, brand_id: str) -> list[Payment]:
        rows = await (
            SupabaseService.table("payments", token)
            .select(PAYMENT_WITH_CAMPAIGN).eq("brand_id", brand_id)
            .order("created_at", desc=True).execute()
        )
        payments = []
        for row in rows or []:
            campaign = row.get("campaign") or {}
            payments.append(
                Payment.model_validate(
                    {**row, "campaign_title": campaign.get("title") or "Deleted Campaign"}
                )
            )
        return payments

    @classmethod
    async def has_succeeded_payment(cls, token: str, campaign_id: str) -> bool:
        rows = await (
            SupabaseService.table("payments", token)
            .select("id").eq("campaign_id", campaign_id)
            .eq("status", PaymentStatus.SUCCEEDED).limit(1).execute()
        )
        return bool(rows)

    # ── Payouts ──────────────────────────────────────────────────

    @classmethod
    async def list_payouts(cls, token: str, influencer_id: str) -> list[Payout]:
        rows = await (
            SupabaseService.table("payouts", token)
            .select("*").eq("influencer_id", influencer_id)
            .order("initiated_at", desc=True).execute()
        )
        return [Payout.model_validate(r) for r in rows or []]

    # ── Payout methods ───────────────────────────────────────────

    @classmethod
    async def list_payout_methods(cls, token: str, user_id: str) -> list[PayoutMethod]:
        rows = await (
            SupabaseService.table("payout_methods", token)
            .select("*").eq("user_id", user_id).execute()
        )
        return [PayoutMethod.model_validate(r) for r in rows or []]

    @classmethod
    async def get_payout_method(cls, token: str, method_id: str) -> PayoutMethod:
        row = await (
            SupabaseService.table("payout_methods", token)
            .select("*").eq("id", method_id).single().execute()
        )
        return PayoutMethod.model_validate(row)

    @classmethod
    async def insert_payout_method(cls, token: str, values: dict[str, Any]) -> PayoutMethod:
        row = await (
            SupabaseService.table("payout_methods", token)
            .insert(values).select().single().execute()
        )
        return PayoutMethod.model_validate(row)

    @classmethod
    async def update_payout_method(
        cls, token: str, method_id: str, values: dict[str, Any]
    ) -> PayoutMethod:
        rows = await (
            SupabaseService.table("payout_methods", token)
            .update(values).eq("id", method_id).select().execute()
        )
        row = _first(rows)
        if row is None:
            raise NotFoundError("payout method", method_id)
        return PayoutMethod.model_validate(row)

    @classmethod
    async def delete_payout_method(cls, token: str, method_id: str) -> None:
        await SupabaseService.table("payout_methods", token).delete().eq("id", method_id).execute()

    # ── Profiles ─────────────────────────────────────────────────

    @classmethod
    async def get_profile(cls, token: str, user_id: str) -> Profile:
        row = await (
            SupabaseService.table("profiles", token)
            .select("*").eq("id", user_id).single().execute()
        )
        return Profile.model_validate(row)

    @classmethod
    async def update_profile(cls, token: str, user_id: str, values: dict[str, Any]) -> Profile:
        rows = await (
            SupabaseService.table("profiles", token)
            .update(values).eq("id", user_id).select().execute()
        )
        row = _first(rows)
        if row is None:
            raise NotFoundError("profile", user_id)
        return Profile.model_validate(row)

    @classmethod
    async def upsert_profile(cls, token: str, values: dict[str, Any]) -> Profile:
        row = await (
            SupabaseService.table("profiles", token)
            .upsert(values).select().single().execute()
        )
        return Profile.model_validate(row)

    @classmethod
    async def search_creators(
        cls,
        token: str,
        search_term: str,
        niches: list[str],
        sort: str = "total_followers",
        row_range: tuple[int, int] = (0, 9),
    ) -> list[dict[str, Any]]:
        return await SupabaseService.rpc(
            "search_influencers_for_brand",
            {"p_search_term": search_term, "p_target_niches": niches or None},
            access_token=token,
            order=(sort, True),
            row_range=row_range,
        ) or []

    # ── Social links & OAuth tokens ──────────────────────────────

    @classmethod
    async def list_social_links(cls, token: str, user_id: str) -> list[SocialLink]:
        rows = await (
            SupabaseService.table("social_links", token)
            .select("*").eq("user_id", user_id).execute()
        )
        return [SocialLink.model_validate(r) for r in rows or []]

    @classmethod
    async def find_social_link(
        cls, token: str, user_id: str, platform: SocialPlatform
    ) -> Optional[SocialLink]:
        rows = await (
            SupabaseService.table("social_links", token)
            .select("*").eq("user_id", user_id).eq("platform", platform).limit(1).execute()
        )
        row = _first(rows)
        return SocialLink.model_validate(row) if row else None

    @classmethod
    async def delete_social_link(cls, token: str, user_id: str, platform: SocialPlatform) -> None:
        await (
            SupabaseService.table("social_links", token)
            .delete().eq("user_id", user_id).eq("platform", platform).execute()
        )

    @classmethod
    async def delete_oauth_tokens(cls, token: str, user_id: str, platform: SocialPlatform) -> None:
        await (
            SupabaseService.table("oauth_tokens", token)
            .delete().eq("user_id", user_id).eq("platform", platform).execute()
        )

    # ── Inbox ────────────────────────────────────────────────────

    @classmethod
    async def list_conversations(cls, token: str) -> list[ConversationSummary]:
        rows = await SupabaseService.rpc("get_user_conversations", access_token=token)
        return [ConversationSummary.model_validate(r) for r in rows or []]

    @classmethod
    async def create_or_get_conversation(cls, token: str, target_user_id: str) -> str:
        return await SupabaseService.rpc(
            "create_or_get_conversation",
            {"target_user_id": target_user_id},
            access_token=token,
        )

    @classmethod
    async def list_messages(cls, token: str, conversation_id: str) -> list[Message]:
        rows = await (
            SupabaseService.table("messages", token)
            .select("*").eq("conversation_id", conversation_id)
            .order("created_at").execute()
        )
        return [Message.model_validate(r) for r in rows or []]

    @classmethod
    async def other_participant_id(cls, token: str, conversation_id: str, user_id: str) -> str:
        row = await (
            SupabaseService.table("conversation_participants", token)
            .select("user_id").eq("conversation_id", conversation_id)
            .neq("user_id", user_id).single().execute()
        )
        return row["user_id"]

    @classmethod
    async def mark_messages_read(cls, token: str, conversation_id: str, sender_id: str) -> None:
        await (
            SupabaseService.table("messages", token)
            .update({"is_read": True})
            .eq("conversation_id", conversation_id)
            .eq("sender_id", sender_id)
            .eq("is_read", False)
            .execute()
        )

    @classmethod
    async def insert_message(cls, token: str, values: dict[str, Any]) -> Message:
        row = await (
            SupabaseService.table("messages", token)
            .insert(values).select().single().execute()
        )
        return Message.model_validate(row)

    # ── Storage ──────────────────────────────────────────────────

    @classmethod
    async def upload(
        cls, token: str, bucket: str, path: str, content: bytes, content_type: str
    ) -> str:
        return await SupabaseService.upload(bucket, path, content, content_type, access_token=token)
