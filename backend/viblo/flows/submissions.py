"""Content submission lifecycle from both sides of the marketplace.

Influencers apply with a review video, revise when asked and publish once
approved. Brands review pending submissions. Every status change is checked
against the allowed transitions before the remote update is issued.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from viblo.config import settings
from viblo.domain.submission_status import can_transition
from viblo.domain.validation import validate_video
from viblo.errors import FormValidationError, PermissionDeniedError
from viblo.models.campaign import CampaignStatus
from viblo.models.profile import SocialPlatform, UserType
from viblo.models.submission import (
    ContentSubmission,
    SubmissionReview,
    SubmissionStatus,
    VideoItem,
    VideoUpload,
)
from viblo.services.backend_service import BackendService
from viblo.services.gateway import DataGateway, utcnow_iso
from viblo.session import SessionContext

logger = logging.getLogger(__name__)


def _require_transition(current: SubmissionStatus, target: SubmissionStatus) -> None:
    if not can_transition(current, target):
        raise FormValidationError(
            f"A submission that is {current.value} cannot move to {target.value}",
            field="status",
        )


class SubmissionFlow:

    @classmethod
    async def _upload_review_video(
        cls, session: SessionContext, campaign_id: str, upload: VideoUpload
    ) -> str:
        path = f"{session.user_id}/{campaign_id}.{upload.extension}"
        return await DataGateway.upload(
            session.access_token,
            settings.video_bucket,
            path,
            upload.content,
            upload.content_type,
        )

    @classmethod
    async def apply(
        cls,
        session: SessionContext,
        campaign_id: str,
        upload: VideoUpload,
        message: Optional[str] = None,
    ) -> ContentSubmission:
        """Upload the review video and create a ``pending_review`` submission."""
        session.require_role(UserType.INFLUENCER)
        validate_video(upload, settings.max_video_bytes)

        token = session.access_token
        campaign = await DataGateway.get_campaign(token, campaign_id)
        if campaign.status != CampaignStatus.ACTIVE:
            raise FormValidationError("This campaign is not accepting submissions", field="campaign_id")
        if await DataGateway.find_submission(token, session.user_id, campaign_id):
            raise FormValidationError("You have already applied to this campaign", field="campaign_id")

        video_url = await cls._upload_review_video(session, campaign_id, upload)
        values: dict[str, Any] = {
            "influencer_id": session.user_id,
            "campaign_id": campaign_id,
            "status": SubmissionStatus.PENDING_REVIEW.value,
            "review_video_url": video_url,
        }
        if message and message.strip():
            values["message"] = message.strip()
        submission = await DataGateway.insert_submission(token, values)
        logger.info("Influencer %s applied to campaign %s", session.user_id, campaign_id)
        return submission

    @classmethod
    async def resubmit(
        cls, session: SessionContext, submission_id: str, upload: VideoUpload
    ) -> ContentSubmission:
        session.require_role(UserType.INFLUENCER)
        validate_video(upload, settings.max_video_bytes)

        submission = await cls._own_submission(session, submission_id)
        _require_transition(submission.status, SubmissionStatus.PENDING_REVIEW)

        video_url = await cls._upload_review_video(session, submission.campaign_id, upload)
        return await DataGateway.update_submission(
            session.access_token,
            submission_id,
            {"review_video_url": video_url, "status": SubmissionStatus.PENDING_REVIEW.value},
        )

    @classmethod
    async def list_videos_for_posting(
        cls,
        session: SessionContext,
        submission_id: str,
        platform: SocialPlatform,
    ) -> list[VideoItem]:
        """Published videos the influencer can link to an approved submission."""
        submission = await cls._own_submission(session, submission_id)
        if submission.status != SubmissionStatus.APPROVED:
            raise FormValidationError("Only approved submissions can be posted", field="status")
        return await BackendService.list_videos(platform, session.user_id)

    @classmethod
    async def mark_posted_live(
        cls, session: SessionContext, submission_id: str, video: VideoItem
    ) -> ContentSubmission:
        submission = await cls._own_submission(session, submission_id)
        _require_transition(submission.status, SubmissionStatus.POSTED_LIVE)
        updated = await DataGateway.update_submission(
            session.access_token,
            submission_id,
            {
                "video_id": video.id,
                "platform": video.platform,
                "public_post_url": video.url,
                "status": SubmissionStatus.POSTED_LIVE.value,
                "posted_at": utcnow_iso(),
            },
        )
        logger.info("Submission %s posted live at %s", submission_id, video.url)
        return updated

    @classmethod
    async def review_submission(
        cls, session: SessionContext, submission_id: str, review: SubmissionReview
    ) -> ContentSubmission:
        """Brand decision on a pending submission: approve or ask for a revision."""
        session.require_role(UserType.BRAND)
        token = session.access_token
        submission = await DataGateway.get_submission(token, submission_id)
        campaign = await DataGateway.get_campaign(token, submission.campaign_id)
        if campaign.brand_id != session.user_id:
            raise PermissionDeniedError("You can only review submissions to your own campaigns")

        if review.status not in (SubmissionStatus.APPROVED, SubmissionStatus.NEEDS_REVISION):
            raise FormValidationError("A review must approve or request a revision", field="status")
        _require_transition(submission.status, review.status)
        if review.status == SubmissionStatus.NEEDS_REVISION and not (review.brand_feedback or "").strip():
            raise FormValidationError("Please explain what needs to change", field="brand_feedback")

        values: dict[str, Any] = {"status": review.status.value}
        for key in ("brand_feedback", "rating", "justify", "message"):
            value = getattr(review, key)
            if value is not None:
                values[key] = value
        if review.status == SubmissionStatus.APPROVED:
            values["approved_at"] = utcnow_iso()
        return await DataGateway.update_submission(token, submission_id, values)

    @classmethod
    async def list_my_submissions(
        cls,
        session: SessionContext,
        status: Optional[SubmissionStatus] = None,
        search: str = "",
    ) -> list[dict[str, Any]]:
        """Influencer's submissions with their campaign, filtered by campaign title."""
        session.require_role(UserType.INFLUENCER)
        rows = await DataGateway.list_influencer_submissions(
            session.access_token, session.user_id, status
        )
        term = search.strip().lower()
        if not term:
            return rows
        return [
            row for row in rows
            if term in ((row.get("campaign") or {}).get("title") or "").lower()
        ]

    @classmethod
    async def _own_submission(cls, session: SessionContext, submission_id: str) -> ContentSubmission:
        submission = await DataGateway.get_submission(session.access_token, submission_id)
        if submission.influencer_id != session.user_id:
            raise PermissionDeniedError("This submission belongs to another user")
        return submission
