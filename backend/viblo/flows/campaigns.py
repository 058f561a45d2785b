"""Campaign screens: list, detail, create, edit and analytics.

Campaigns are always inserted as drafts with nothing paid. Moving a campaign
to ``active`` goes through the payment flow; the backend flips the status once
the payment is confirmed.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from viblo.config import settings
from viblo.domain.budget import (
    BudgetProgress,
    budget_progress,
    can_edit_financials,
    campaign_analytics,
    submission_stats,
)
from viblo.domain.rates import ReachEstimate, clamp_cost, estimate_reach, snap_cost
from viblo.domain.submission_status import StatusProjection, project_submission
from viblo.domain.validation import validate_campaign_form
from viblo.errors import FormValidationError, NotFoundError
from viblo.models.campaign import (
    Campaign,
    CampaignAnalytics,
    CampaignForm,
    CampaignStatus,
    SubmissionStats,
)
from viblo.models.profile import Profile, UserType
from viblo.models.submission import SubmissionStatus
from viblo.services.gateway import DataGateway, utcnow_iso
from viblo.session import SessionContext

logger = logging.getLogger(__name__)

NextStep = Literal["payment", "detail"]


class CampaignPage(BaseModel):
    campaigns: list[Campaign] = Field(default_factory=list)
    page: int = 0
    has_more: bool = False


class CampaignDetail(BaseModel):
    """Everything the campaign detail screen renders."""

    campaign: Optional[Campaign] = None
    brand: Optional[Profile] = None
    budget: Optional[BudgetProgress] = None
    reach: Optional[ReachEstimate] = None
    submission_status: Optional[SubmissionStatus] = None
    projection: StatusProjection
    stats: Optional[SubmissionStats] = None
    can_edit_financials: bool = False


class CampaignSaveResult(BaseModel):
    campaign: Campaign
    next_step: NextStep = "detail"
    payment_required: bool = False


def _form_values(form: CampaignForm) -> dict[str, Any]:
    return {
        "title": form.title.strip(),
        "description": form.description.strip() or None,
        "content_requirements": form.content_requirements.strip() or None,
        "target_niches": form.target_niches,
        "target_platforms": form.target_platforms,
        "target_audience_locations": form.target_audience_locations or None,
        "target_audience_age": form.target_audience_age or None,
        "start_date": form.start_date.isoformat() if form.start_date else None,
    }


class CampaignFlow:
    """Orchestrates the campaign screens for brands and influencers."""

    @classmethod
    async def list_campaigns(
        cls,
        session: SessionContext,
        page: int = 0,
        search: str = "",
        niches: Optional[list[str]] = None,
        location: Optional[str] = None,
        sort: str = "created_at",
        loaded: Optional[list[Campaign]] = None,
    ) -> CampaignPage:
        """Fetch one page and append it to ``loaded``, dropping ids already shown.

        Brands see their own campaigns. Influencers see the campaigns matched
        to their niches and location (explicit filters win over the profile).
        """
        size = settings.campaign_page_size
        row_range = (page * size, (page + 1) * size - 1)

        if session.is_brand:
            rows = await DataGateway.list_brand_campaigns(
                session.access_token, session.user_id, sort=sort, row_range=row_range
            )
        else:
            profile = session.profile
            rows = await DataGateway.search_campaigns_for_influencer(
                session.access_token,
                search.strip(),
                niches if niches is not None else (profile.niches if profile else None) or [],
                location if location is not None else (profile.location if profile else None),
                sort=sort,
                row_range=row_range,
            )

        campaigns = list(loaded or [])
        seen = {c.id for c in campaigns}
        for campaign in rows:
            if campaign.id not in seen:
                seen.add(campaign.id)
                campaigns.append(campaign)
        return CampaignPage(campaigns=campaigns, page=page, has_more=len(rows) == size)

    @classmethod
    async def load_campaign_detail(cls, session: SessionContext, campaign_id: str) -> CampaignDetail:
        role = session.role or UserType.INFLUENCER
        try:
            campaign, brand = await DataGateway.get_campaign_with_brand(
                session.access_token, campaign_id
            )
        except NotFoundError:
            logger.warning("Campaign %s not found", campaign_id)
            return CampaignDetail(projection=project_submission(None, role, campaign_loaded=False))

        detail = CampaignDetail(
            campaign=campaign,
            brand=brand,
            budget=budget_progress(campaign.total_budget, campaign.total_paid),
            reach=estimate_reach(campaign.total_budget, campaign.cost_per_1k_views),
            projection=project_submission(None, role),
        )

        if role == UserType.BRAND:
            statuses = await DataGateway.list_campaign_submission_statuses(
                session.access_token, campaign_id
            )
            detail.stats = submission_stats(statuses)
            detail.can_edit_financials = (
                campaign.brand_id == session.user_id
                and can_edit_financials(campaign, detail.stats)
            )
        else:
            detail.submission_status = await DataGateway.get_submission_status(
                session.access_token, session.user_id, campaign_id
            )
            detail.projection = project_submission(detail.submission_status, role)
        return detail

    @classmethod
    async def create_campaign(cls, session: SessionContext, form: CampaignForm) -> CampaignSaveResult:
        session.require_role(UserType.BRAND)
        validate_campaign_form(form)

        cost = clamp_cost(snap_cost(form.cost_per_1k_views), form.total_budget)
        reach = estimate_reach(form.total_budget, cost)
        values = {
            **_form_values(form),
            "brand_id": session.user_id,
            "status": CampaignStatus.DRAFT.value,
            "total_budget": form.total_budget,
            "total_paid": 0,
            "rate_per_view": reach.rate_per_view,
        }
        campaign = await DataGateway.insert_campaign(session.access_token, values)

        wants_active = form.status == CampaignStatus.ACTIVE
        return CampaignSaveResult(
            campaign=campaign,
            next_step="payment" if wants_active else "detail",
            payment_required=wants_active,
        )

    @classmethod
    async def edit_campaign(
        cls, session: SessionContext, campaign_id: str, form: CampaignForm
    ) -> CampaignSaveResult:
        session.require_role(UserType.BRAND)
        validate_campaign_form(form, editing=True)

        token = session.access_token
        campaign = await DataGateway.get_brand_campaign(token, campaign_id, session.user_id)
        stats = submission_stats(await DataGateway.list_campaign_submission_statuses(token, campaign_id))

        values = _form_values(form)
        values["updated_at"] = utcnow_iso()
        if can_edit_financials(campaign, stats):
            values["total_budget"] = form.total_budget
            values["rate_per_view"] = form.rate_per_view
        elif (
            form.total_budget != campaign.total_budget
            or form.rate_per_view != campaign.rate_per_view
        ):
            raise FormValidationError(
                "Budget and rate can no longer be changed for this campaign",
                field="total_budget",
            )

        payment_required = False
        if form.status != campaign.status:
            activating_draft = (
                campaign.status == CampaignStatus.DRAFT
                and form.status == CampaignStatus.ACTIVE
            )
            if activating_draft and not await DataGateway.has_succeeded_payment(token, campaign_id):
                payment_required = True
            else:
                values["status"] = form.status.value

        updated = await DataGateway.update_campaign(token, campaign_id, values)
        logger.info("Updated campaign %s (payment required: %s)", campaign_id, payment_required)
        return CampaignSaveResult(
            campaign=updated,
            next_step="payment" if payment_required else "detail",
            payment_required=payment_required,
        )

    @classmethod
    async def delete_campaign(cls, session: SessionContext, campaign_id: str) -> None:
        """Delete an own campaign; refused while submissions are in flight."""
        session.require_role(UserType.BRAND)
        token = session.access_token
        await DataGateway.get_brand_campaign(token, campaign_id, session.user_id)
        stats = submission_stats(await DataGateway.list_campaign_submission_statuses(token, campaign_id))
        if stats.has_active_submissions:
            raise FormValidationError(
                "This campaign has active submissions and cannot be deleted. "
                "Please wait until all submissions are completed or cancelled.",
                field="campaign_id",
            )
        await DataGateway.delete_campaign(token, campaign_id, session.user_id)

    @classmethod
    async def load_campaign_analytics(
        cls, session: SessionContext, campaign_id: str
    ) -> CampaignAnalytics:
        session.require_role(UserType.BRAND)
        token = session.access_token
        campaign = await DataGateway.get_brand_campaign(token, campaign_id, session.user_id)
        rows = await DataGateway.list_campaign_submissions(
            token,
            campaign_id,
            statuses=[SubmissionStatus.POSTED_LIVE, SubmissionStatus.COMPLETED],
        )
        return campaign_analytics(campaign, rows)
