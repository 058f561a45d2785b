"""Campaign list, detail, create/edit, analytics and the rate calculator."""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from viblo.domain.rates import (
    clamp_cost,
    cost_bounds,
    estimate_reach,
    format_views,
    snap_cost,
    step_cost,
)
from viblo.flows.campaigns import CampaignFlow
from viblo.models.campaign import (
    AVAILABLE_LOCATIONS,
    AVAILABLE_NICHES,
    AVAILABLE_PLATFORMS,
    Campaign,
    CampaignForm,
)
from viblo.session import SessionContext
from viblo.api.deps import get_session

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


class StepRequest(BaseModel):
    cost_per_1k_views: float
    direction: Literal[1, -1]
    total_budget: float


class LoadedCampaigns(BaseModel):
    loaded: list[Campaign] = []


# ── Form helpers (static paths, registered before /{campaign_id}) ──


@router.get("/options")
async def form_options():
    """Choices offered by the campaign form's targeting pickers."""
    return {
        "niches": AVAILABLE_NICHES,
        "platforms": AVAILABLE_PLATFORMS,
        "locations": AVAILABLE_LOCATIONS,
    }


@router.get("/estimate")
async def estimate(total_budget: float, cost_per_1k_views: float):
    """Reach estimate card for the budget form."""
    cost = clamp_cost(snap_cost(cost_per_1k_views), total_budget)
    reach = estimate_reach(total_budget, cost)
    low, high = cost_bounds(total_budget)
    return {
        "cost_per_1k_views": cost,
        "min_cost": low,
        "max_cost": high,
        "rate_per_view": reach.rate_per_view,
        "total_views": reach.total_views,
        "total_views_label": format_views(reach.total_views),
        "blocks_1k": reach.blocks_1k,
    }


@router.post("/step")
async def step(data: StepRequest):
    return {"cost_per_1k_views": step_cost(data.cost_per_1k_views, data.direction, data.total_budget)}


# ── Campaigns ──────────────────────────────────────────────────────


@router.get("")
async def list_campaigns(
    page: int = 0,
    search: str = "",
    niches: Optional[list[str]] = Query(default=None),
    location: Optional[str] = None,
    sort: str = "created_at",
    session: SessionContext = Depends(get_session),
):
    return await CampaignFlow.list_campaigns(
        session, page=page, search=search, niches=niches, location=location, sort=sort
    )


@router.post("/more")
async def load_more(
    data: LoadedCampaigns,
    page: int = 1,
    search: str = "",
    sort: str = "created_at",
    session: SessionContext = Depends(get_session),
):
    """Next page merged into the already loaded list, without duplicates."""
    return await CampaignFlow.list_campaigns(
        session, page=page, search=search, sort=sort, loaded=data.loaded
    )


@router.post("")
async def create_campaign(form: CampaignForm, session: SessionContext = Depends(get_session)):
    return await CampaignFlow.create_campaign(session, form)


@router.get("/{campaign_id}")
async def get_campaign(campaign_id: str, session: SessionContext = Depends(get_session)):
    return await CampaignFlow.load_campaign_detail(session, campaign_id)


@router.put("/{campaign_id}")
async def edit_campaign(
    campaign_id: str, form: CampaignForm, session: SessionContext = Depends(get_session)
):
    return await CampaignFlow.edit_campaign(session, campaign_id, form)


@router.delete("/{campaign_id}")
async def delete_campaign(campaign_id: str, session: SessionContext = Depends(get_session)):
    await CampaignFlow.delete_campaign(session, campaign_id)
    return {"status": "deleted", "id": campaign_id}


@router.get("/{campaign_id}/analytics")
async def campaign_analytics(campaign_id: str, session: SessionContext = Depends(get_session)):
    return await CampaignFlow.load_campaign_analytics(session, campaign_id)
