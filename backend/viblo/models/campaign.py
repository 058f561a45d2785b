"""Campaign data models (Pydantic)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"


AVAILABLE_NICHES = [
    "Technology", "Gaming", "Sports", "Lifestyle", "Fashion",
    "Beauty", "Food", "Travel", "Fitness", "Music", "Education",
]

AVAILABLE_PLATFORMS = ["tiktok", "instagram", "youtube", "facebook", "twitter_x"]

AVAILABLE_LOCATIONS = [
    "United States", "Canada", "United Kingdom", "Australia",
    "Germany", "France", "Italy", "Spain", "Brazil", "Mexico",
    "India", "Japan", "South Korea", "Global",
]


class Campaign(BaseModel):
    """A row of the ``campaigns`` relation."""

    id: str
    brand_id: str
    title: str
    description: Optional[str] = None
    content_requirements: Optional[str] = None
    status: CampaignStatus = CampaignStatus.DRAFT
    total_budget: float = 0.0
    total_paid: float = 0.0
    rate_per_view: float = 0.0
    target_niches: Optional[list[str]] = None
    target_platforms: Optional[list[str]] = None
    target_audience_locations: Optional[list[str]] = None
    target_audience_age: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def cost_per_1k_views(self) -> float:
        return round(self.rate_per_view * 1000, 2)


class CampaignForm(BaseModel):
    """Transient state of the create/edit campaign form.

    Fields are kept as loose as the form inputs; validation happens in
    :mod:`viblo.domain.validation` before any remote call is issued.
    """

    title: str = ""
    description: str = ""
    content_requirements: str = ""
    status: CampaignStatus = CampaignStatus.DRAFT
    total_budget: float = 0.0
    cost_per_1k_views: float = 0.5
    rate_per_view: Optional[float] = None  # only used by the edit form
    target_niches: list[str] = Field(default_factory=list)
    target_platforms: list[str] = Field(default_factory=list)
    target_audience_locations: list[str] = Field(default_factory=list)
    target_audience_age: str = ""
    start_date: Optional[datetime] = None


class SubmissionStats(BaseModel):
    """Per-status submission counts for a campaign."""

    total: int = 0
    pending_review: int = 0
    needs_revision: int = 0
    approved: int = 0
    posted_live: int = 0
    completed: int = 0

    @property
    def has_active_submissions(self) -> bool:
        return (self.pending_review + self.approved + self.posted_live) > 0


class InfluencerPerformance(BaseModel):
    """One live/completed submission as shown on the campaign analytics screen."""

    submission_id: str
    influencer_id: str
    influencer_name: str = "Unknown"
    influencer_username: str = "unknown"
    influencer_avatar: Optional[str] = None
    submission_status: str
    view_count: float = 0.0
    like_count: float = 0.0
    comment_count: float = 0.0
    earned_amount: float = 0.0
    posted_at: Optional[datetime] = None


class CampaignStats(BaseModel):
    total_views: float = 0.0
    total_likes: float = 0.0
    total_comments: float = 0.0
    total_spent: float = 0.0
    active_influencers: int = 0
    total_submissions: int = 0


class CampaignAnalytics(BaseModel):
    campaign: Campaign
    stats: CampaignStats
    influencers: list[InfluencerPerformance] = Field(default_factory=list)
