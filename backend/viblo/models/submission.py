"""Content submission models – an influencer's entry against a campaign."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

EXTENSION_PATTERN = re.compile(r"[a-z0-9]{1,5}")


def safe_extension(file_name: str, default: str) -> str:
    """Lower-cased extension of ``file_name``, or ``default`` unless it is 1-5 alphanumerics."""
    if "." not in file_name:
        return default
    extension = file_name.rsplit(".", 1)[-1].lower()
    return extension if EXTENSION_PATTERN.fullmatch(extension) else default


class SubmissionStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    POSTED_LIVE = "posted_live"
    COMPLETED = "completed"


class ContentSubmission(BaseModel):
    """A row of the ``content_submissions`` relation."""

    id: str
    influencer_id: str
    campaign_id: str
    status: SubmissionStatus
    review_video_url: Optional[str] = None
    brand_feedback: Optional[str] = None
    public_post_url: Optional[str] = None
    video_id: Optional[str] = None
    platform: Optional[str] = None
    view_count: Optional[float] = None
    like_count: Optional[float] = None
    comment_count: Optional[float] = None
    earned_amount: Optional[float] = None
    rating: Optional[float] = None
    message: Optional[str] = None
    justify: Optional[str] = None
    video_summary: Optional[str] = None
    match_percentage: Optional[float] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    posted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SubmissionReview(BaseModel):
    """A brand's decision on a pending submission."""

    status: SubmissionStatus
    brand_feedback: Optional[str] = None
    rating: Optional[float] = None
    justify: Optional[str] = None
    message: Optional[str] = None


class VideoItem(BaseModel):
    """A published video on the influencer's connected social account."""

    id: str
    platform: str
    title: str = ""
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    url: str
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    comment_count: Optional[int] = None
    published_at: Optional[datetime] = None


class VideoUpload(BaseModel):
    """An opaque media buffer picked by the user, ready for object storage."""

    content: bytes
    file_name: str = "video.mp4"
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return safe_extension(self.file_name, "mp4")

    @property
    def content_type(self) -> str:
        return self.mime_type or f"video/{self.extension}"

    @property
    def size(self) -> int:
        return len(self.content)
