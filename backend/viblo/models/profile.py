"""Profile and social-link models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from viblo.models.submission import safe_extension


class UserType(str, Enum):
    BRAND = "brand"
    INFLUENCER = "influencer"


class SocialPlatform(str, Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    FACEBOOK = "facebook"
    SNAPCHAT = "snapchat"
    TWITTER_X = "twitter_x"


# Platforms the companion backend can run an OAuth flow for.
CONNECTABLE_PLATFORMS = (SocialPlatform.INSTAGRAM, SocialPlatform.TIKTOK, SocialPlatform.YOUTUBE)

# Platforms whose OAuth token is revoked upstream before disconnecting.
REVOCABLE_PLATFORMS = (SocialPlatform.TIKTOK, SocialPlatform.YOUTUBE)


class Profile(BaseModel):
    """A row of the ``profiles`` relation."""

    id: str
    user_type: UserType
    username: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    website_url: Optional[str] = None
    location: Optional[str] = None
    niches: Optional[list[str]] = None
    is_verified: bool = False
    push_token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        if self.user_type == UserType.BRAND and self.company_name:
            return self.company_name
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username


class ProfileUpdate(BaseModel):
    """Fields editable from the profile edit screen."""

    username: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    website_url: Optional[str] = None


class OnboardingForm(BaseModel):
    user_type: UserType
    username: str = ""
    bio: str = ""
    website_url: str = ""
    location: str = ""
    push_token: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    niches: list[str] = Field(default_factory=list)
    company_name: str = ""
    industry: Optional[str] = None


class SocialLink(BaseModel):
    """A row of the ``social_links`` relation."""

    id: Optional[str] = None
    user_id: str
    platform: SocialPlatform
    url: Optional[str] = None
    handle: Optional[str] = None
    follower_count: Optional[float] = None
    total_views_count: Optional[float] = None
    total_likes_count: Optional[float] = None
    total_comments_count: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConnectionOutcome(BaseModel):
    platform: SocialPlatform
    connected: bool
    cancelled: bool = False
    attempts: int = 0
    link: Optional[SocialLink] = None


class AvatarUpload(BaseModel):
    """Picked profile image bytes."""

    content: bytes
    file_name: str = "avatar.jpg"
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return safe_extension(self.file_name, "jpg")

    @property
    def content_type(self) -> str:
        return self.mime_type or f"image/{self.extension}"


# Platforms the companion backend aggregates audience metrics for.
STATS_PLATFORMS = (SocialPlatform.YOUTUBE, SocialPlatform.INSTAGRAM, SocialPlatform.TIKTOK)


class PlatformStats(BaseModel):
    """Audience metrics of one connected account."""

    platform: SocialPlatform
    username: str = ""
    handle: str = ""
    profile_url: str = ""
    followers: int = 0
    views: int = 0
    likes: int = 0
    comments: int = 0


class AudienceTotals(BaseModel):
    platforms: list[PlatformStats] = Field(default_factory=list)
    total_followers: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0

    @classmethod
    def from_platforms(cls, platforms: list[PlatformStats], **extra) -> AudienceTotals:
        return cls(
            platforms=platforms,
            total_followers=sum(p.followers for p in platforms),
            total_views=sum(p.views for p in platforms),
            total_likes=sum(p.likes for p in platforms),
            total_comments=sum(p.comments for p in platforms),
            **extra,
        )


class ProfileAnalytics(AudienceTotals):
    """The signed-in influencer's own dashboard."""

    earnings: float = 0.0
    last_updated: Optional[datetime] = None


class PublicProfile(AudienceTotals):
    """What other users see of a profile."""

    profile: Profile
    display_name: str = ""
