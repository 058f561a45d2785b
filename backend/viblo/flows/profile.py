"""Profile edit, onboarding, auth, audience metrics and account deletion."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from viblo.config import settings
from viblo.domain.validation import (
    validate_avatar,
    validate_credentials,
    validate_new_password,
    validate_onboarding,
    validate_profile_update,
)
from viblo.errors import FormValidationError, RemoteCallError
from viblo.models.payment import PayoutStatus
from viblo.models.profile import (
    STATS_PLATFORMS,
    AvatarUpload,
    OnboardingForm,
    PlatformStats,
    Profile,
    ProfileAnalytics,
    ProfileUpdate,
    PublicProfile,
    UserType,
)
from viblo.services.backend_service import BackendService
from viblo.services.gateway import DataGateway, utcnow_iso
from viblo.services.supabase_service import SupabaseService
from viblo.session import SessionContext

logger = logging.getLogger(__name__)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class ProfileFlow:

    @classmethod
    async def upload_avatar(cls, session: SessionContext, avatar: AvatarUpload) -> str:
        """Store the image and return its public URL with a cache-busting query."""
        path = f"{session.user_id}/profile_image.{avatar.extension}"
        url = await DataGateway.upload(
            session.access_token,
            settings.avatar_bucket,
            path,
            avatar.content,
            avatar.content_type,
        )
        return f"{url}?t={int(time.time() * 1000)}"

    @classmethod
    async def update_profile(
        cls,
        session: SessionContext,
        update: ProfileUpdate,
        avatar: Optional[AvatarUpload] = None,
    ) -> Profile:
        validate_profile_update(update)
        if avatar is not None:
            validate_avatar(avatar, settings.max_avatar_bytes)
        values: dict[str, Any] = {
            "username": update.username.strip(),
            "first_name": _blank_to_none(update.first_name),
            "last_name": _blank_to_none(update.last_name),
            "bio": _blank_to_none(update.bio),
            "website_url": _blank_to_none(update.website_url),
            "updated_at": utcnow_iso(),
        }
        if avatar is not None:
            values["avatar_url"] = await cls.upload_avatar(session, avatar)

        profile = await DataGateway.update_profile(session.access_token, session.user_id, values)
        session.profile = profile
        return profile

    @classmethod
    async def complete_onboarding(
        cls,
        session: SessionContext,
        form: OnboardingForm,
        avatar: Optional[AvatarUpload] = None,
    ) -> Profile:
        validate_onboarding(form)
        values: dict[str, Any] = {
            "id": session.user_id,
            "username": form.username.strip(),
            "user_type": form.user_type.value,
            "bio": form.bio.strip() or None,
            "website_url": form.website_url.strip() or None,
            "location": form.location.strip() or None,
            "push_token": form.push_token or None,
            "updated_at": utcnow_iso(),
        }
        if form.user_type == UserType.INFLUENCER:
            values["first_name"] = form.first_name.strip()
            values["last_name"] = form.last_name.strip()
            values["niches"] = form.niches or None
        else:
            values["company_name"] = form.company_name.strip()
            values["industry"] = form.industry or None
        if avatar is not None:
            values["avatar_url"] = await cls.upload_avatar(session, avatar)

        profile = await DataGateway.upsert_profile(session.access_token, values)
        session.profile = profile
        logger.info("Onboarded %s as %s", session.user_id, form.user_type.value)
        return profile

    @classmethod
    async def set_push_token(cls, session: SessionContext, push_token: Optional[str]) -> Profile:
        """Store the device token, or clear it (``None``) to turn notifications off."""
        profile = await DataGateway.update_profile(
            session.access_token, session.user_id, {"push_token": push_token}
        )
        session.profile = profile
        return profile

    @classmethod
    async def delete_account(cls, session: SessionContext) -> None:
        await BackendService.delete_account(session.user_id)
        try:
            await session.sign_out()
        except RemoteCallError as e:
            # the auth user is already gone server-side
            logger.warning("Sign out after account deletion failed: %s", e.message)
            session.profile = None

    # ── Email and password ──────────────────────────────────────────

    @classmethod
    async def sign_up(cls, email: str, password: str) -> Optional[SessionContext]:
        email = validate_credentials(email, password, settings.min_password_length)
        return await SessionContext.sign_up(email, password)

    @classmethod
    async def request_password_reset(cls, email: str) -> None:
        """Email a reset link that reopens the app on its reset screen."""
        email = email.strip()
        if not email:
            raise FormValidationError("Please enter your email address", field="email")
        await SupabaseService.recover(email, settings.password_reset_url)

    @classmethod
    async def change_password(
        cls, session: SessionContext, password: str, confirm_password: str
    ) -> Optional[Profile]:
        """Set a new password; returns the profile so the caller can route to onboarding."""
        validate_new_password(password, confirm_password, settings.min_password_length)
        await session.update_password(password)
        return session.profile

    # ── Audience metrics ────────────────────────────────────────────

    @classmethod
    async def _platform_stats(cls, user_id: str) -> list[PlatformStats]:
        """Metrics of every connected platform; a platform that fails is left out."""
        platforms = []
        for platform in STATS_PLATFORMS:
            try:
                platforms.append(await BackendService.platform_stats(platform, user_id))
            except RemoteCallError as e:
                logger.warning("No %s metrics for %s: %s", platform.value, user_id, e.message)
        return platforms

    @classmethod
    async def profile_analytics(cls, session: SessionContext) -> ProfileAnalytics:
        session.require_role(UserType.INFLUENCER)
        platforms = await cls._platform_stats(session.user_id)
        payouts = await DataGateway.list_payouts(session.access_token, session.user_id)
        earnings = sum(p.amount for p in payouts if p.status == PayoutStatus.COMPLETED)
        return ProfileAnalytics.from_platforms(
            platforms,
            earnings=round(earnings, 2),
            last_updated=datetime.now(timezone.utc),
        )

    @classmethod
    async def public_profile(cls, session: SessionContext, user_id: str) -> PublicProfile:
        profile = await DataGateway.get_profile(session.access_token, user_id)
        platforms = await cls._platform_stats(user_id)
        return PublicProfile.from_platforms(
            platforms, profile=profile, display_name=profile.display_name
        )
