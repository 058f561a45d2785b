"""Explicit session context passed into every flow.

Holds the access token for row-level security, the auth user id and the
signed-in user's profile. Nothing here is process-global.
"""

from __future__ import annotations

import logging
from typing import Optional

from viblo.errors import NotFoundError, PermissionDeniedError
from viblo.models.profile import Profile, UserType
from viblo.services.gateway import DataGateway
from viblo.services.supabase_service import SupabaseService

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(
        self,
        access_token: str,
        user_id: str,
        email: Optional[str] = None,
        profile: Optional[Profile] = None,
    ) -> None:
        self.access_token = access_token
        self.user_id = user_id
        self.email = email
        self.profile = profile

    @classmethod
    async def sign_in(cls, email: str, password: str) -> SessionContext:
        data = await SupabaseService.sign_in_with_password(email, password)
        user = data.get("user") or {}
        session = cls(access_token=data["access_token"], user_id=user["id"], email=user.get("email"))
        await session.refresh_profile()
        logger.info("Signed in user %s", session.user_id)
        return session

    @classmethod
    async def sign_up(
        cls, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[SessionContext]:
        """Register a user. ``None`` while the address still awaits confirmation."""
        data = await SupabaseService.sign_up(email, password, redirect_to)
        token = data.get("access_token")
        if not token:
            logger.info("Sign up of %s awaits email confirmation", (data.get("user") or data).get("id"))
            return None
        user = data.get("user") or {}
        session = cls(access_token=token, user_id=user["id"], email=user.get("email"))
        await session.refresh_profile()
        logger.info("Signed up user %s", session.user_id)
        return session

    @classmethod
    async def from_access_token(cls, access_token: str) -> SessionContext:
        user = await SupabaseService.get_user(access_token)
        session = cls(access_token=access_token, user_id=user["id"], email=user.get("email"))
        await session.refresh_profile()
        return session

    async def refresh_profile(self) -> Optional[Profile]:
        """Reload the profile row; a user who has not onboarded yet has none."""
        try:
            self.profile = await DataGateway.get_profile(self.access_token, self.user_id)
        except NotFoundError:
            self.profile = None
        return self.profile

    async def update_password(self, password: str) -> None:
        await SupabaseService.update_user(self.access_token, {"password": password})
        await self.refresh_profile()
        logger.info("Updated password of user %s", self.user_id)

    async def sign_out(self) -> None:
        await SupabaseService.sign_out(self.access_token)
        self.profile = None
        logger.info("Signed out user %s", self.user_id)

    @property
    def role(self) -> Optional[UserType]:
        return self.profile.user_type if self.profile else None

    @property
    def is_brand(self) -> bool:
        return self.role == UserType.BRAND

    @property
    def is_influencer(self) -> bool:
        return self.role == UserType.INFLUENCER

    def require_role(self, role: UserType) -> None:
        if self.role != role:
            raise PermissionDeniedError(f"Only {role.value} accounts can do this")
