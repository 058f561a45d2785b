"""Sign-in, sign-up, password reset, profile, onboarding and social connections."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from viblo.api.deps import get_session, read_limited_body
from viblo.config import settings
from viblo.errors import RemoteCallError
from viblo.flows.connections import BrowserResult, ConnectionFlow
from viblo.flows.profile import ProfileFlow
from viblo.models.profile import AvatarUpload, OnboardingForm, ProfileUpdate, SocialPlatform
from viblo.services.backend_service import BackendService
from viblo.session import SessionContext

router = APIRouter(prefix="/profile", tags=["profile"])


class SignInRequest(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


class NewPasswordRequest(BaseModel):
    password: str
    confirm_password: str


class PushTokenRequest(BaseModel):
    push_token: Optional[str] = None


class ConnectRequest(BaseModel):
    result: BrowserResult = BrowserResult.SUCCESS


@router.post("/sign-in")
async def sign_in(data: SignInRequest):
    try:
        session = await SessionContext.sign_in(data.email, data.password)
    except RemoteCallError as e:
        if e.status_code in (400, 401):
            raise HTTPException(401, e.message)
        raise
    return {
        "access_token": session.access_token,
        "user_id": session.user_id,
        "profile": session.profile,
        "needs_onboarding": session.profile is None,
    }


@router.post("/sign-up")
async def sign_up(data: SignInRequest):
    try:
        session = await ProfileFlow.sign_up(data.email, data.password)
    except RemoteCallError as e:
        # already registered, weak password and the like
        if e.status_code in (400, 422):
            raise HTTPException(400, e.message)
        raise
    if session is None:
        return {
            "status": "confirmation_required",
            "message": "Please check your inbox for email verification!",
        }
    return {
        "status": "signed_up",
        "access_token": session.access_token,
        "user_id": session.user_id,
        "needs_onboarding": session.profile is None,
    }


@router.post("/forgot-password")
async def forgot_password(data: PasswordResetRequest):
    await ProfileFlow.request_password_reset(data.email)
    return {"status": "sent"}


@router.put("/password")
async def change_password(data: NewPasswordRequest, session: SessionContext = Depends(get_session)):
    """Called from the reset link session (or while signed in)."""
    profile = await ProfileFlow.change_password(session, data.password, data.confirm_password)
    return {"status": "updated", "needs_onboarding": profile is None}


@router.post("/sign-out")
async def sign_out(session: SessionContext = Depends(get_session)):
    await session.sign_out()
    return {"status": "signed_out"}


@router.get("")
async def me(session: SessionContext = Depends(get_session)):
    return {"user_id": session.user_id, "email": session.email, "profile": session.profile}


@router.put("")
async def update_profile(update: ProfileUpdate, session: SessionContext = Depends(get_session)):
    return await ProfileFlow.update_profile(session, update)


@router.put("/avatar")
async def upload_avatar(
    request: Request,
    file_name: str = "avatar.jpg",
    session: SessionContext = Depends(get_session),
):
    """Replace the avatar, keeping the other editable fields as they are."""
    profile = session.profile
    update = ProfileUpdate.model_validate(profile.model_dump()) if profile else ProfileUpdate()
    content_type = request.headers.get("content-type")
    avatar = AvatarUpload(
        content=await read_limited_body(request, settings.max_avatar_bytes, "an image", "avatar"),
        file_name=file_name,
        mime_type=content_type if content_type and content_type.startswith("image/") else None,
    )
    return await ProfileFlow.update_profile(session, update, avatar=avatar)


@router.get("/analytics")
async def analytics(session: SessionContext = Depends(get_session)):
    return await ProfileFlow.profile_analytics(session)


@router.post("/onboarding")
async def onboarding(form: OnboardingForm, session: SessionContext = Depends(get_session)):
    return await ProfileFlow.complete_onboarding(session, form)


@router.put("/push-token")
async def push_token(data: PushTokenRequest, session: SessionContext = Depends(get_session)):
    return await ProfileFlow.set_push_token(session, data.push_token)


@router.delete("")
async def delete_account(session: SessionContext = Depends(get_session)):
    await ProfileFlow.delete_account(session)
    return {"status": "deleted"}


# ── Social connections ──────────────────────────────────────────────


@router.get("/connections")
async def connections(session: SessionContext = Depends(get_session)):
    return {"connections": await ConnectionFlow.list_connections(session)}


@router.get("/connections/{platform}/authorize")
async def authorize(platform: SocialPlatform, session: SessionContext = Depends(get_session)):
    """URL the device opens in its auth session."""
    return {"url": BackendService.authorize_url(platform, session.user_id)}


@router.post("/connections/{platform}")
async def connect(
    platform: SocialPlatform, data: ConnectRequest, session: SessionContext = Depends(get_session)
):
    """Called once the device's auth session closed; waits for the link to appear."""

    async def closed_session(url: str) -> BrowserResult:
        return data.result

    return await ConnectionFlow.connect(session, platform, closed_session)


@router.delete("/connections/{platform}")
async def disconnect(platform: SocialPlatform, session: SessionContext = Depends(get_session)):
    await ConnectionFlow.disconnect(session, platform)
    return {"status": "disconnected", "platform": platform}


@router.get("/{user_id}/public")
async def public_profile(user_id: str, session: SessionContext = Depends(get_session)):
    return await ProfileFlow.public_profile(session, user_id)
