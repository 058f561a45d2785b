"""Companion backend client: payments, social OAuth, video lists, account deletion.

The companion service owns everything that needs a secret: creating payment
intents with the payment processor, exchanging OAuth codes with the social
platforms and aggregating their metrics.

Auth: x-api-key header.
Errors: non-2xx with a ``{"error": "..."}`` JSON body.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from viblo.config import settings
from viblo.errors import RemoteCallError
from viblo.models.payment import Coupon, PaymentIntent
from viblo.models.profile import PlatformStats, SocialPlatform
from viblo.models.submission import VideoItem

logger = logging.getLogger(__name__)


def _count(value: Any) -> int:
    """Metric counts arrive as ints or numeric strings (YouTube)."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class BackendService:
    """Wraps the companion HTTP API. One attempt per call, no retries."""

    BASE_URL = settings.backend_url
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def _headers(cls) -> dict[str, str]:
        return {
            "x-api-key": settings.api_key,
            "Content-Type": "application/json",
        }

    @classmethod
    def _client(cls) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=cls.BASE_URL,
            timeout=settings.http_timeout_seconds,
            transport=cls.transport,
        )

    @classmethod
    async def _call(
        cls,
        method: str,
        path: str,
        fallback_error: str,
        **kwargs: Any,
    ) -> Any:
        try:
            async with cls._client() as client:
                resp = await client.request(method, path, headers=cls._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error("Backend %s %s failed: %s", method, path, e)
            raise RemoteCallError(fallback_error, endpoint=path) from e

        content_type = resp.headers.get("content-type", "")
        data: Any = None
        if "application/json" in content_type:
            data = resp.json()
        elif resp.status_code >= 400:
            logger.error("Backend %s %s returned non-JSON %d: %s", method, path, resp.status_code, resp.text[:200])
            raise RemoteCallError("Server error", status_code=resp.status_code, endpoint=path)

        if resp.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            logger.error("Backend %s %s returned %d: %s", method, path, resp.status_code, message)
            raise RemoteCallError(message or fallback_error, status_code=resp.status_code, endpoint=path)
        return data

    # ── Payments ─────────────────────────────────────────────────

    @classmethod
    async def create_payment_intent(
        cls,
        campaign_id: str,
        user_id: str,
        coupon_id: str | None = None,
    ) -> PaymentIntent:
        """Create a payment intent for the whole campaign budget.

        Returns:
            Client secret, ephemeral key and customer id for the payment sheet,
            plus the server-side breakdown.
        """
        payload: dict[str, Any] = {"campaignId": campaign_id, "userId": user_id}
        if coupon_id:
            payload["couponCode"] = coupon_id
        data = await cls._call(
            "POST",
            "/api/payments/create-intent",
            "Failed to initialize payment",
            json=payload,
        )
        logger.info("Created payment intent for campaign %s", campaign_id)
        return PaymentIntent.model_validate(data)

    @classmethod
    async def confirm_payment(cls, campaign_id: str, payment_intent_id: str) -> dict[str, Any]:
        """Tell the backend the sheet succeeded; it records the payment and activates the campaign."""
        data = await cls._call(
            "POST",
            "/api/payments/confirm",
            "Failed to confirm payment",
            json={"campaignId": campaign_id, "paymentIntentId": payment_intent_id},
        )
        return data or {}

    @classmethod
    async def validate_coupon(cls, coupon_code: str) -> Coupon:
        data = await cls._call(
            "POST",
            "/api/payments/validate-coupon",
            "Invalid coupon code",
            json={"couponCode": coupon_code.strip().upper()},
        )
        return Coupon.model_validate(data)

    # ── Social platforms ─────────────────────────────────────────

    @classmethod
    async def list_videos(cls, platform: SocialPlatform | str, user_id: str) -> list[VideoItem]:
        """List the published videos of the user's connected account."""
        platform = SocialPlatform(platform).value
        data = await cls._call(
            "GET",
            f"/api/video-list/{platform}",
            f"Failed to load {platform} videos",
            params={"user_id": user_id},
        )
        return [VideoItem.model_validate(item) for item in data or []]

    @classmethod
    def authorize_url(cls, platform: SocialPlatform | str, user_id: str) -> str:
        """Start URL of the redirect-based OAuth flow (opened in a browser session)."""
        platform = SocialPlatform(platform).value
        return f"{cls.BASE_URL}/api/{platform}/authorize?{urlencode({'user_id': user_id})}"

    @classmethod
    async def revoke(cls, platform: SocialPlatform | str, user_id: str) -> None:
        platform = SocialPlatform(platform).value
        await cls._call(
            "POST",
            f"/api/{platform}/revoke",
            f"Failed to revoke {platform} token",
            params={"user_id": user_id},
        )

    # ── Audience metrics ─────────────────────────────────────────

    @classmethod
    async def _platform_get(cls, platform: str, resource: str, user_id: str, **params: Any) -> Any:
        return await cls._call(
            "GET",
            f"/api/{platform}/{resource}",
            f"Failed to load {platform} {resource}",
            params={"user_id": user_id, **params},
        )

    @classmethod
    async def youtube_stats(cls, user_id: str) -> PlatformStats:
        channel = await cls._platform_get("youtube", "channel", user_id) or {}
        videos = await cls._platform_get("youtube", "videos", user_id) or {}
        snippet = channel.get("snippet") or {}
        statistics = channel.get("statistics") or {}
        items = [item.get("statistics") or {} for item in videos.get("items") or []]
        return PlatformStats(
            platform=SocialPlatform.YOUTUBE,
            username=snippet.get("title") or "",
            handle=snippet.get("customUrl") or snippet.get("title") or "",
            profile_url=f"https://youtube.com/channel/{channel.get('id', '')}",
            followers=_count(statistics.get("subscriberCount")),
            views=_count(statistics.get("viewCount")),
            likes=sum(_count(s.get("likeCount")) for s in items),
            comments=sum(_count(s.get("commentCount")) for s in items),
        )

    @classmethod
    async def instagram_stats(cls, user_id: str) -> PlatformStats:
        account = await cls._platform_get("instagram", "profile", user_id) or {}
        media = await cls._platform_get("instagram", "media", user_id, limit=50) or {}
        posts = media.get("data") or []
        username = account.get("username") or ""
        return PlatformStats(
            platform=SocialPlatform.INSTAGRAM,
            username=account.get("name") or username,
            handle=f"@{username}",
            profile_url=f"https://instagram.com/{username}",
            followers=_count(account.get("followers_count")),
            likes=sum(_count(p.get("like_count")) for p in posts),
            comments=sum(_count(p.get("comments_count")) for p in posts),
        )

    @classmethod
    async def tiktok_stats(cls, user_id: str) -> PlatformStats:
        account = await cls._platform_get("tiktok", "user", user_id) or {}
        listing = await cls._call(
            "POST",
            "/api/tiktok/videos",
            "Failed to load tiktok videos",
            params={"user_id": user_id},
        ) or {}
        videos = listing.get("videos") or []
        username = account.get("username") or ""
        return PlatformStats(
            platform=SocialPlatform.TIKTOK,
            username=account.get("display_name") or username,
            handle=f"@{username}",
            profile_url=account.get("profile_deep_link") or f"https://tiktok.com/@{username}",
            followers=_count(account.get("follower_count")),
            views=sum(_count(v.get("view_count")) for v in videos),
            likes=sum(_count(v.get("like_count")) for v in videos),
            comments=sum(_count(v.get("comment_count")) for v in videos),
        )

    @classmethod
    async def platform_stats(cls, platform: SocialPlatform | str, user_id: str) -> PlatformStats:
        """Aggregate the account and recent-content metrics of one platform."""
        fetchers = {
            SocialPlatform.YOUTUBE: cls.youtube_stats,
            SocialPlatform.INSTAGRAM: cls.instagram_stats,
            SocialPlatform.TIKTOK: cls.tiktok_stats,
        }
        platform = SocialPlatform(platform)
        if platform not in fetchers:
            raise ValueError(f"No audience metrics for {platform.value}")
        return await fetchers[platform](user_id)

    # ── Account ──────────────────────────────────────────────────

    @classmethod
    async def delete_account(cls, user_id: str) -> None:
        await cls._call(
            "POST",
            "/api/users/delete-account",
            "Failed to delete account",
            json={"userId": user_id},
        )
        logger.info("Deleted account %s", user_id)

    @classmethod
    async def health_check(cls) -> bool:
        """Check if the companion backend is reachable."""
        try:
            async with cls._client() as client:
                resp = await client.get("/api/health", headers=cls._headers())
                return resp.status_code == 200
        except httpx.HTTPError:
            return False
