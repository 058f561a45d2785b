"""Social account connections (Instagram, TikTok, YouTube).

The OAuth dance happens in a browser session the caller opens for us. The
companion backend stores the tokens and writes the ``social_links`` row
asynchronously, so after the browser closes we poll for the row with an
exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from viblo.config import settings
from viblo.errors import FormValidationError, RemoteCallError
from viblo.models.profile import (
    CONNECTABLE_PLATFORMS,
    REVOCABLE_PLATFORMS,
    ConnectionOutcome,
    SocialLink,
    SocialPlatform,
)
from viblo.services.backend_service import BackendService
from viblo.services.gateway import DataGateway
from viblo.session import SessionContext

logger = logging.getLogger(__name__)


class BrowserResult(str, Enum):
    SUCCESS = "success"
    DISMISS = "dismiss"
    CANCEL = "cancel"


OpenBrowser = Callable[[str], Awaitable[BrowserResult]]
"""Opens the authorize URL in an auth session and resolves when it closes."""


def poll_delays(attempts: int, base: float, maximum: float) -> list[float]:
    """Backoff schedule: base, 2*base, 4*base ... capped at ``maximum``."""
    return [min(base * (2 ** i), maximum) for i in range(attempts)]


class ConnectionFlow:

    @classmethod
    async def list_connections(cls, session: SessionContext) -> list[SocialLink]:
        return await DataGateway.list_social_links(session.access_token, session.user_id)

    @classmethod
    async def connect(
        cls,
        session: SessionContext,
        platform: SocialPlatform,
        open_browser: OpenBrowser,
    ) -> ConnectionOutcome:
        platform = SocialPlatform(platform)
        if platform not in CONNECTABLE_PLATFORMS:
            raise FormValidationError("Platform not supported", field="platform")

        url = BackendService.authorize_url(platform, session.user_id)
        result = BrowserResult(await open_browser(url))
        if result == BrowserResult.CANCEL:
            logger.info("Authorization for %s cancelled by %s", platform.value, session.user_id)
            return ConnectionOutcome(platform=platform, connected=False, cancelled=True)

        attempts = 0
        for delay in poll_delays(
            settings.connection_poll_attempts,
            settings.connection_poll_base_delay,
            settings.connection_poll_max_delay,
        ):
            await asyncio.sleep(delay)
            attempts += 1
            link = await DataGateway.find_social_link(session.access_token, session.user_id, platform)
            if link:
                logger.info("%s connected for %s after %d checks", platform.value, session.user_id, attempts)
                return ConnectionOutcome(platform=platform, connected=True, attempts=attempts, link=link)

        logger.warning("%s connection for %s not found after %d checks", platform.value, session.user_id, attempts)
        return ConnectionOutcome(platform=platform, connected=False, attempts=attempts)

    @classmethod
    async def disconnect(cls, session: SessionContext, platform: SocialPlatform) -> None:
        platform = SocialPlatform(platform)
        token = session.access_token

        if platform in REVOCABLE_PLATFORMS:
            try:
                await BackendService.revoke(platform, session.user_id)
            except RemoteCallError as e:
                logger.warning("Revoking %s token failed, continuing: %s", platform.value, e.message)

        await DataGateway.delete_social_link(token, session.user_id, platform)

        try:
            await DataGateway.delete_oauth_tokens(token, session.user_id, platform)
        except RemoteCallError as e:
            logger.warning("Deleting %s oauth tokens failed: %s", platform.value, e.message)
        logger.info("Disconnected %s for %s", platform.value, session.user_id)
