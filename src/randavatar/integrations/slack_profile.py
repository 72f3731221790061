"""Slack profile photo client.

Uploads a normalized avatar with ``users.setPhoto`` using the user's own
token. Slack reports failures as ``{"ok": false, "error": "..."}``; every
failure mode is surfaced as ``UpstreamError`` with the Slack error code.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from randavatar.config import settings
from randavatar.errors import UpstreamError
from randavatar.images import NormalizedImage

logger = structlog.get_logger()

USER_TOKEN_PREFIX = "xoxp-"


def is_user_token(token: str | None) -> bool:
    """True for Slack user tokens, the only class allowed to set a photo."""
    return bool(token) and token.startswith(USER_TOKEN_PREFIX)


class SlackProfileClient:
    """Sets profile photos on behalf of individual users."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout if timeout is not None else settings.slack_api_timeout_s

    def _client(self, token: str) -> AsyncWebClient:
        return AsyncWebClient(token=token, timeout=int(self._timeout))

    async def set_photo(self, token: str, image: NormalizedImage) -> dict[str, Any]:
        """Upload ``image`` and its crop rectangle. Returns the Slack response."""
        client = self._client(token)
        try:
            resp = await asyncio.wait_for(
                client.users_setPhoto(
                    image=io.BytesIO(image.png),
                    crop_x=image.crop.x,
                    crop_y=image.crop.y,
                    crop_w=image.crop.side,
                ),
                timeout=self._timeout,
            )
        except SlackApiError as e:
            code = e.response.get("error") if e.response is not None else None
            raise UpstreamError(f"users.setPhoto failed: {code}", code=code) from e
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                f"users.setPhoto timed out after {self._timeout:.0f}s", code="timeout",
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"users.setPhoto transport error: {e}", code="transport") from e

        data = dict(resp.data) if isinstance(resp.data, dict) else {}
        if not data.get("ok"):
            code = data.get("error") or "unknown_error"
            raise UpstreamError(f"users.setPhoto failed: {code}", code=code)
        return data
