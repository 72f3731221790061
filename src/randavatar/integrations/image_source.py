"""Random image provider.

A plain unauthenticated GET against a URL that returns a fresh image on
every request.
"""

from __future__ import annotations

import httpx
import structlog

from randavatar.config import settings
from randavatar.errors import UpstreamError

logger = structlog.get_logger()


class ImageSource:
    """Async fetcher for raw source image bytes."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.image_source_url
        self._timeout = timeout if timeout is not None else settings.image_fetch_timeout_s
        self._transport = transport

    async def fetch(self) -> bytes:
        """Return the body of one image download. Empty bodies are failures."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(self.url)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"Image fetch timed out after {self._timeout:.0f}s", code="timeout",
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Image fetch failed: {e}", code="transport") from e

        if resp.status_code >= 400:
            logger.warning("image_source_error", status=resp.status_code, url=self.url)
            raise UpstreamError(
                f"Image source returned HTTP {resp.status_code}",
                code=f"http_{resp.status_code}",
            )

        content = resp.content
        if not content:
            raise UpstreamError("Image source returned an empty body", code="empty")

        logger.debug("image_fetched", url=self.url, size=len(content))
        return content
