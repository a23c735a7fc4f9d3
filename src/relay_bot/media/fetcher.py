"""Download remote resources referenced by backend answers."""

from __future__ import annotations

import httpx

from relay_bot.core.errors import DownloadError
from relay_bot.log import get_logger

logger = get_logger(__name__)


class ResourceFetcher:
    """Single-shot HTTP(S) GET that buffers the whole body.

    Only status 200 counts as success; 204/206 and other 2xx codes are
    rejected like any other status. Redirects are not followed.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 60.0):
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("download_transport_error", url=url, error=str(e))
            raise DownloadError(f"Failed to download {url}: {e}", url=url) from e

        if response.status_code != 200:
            logger.warning("download_bad_status", url=url, status=response.status_code)
            raise DownloadError(
                f"Failed to download {url}. Status code: {response.status_code}",
                url=url,
                status=response.status_code,
            )

        logger.debug("download_complete", url=url, size=len(response.content))
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
