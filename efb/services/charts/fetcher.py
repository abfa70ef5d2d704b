"""Chart file download over HTTP with byte-level progress."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Protocol

import httpx

from efb.config import DEFAULT_USER_AGENT
from efb.errors import FetchTimeoutError, NetworkUnavailableError, StorageUnavailableError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DOWNLOAD_TIMEOUT = httpx.Timeout(30.0, read=60.0)

ProgressCallback = Callable[[float], None]


class ChartFetcher(Protocol):
    async def download_file(
        self,
        url: str,
        destination: Path,
        on_progress: ProgressCallback,
    ) -> None:
        """Stream *url* into *destination*, reporting fractions in [0, 1].

        Raises ``NetworkUnavailableError`` or ``FetchTimeoutError``.
        """
        ...


class HttpChartFetcher:
    """Streams chart bundles with httpx."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._client = http_client or httpx.AsyncClient(
            timeout=DOWNLOAD_TIMEOUT,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def download_file(
        self,
        url: str,
        destination: Path,
        on_progress: ProgressCallback,
    ) -> None:
        try:
            async with self._client.stream("GET", url) as resp:
                resp.raise_for_status()
                total = int(resp.headers.get("content-length") or 0)
                received = 0
                try:
                    with open(destination, "wb") as f:
                        async for chunk in resp.aiter_bytes(CHUNK_SIZE):
                            f.write(chunk)
                            received += len(chunk)
                            if total:
                                on_progress(received / total)
                except OSError as e:
                    raise StorageUnavailableError(f"Cannot write {destination}: {e}") from e
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Timeout downloading {url}") from e
        except httpx.HTTPStatusError as e:
            raise NetworkUnavailableError(
                f"HTTP {e.response.status_code} downloading {url}"
            ) from e
        except httpx.HTTPError as e:
            raise NetworkUnavailableError(f"Failed to download {url}: {e}") from e

        logger.debug("Downloaded %d bytes from %s", received, url)
