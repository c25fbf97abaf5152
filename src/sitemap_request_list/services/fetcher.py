"""
Content Fetcher

Streams sitemap bodies chunk by chunk so entries can be parsed while the
download is still in progress.
"""

import asyncio
import logging
import zlib
from typing import AsyncIterator, Protocol

import aiohttp
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sitemap_request_list.core.config import settings

logger = logging.getLogger(__name__)

# Statuses worth retrying before giving up on a source
RETRYABLE_STATUSES = (429, 500, 502, 503, 504)

GZIP_CONTENT_TYPES = ("application/gzip", "application/x-gzip")


class SourceFetchError(Exception):
    """A sitemap source could not be fetched."""

    def __init__(self, url: str, reason: str, status: int | None = None):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class _RetryableStatus(Exception):
    def __init__(self, status: int):
        super().__init__(f"HTTP {status}")
        self.status = status


class ContentFetcher(Protocol):
    def stream(self, url: str) -> AsyncIterator[bytes]:
        """Yield the body of url in order; raise SourceFetchError on failure."""
        ...


def _is_gzipped(url: str, content_type: str) -> bool:
    path = url.split("?", 1)[0].lower()
    return path.endswith(".gz") or content_type in GZIP_CONTENT_TYPES


class AiohttpContentFetcher:
    """
    aiohttp-based fetcher.

    Transport-level Content-Encoding is handled by aiohttp; gzipped sitemap
    files (sitemap.xml.gz) are decompressed here as the bytes arrive.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout_sec: float | None = None,
        user_agent: str | None = None,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout_sec = timeout_sec or settings.FETCH_TIMEOUT_SEC
        self.user_agent = user_agent or settings.USER_AGENT

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent}
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @retry(
        stop=stop_after_attempt(max(1, settings.FETCH_RETRY_ATTEMPTS)),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(
            (_RetryableStatus, aiohttp.ClientConnectionError, asyncio.TimeoutError)
        ),
        reraise=True,
    )
    async def _open(self, url: str) -> aiohttp.ClientResponse:
        """Send the request, retrying until response headers arrive."""
        session = self._get_session()
        resp = await session.get(
            url,
            timeout=aiohttp.ClientTimeout(
                sock_connect=self.timeout_sec, sock_read=self.timeout_sec
            ),
            allow_redirects=True,
        )
        if resp.status in RETRYABLE_STATUSES:
            resp.release()
            logger.warning(f"Retryable error {resp.status} for sitemap {url}")
            raise _RetryableStatus(resp.status)
        return resp

    async def stream(self, url: str) -> AsyncIterator[bytes]:
        try:
            resp = await self._open(url)
        except _RetryableStatus as e:
            raise SourceFetchError(url, str(e), status=e.status) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceFetchError(url, str(e) or type(e).__name__) from e

        async with resp:
            if resp.status != 200:
                raise SourceFetchError(url, f"HTTP {resp.status}", status=resp.status)

            content_type = resp.headers.get("Content-Type", "").split(";")[0].lower()
            decompressor = None
            # aiohttp already decodes Content-Encoding: gzip
            encoded = "gzip" in resp.headers.get("Content-Encoding", "").lower()
            if not encoded and _is_gzipped(url, content_type):
                decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)

            try:
                async for chunk in resp.content.iter_any():
                    if decompressor is not None:
                        chunk = decompressor.decompress(chunk)
                    if chunk:
                        yield chunk
                if decompressor is not None:
                    tail = decompressor.flush()
                    if tail:
                        yield tail
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise SourceFetchError(url, str(e) or type(e).__name__) from e
            except zlib.error as e:
                raise SourceFetchError(url, f"Invalid gzip data: {e}") from e
