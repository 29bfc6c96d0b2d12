"""Range fetcher - bounded head/tail windows of remote files.

Every method returns either bytes or a ``FetchFailure``; nothing here raises
on I/O problems. A server that ignores ``Range`` and replies 200 is still
accepted, but the body is cut down to the requested window.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 4096
FAST_WINDOW = 2048
DEFAULT_TIMEOUT = 5.0
FAST_TIMEOUT = 3.0


@dataclass(frozen=True)
class FetchFailure:
    """A fetch that produced no usable bytes."""

    url: str
    reason: str
    status_code: int | None = None

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class RangeChunk:
    """Bytes of one window together with the response headers."""

    url: str
    content: bytes
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return self.status_code == 206


class RangeFetcher:
    """Issue ranged GET requests over a shared, injected client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
        window: int = DEFAULT_WINDOW,
    ):
        """Initialize range fetcher.

        Args:
            client: Shared AsyncClient. Not closed by the fetcher.
            timeout: Default timeout for each call in seconds.
            window: Default window size in bytes.
        """
        self.client = client
        self.timeout = timeout
        self.window = window

    async def fetch_chunk(
        self,
        url: str,
        start: int,
        end: int,
        timeout: float | None = None,
    ) -> RangeChunk | FetchFailure:
        """Fetch bytes ``start..end`` (inclusive) with their headers."""
        if start < 0 or end < start:
            return FetchFailure(url, f"invalid range {start}-{end}")

        limit = end - start + 1
        request_headers = {"Range": f"bytes={start}-{end}"}

        try:
            async with self.client.stream(
                "GET", url, headers=request_headers, timeout=timeout or self.timeout
            ) as response:
                if response.status_code not in (200, 206):
                    return FetchFailure(url, f"HTTP {response.status_code}", response.status_code)

                # A 200 carries the whole file, so skip to the window ourselves
                skip = start if response.status_code == 200 else 0
                buffer = bytearray()
                async for data in response.aiter_bytes():
                    buffer.extend(data)
                    if len(buffer) >= skip + limit:
                        break

                return RangeChunk(
                    url=url,
                    content=bytes(buffer[skip : skip + limit]),
                    status_code=response.status_code,
                    headers=dict(response.headers),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Range fetch failed for %s: %s", url, e)
            return FetchFailure(url, type(e).__name__)

    async def fetch_range(
        self,
        url: str,
        start: int,
        end: int,
        timeout: float | None = None,
    ) -> bytes | FetchFailure:
        """Fetch bytes ``start..end`` inclusive.

        Args:
            url: Absolute URL.
            start: First byte offset.
            end: Last byte offset.
            timeout: Override for the default timeout.

        Returns:
            At most ``end - start + 1`` bytes, or a FetchFailure.
        """
        chunk = await self.fetch_chunk(url, start, end, timeout)
        if isinstance(chunk, FetchFailure):
            return chunk
        return chunk.content

    async def fetch_head(self, url: str, n: int | None = None, timeout: float | None = None) -> bytes | FetchFailure:
        """First ``n`` bytes of a file."""
        return await self.fetch_range(url, 0, (n or self.window) - 1, timeout)

    async def fetch_head_fast(self, url: str, n: int = FAST_WINDOW) -> RangeChunk | FetchFailure:
        """Smaller head window with a shorter timeout, used near the deadline."""
        return await self.fetch_chunk(url, 0, n - 1, FAST_TIMEOUT)

    async def content_length(self, url: str, timeout: float | None = None) -> int | None:
        """Discover file size with HEAD. None if unknown."""
        try:
            response = await self.client.head(url, timeout=timeout or self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("HEAD failed for %s: %s", url, e)
            return None

        if response.status_code >= 400:
            return None

        value = response.headers.get("content-length", "")
        return int(value) if value.isdigit() else None

    async def fetch_tail(self, url: str, n: int | None = None, timeout: float | None = None) -> bytes | FetchFailure:
        """Last ``n`` bytes of a file.

        Uses the size from HEAD when known; otherwise falls back to a
        suffix range ``bytes=-n``.

        Args:
            url: Absolute URL.
            n: Window size in bytes.
            timeout: Override for the default timeout.

        Returns:
            At most ``n`` bytes, or a FetchFailure.
        """
        n = n or self.window
        size = await self.content_length(url, timeout)

        if size is not None:
            if size == 0:
                return b""
            if size > n:
                return await self.fetch_range(url, size - n, size - 1, timeout)
            return await self.fetch_range(url, 0, size - 1, timeout)

        return await self.fetch_suffix(url, n, timeout)

    async def fetch_suffix(self, url: str, n: int, timeout: float | None = None) -> bytes | FetchFailure:
        """Suffix range request for the trailing ``n`` bytes."""
        try:
            async with self.client.stream(
                "GET", url, headers={"Range": f"bytes=-{n}"}, timeout=timeout or self.timeout
            ) as response:
                if response.status_code not in (200, 206):
                    return FetchFailure(url, f"HTTP {response.status_code}", response.status_code)

                # On a 200 keep a rolling window of the last n bytes
                buffer = bytearray()
                async for data in response.aiter_bytes():
                    buffer.extend(data)
                    if len(buffer) > n:
                        del buffer[:-n]
                return bytes(buffer)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Suffix fetch failed for %s: %s", url, e)
            return FetchFailure(url, type(e).__name__)
