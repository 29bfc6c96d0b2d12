"""Tests for the range fetcher."""

import httpx
import pytest

from pressprobe.net.range_fetch import FetchFailure, RangeFetcher

URL = "https://example.com/wp-content/plugins/foo/app.js"
BODY = bytes(range(256)) * 40


def make_transport(body=BODY, honor_range=True, head_length=True, status=200, headers=None):
    """Build a transport serving one file, optionally ignoring Range."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.headers.get("range")))
        if status != 200:
            return httpx.Response(status)

        if request.method == "HEAD":
            if not head_length:
                return httpx.Response(405)
            return httpx.Response(200, headers={"content-length": str(len(body))})

        range_header = request.headers.get("range")
        if honor_range and range_header:
            start_text, end_text = range_header.removeprefix("bytes=").split("-")
            if start_text:
                chunk = body[int(start_text) : int(end_text) + 1]
            else:
                chunk = body[-int(end_text) :]
            return httpx.Response(206, content=chunk, headers=headers)

        return httpx.Response(200, content=body, headers=headers)

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


class TestFetchHead:
    """Tests for head windows."""

    @pytest.mark.asyncio
    async def test_head_window(self):
        """Test that the first n bytes come back from a 206."""
        async with httpx.AsyncClient(transport=make_transport()) as client:
            data = await RangeFetcher(client).fetch_head(URL, 100)

        assert data == BODY[:100]

    @pytest.mark.asyncio
    async def test_default_window(self):
        """Test that the fetcher's window applies when n is omitted."""
        async with httpx.AsyncClient(transport=make_transport()) as client:
            data = await RangeFetcher(client, window=512).fetch_head(URL)

        assert len(data) == 512

    @pytest.mark.asyncio
    async def test_server_ignores_range(self):
        """Test that a 200 with the full file is cut to the requested window."""
        async with httpx.AsyncClient(transport=make_transport(honor_range=False)) as client:
            data = await RangeFetcher(client).fetch_range(URL, 100, 199)

        assert data == BODY[100:200]

    @pytest.mark.asyncio
    async def test_chunk_keeps_headers(self):
        """Test that response headers travel with the chunk."""
        transport = make_transport(headers={"X-Plugin-Version": "1.2.3"})
        async with httpx.AsyncClient(transport=transport) as client:
            chunk = await RangeFetcher(client).fetch_chunk(URL, 0, 9)

        assert chunk.partial
        assert chunk.headers["x-plugin-version"] == "1.2.3"

    @pytest.mark.asyncio
    async def test_invalid_range(self):
        """Test that an inverted range fails without a request."""
        transport = make_transport()
        async with httpx.AsyncClient(transport=transport) as client:
            result = await RangeFetcher(client).fetch_chunk(URL, 10, 5)

        assert isinstance(result, FetchFailure)
        assert transport.seen == []


class TestFetchTail:
    """Tests for tail windows."""

    @pytest.mark.asyncio
    async def test_tail_with_known_size(self):
        """Test a tail computed from the HEAD content length."""
        transport = make_transport()
        async with httpx.AsyncClient(transport=transport) as client:
            data = await RangeFetcher(client).fetch_tail(URL, 50)

        assert data == BODY[-50:]
        assert ("GET", f"bytes={len(BODY) - 50}-{len(BODY) - 1}") in transport.seen

    @pytest.mark.asyncio
    async def test_suffix_fallback(self):
        """Test a suffix range when HEAD gives no size."""
        transport = make_transport(head_length=False)
        async with httpx.AsyncClient(transport=transport) as client:
            data = await RangeFetcher(client).fetch_tail(URL, 50)

        assert data == BODY[-50:]
        assert ("GET", "bytes=-50") in transport.seen

    @pytest.mark.asyncio
    async def test_suffix_on_full_response(self):
        """Test that a 200 to a suffix request keeps only the last bytes."""
        transport = make_transport(head_length=False, honor_range=False)
        async with httpx.AsyncClient(transport=transport) as client:
            data = await RangeFetcher(client).fetch_tail(URL, 50)

        assert data == BODY[-50:]

    @pytest.mark.asyncio
    async def test_small_file(self):
        """Test that a file smaller than the window is returned whole."""
        async with httpx.AsyncClient(transport=make_transport(body=b"tiny")) as client:
            data = await RangeFetcher(client).fetch_tail(URL, 50)

        assert data == b"tiny"

    @pytest.mark.asyncio
    async def test_empty_file(self):
        """Test a zero-length file."""
        async with httpx.AsyncClient(transport=make_transport(body=b"")) as client:
            data = await RangeFetcher(client).fetch_tail(URL, 50)

        assert data == b""


class TestFailures:
    """Tests for failures, which are returned and never raised."""

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Test that an HTTP error status becomes a falsy FetchFailure."""
        async with httpx.AsyncClient(transport=make_transport(status=404)) as client:
            result = await RangeFetcher(client).fetch_head(URL)

        assert isinstance(result, FetchFailure)
        assert not result
        assert result.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
    async def test_transport_errors(self, error):
        """Test that connection problems and timeouts become FetchFailures."""

        def handler(request):
            raise error("boom", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = RangeFetcher(client)
            head = await fetcher.fetch_head(URL)
            tail = await fetcher.fetch_tail(URL)

        assert isinstance(head, FetchFailure)
        assert head.reason == error.__name__
        assert isinstance(tail, FetchFailure)

    @pytest.mark.asyncio
    async def test_content_length_unknown(self):
        """Test that a failed HEAD reports no size."""
        async with httpx.AsyncClient(transport=make_transport(head_length=False)) as client:
            assert await RangeFetcher(client).content_length(URL) is None
