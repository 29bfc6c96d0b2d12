"""Shared fixtures: an in-memory site served through httpx.MockTransport."""

import httpx
import pytest


class FakeSite:
    """Serve a fixed set of paths with HEAD and byte-range support.

    ``files`` maps a URL path to either a body (str or bytes) or a
    ``(status, body, headers)`` tuple. Unknown paths are 404.
    """

    def __init__(self, files: dict):
        self.files = files
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def _lookup(self, path: str):
        entry = self.files.get(path)
        if entry is None:
            return 404, b"", {}
        if isinstance(entry, tuple):
            status, body, headers = entry
        else:
            status, body, headers = 200, entry, {}
        if isinstance(body, str):
            body = body.encode("utf-8")
        return status, body, headers

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body, headers = self._lookup(request.url.path)

        if status != 200:
            return httpx.Response(status, content=body, headers=headers)

        if request.method == "HEAD":
            return httpx.Response(200, headers={**headers, "content-length": str(len(body))})

        range_header = request.headers.get("range")
        if range_header:
            start_text, end_text = range_header.removeprefix("bytes=").split("-")
            if start_text:
                chunk = body[int(start_text) : int(end_text) + 1]
            else:
                chunk = body[-int(end_text) :]
            return httpx.Response(206, content=chunk, headers=headers)

        return httpx.Response(200, content=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_site():
    """Return a factory building a FakeSite from a path mapping."""
    return FakeSite
