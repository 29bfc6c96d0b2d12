"""Page fetch - the main HTML document every local scan works from."""

import logging
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from pressprobe.exceptions import TargetError
from pressprobe.net.urls import is_valid_url, normalize_target, resolve_url

logger = logging.getLogger(__name__)


@dataclass
class PageSnapshot:
    """Fetched markup, its parsed DOM and the response headers."""

    url: str
    html: str
    soup: BeautifulSoup
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    @classmethod
    def from_html(cls, url: str, html: str, headers: dict[str, str] | None = None) -> "PageSnapshot":
        return cls(
            url=url,
            html=html,
            soup=BeautifulSoup(html, "html.parser"),
            headers={k.lower(): v for k, v in (headers or {}).items()},
        )

    def asset_urls(self) -> list[str]:
        """Absolute URLs of every script and stylesheet, in document order."""
        urls: list[str] = []
        for tag in self.soup.find_all(["script", "link"]):
            ref = tag.get("src") if tag.name == "script" else None
            if tag.name == "link":
                rel = tag.get("rel") or []
                if "stylesheet" in [r.lower() for r in rel]:
                    ref = tag.get("href")
            if ref:
                absolute = resolve_url(self.url, ref)
                if absolute not in urls:
                    urls.append(absolute)
        return urls

    def inline_scripts(self) -> list[str]:
        return [tag.string or "" for tag in self.soup.find_all("script") if not tag.get("src")]

    def body_classes(self) -> list[str]:
        body = self.soup.find("body")
        if body is None:
            return []
        return list(body.get("class") or [])


async def fetch_page(client: httpx.AsyncClient, target: str) -> PageSnapshot:
    """Fetch and parse the target's main page.

    Args:
        client: Shared AsyncClient.
        target: Domain or URL.

    Returns:
        Parsed page snapshot.

    Raises:
        TargetError: If the target is unparseable or the page can't be fetched.
    """
    url = normalize_target(target)
    if not url or not is_valid_url(url):
        raise TargetError(target, "Invalid target URL")

    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise TargetError(target, f"Could not fetch page ({type(e).__name__})") from e

    if response.status_code >= 400:
        raise TargetError(target, f"Page returned HTTP {response.status_code}")

    logger.debug("Fetched %s (%d bytes)", response.url, len(response.content))
    snapshot = PageSnapshot.from_html(str(response.url), response.text, dict(response.headers))
    snapshot.status_code = response.status_code
    return snapshot
