"""Network probes - endpoint existence and bounded file lookups.

Every probe is a coroutine returning a list of signals. Failures of any
kind come back as an empty list; the orchestrator adds the timeout.
"""

import logging
import re

import httpx

from pressprobe.extract.extractors import StructuredHeaderExtractor
from pressprobe.extract.patterns import PLUGIN_MAIN_FILES, PLUGIN_README_FILES, EndpointRule
from pressprobe.extract.versions import is_valid_version
from pressprobe.models import EntityKind, Provenance, Signal
from pressprobe.net.range_fetch import FetchFailure, RangeFetcher
from pressprobe.net.urls import join_path

logger = logging.getLogger(__name__)

ENDPOINT_FOUND_WEIGHT = 0.8
ENDPOINT_GUARDED_WEIGHT = 0.6
README_WEIGHT = 0.9
FILE_FETCH_WEIGHT = 0.85
STYLESHEET_HEADER_WEIGHT = 0.95

_STABLE_TAG_RE = re.compile(r"^\s*Stable tag:\s*([^\s]+)", re.IGNORECASE | re.MULTILINE)
_README_NAME_RE = re.compile(r"^\s*===\s*(.+?)\s*===", re.MULTILINE)
_README_MARKERS = ("stable tag:", "contributors:", "requires at least:", "===")


async def probe_endpoint(
    client: httpx.AsyncClient,
    base_url: str,
    rule: EndpointRule,
    timeout: float | None = None,
) -> list[Signal]:
    """Check whether a plugin-specific route exists.

    A 200 is strong evidence. 401/403 mean the route is registered but
    guarded, which is weaker since some firewalls answer 403 to everything.
    """
    url = join_path(base_url, rule.path)
    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug("Endpoint probe %s failed: %s", url, e)
        return []

    if response.status_code not in rule.accept_statuses:
        return []

    weight = ENDPOINT_FOUND_WEIGHT if response.status_code == 200 else ENDPOINT_GUARDED_WEIGHT
    provenance = Provenance.REST_API if "/wp-json/" in rule.path else Provenance.ENDPOINT_PROBE
    return [
        Signal(
            provenance=provenance,
            confidence_weight=weight,
            subject_hint=rule.slug,
            kind=EntityKind.PLUGIN,
            source=f"{rule.path} ({response.status_code})",
            display_name=rule.display_name,
        )
    ]


def _looks_like_readme(text: str) -> bool:
    lowered = text.lower()
    if "<html" in lowered[:500]:
        return False
    return any(marker in lowered for marker in _README_MARKERS)


async def probe_plugin_readme(fetcher: RangeFetcher, base_url: str, slug: str) -> list[Signal]:
    """Read ``Stable tag:`` from the head of a plugin's readme.txt.

    A readme is one piece of evidence: a single signal, credited to the
    readme when it names a version and to the file fetch otherwise.
    """
    for filename in PLUGIN_README_FILES:
        url = join_path(base_url, f"wp-content/plugins/{slug}/{filename}")
        chunk = await fetcher.fetch_head(url)
        if isinstance(chunk, FetchFailure):
            continue

        text = chunk.decode("utf-8", errors="replace")
        if not _looks_like_readme(text):
            continue

        name_match = _README_NAME_RE.search(text)
        tag_match = _STABLE_TAG_RE.search(text)
        version = tag_match.group(1) if tag_match and is_valid_version(tag_match.group(1)) else None
        return [
            Signal(
                provenance=Provenance.README if version else Provenance.FILE_FETCH,
                confidence_weight=README_WEIGHT if version else FILE_FETCH_WEIGHT,
                subject_hint=slug,
                version_raw=version,
                kind=EntityKind.PLUGIN,
                source=url,
                display_name=name_match.group(1) if name_match else None,
            )
        ]

    return []


async def probe_plugin_main_file(fetcher: RangeFetcher, base_url: str, slug: str) -> list[Signal]:
    """Look for a plugin header in the main PHP file.

    Most servers execute the file and return nothing; a misconfigured one
    serves the source, header included.
    """
    extractor = StructuredHeaderExtractor()

    for pattern in PLUGIN_MAIN_FILES:
        filename = pattern.format(slug=slug, slug_underscore=slug.replace("-", "_"))
        url = join_path(base_url, f"wp-content/plugins/{slug}/{filename}")
        chunk = await fetcher.fetch_head(url)
        if isinstance(chunk, FetchFailure) or not chunk:
            continue

        signals = extractor.extract(chunk.decode("utf-8", errors="replace"), url=url)
        if signals:
            return [s.retag(Provenance.FILE_FETCH, FILE_FETCH_WEIGHT) for s in signals]

    return []


async def probe_theme_stylesheet(fetcher: RangeFetcher, base_url: str, slug: str) -> list[Signal]:
    """Parse the ``Theme Name:``/``Version:`` header at the top of style.css."""
    url = join_path(base_url, f"wp-content/themes/{slug}/style.css")
    chunk = await fetcher.fetch_head(url)
    if isinstance(chunk, FetchFailure):
        return []

    signals = StructuredHeaderExtractor().extract(chunk.decode("utf-8", errors="replace"), url=url)
    return [
        s.retag(Provenance.STYLESHEET_HEADER, STYLESHEET_HEADER_WEIGHT)
        for s in signals
        if s.kind == EntityKind.THEME
    ]
