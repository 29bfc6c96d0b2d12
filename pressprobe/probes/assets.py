"""Asset inspection - identity and version from partial script/style content.

Only a small head window of each asset is fetched. The tail is read when the
head has no version, and a source map is followed (one hop) when neither end
names the component. Near the run deadline only a smaller head window is
read, with a shorter timeout.
"""

import logging

from pressprobe.extract.extractors import (
    decode_chunk,
    extract_source_map_url,
    path_identity,
    run_extractors,
    source_map_identities,
)
from pressprobe.models import EntityKind, Provenance, Signal
from pressprobe.net.range_fetch import FetchFailure, RangeFetcher
from pressprobe.net.urls import asset_filename, deduplicate_urls, is_static_asset, resolve_url
from pressprobe.probes.budget import ProbeBudget

logger = logging.getLogger(__name__)

DEFAULT_ASSET_CAP = 8
SOURCE_MAP_WINDOW = 65535
SOURCE_MAP_WEIGHT = 0.85

# Already credited by the page scan that discovered the asset URL
_URL_PROVENANCES = {Provenance.URL_PATH, Provenance.URL_VERSION_PARAM}
# Methods that keep their own tag when found inside an asset
_KEEP_PROVENANCES = {Provenance.STRUCTURED_HEADER, Provenance.HTTP_HEADER}


def _asset_rank(url: str) -> tuple[int, int, int]:
    identity = path_identity(url)
    if identity and identity[0] == EntityKind.PLUGIN:
        group = 0
    elif identity:
        group = 1
    else:
        group = 2
    ext = 0 if url.split("?", 1)[0].lower().endswith(".js") else 1
    return group, ext, len(asset_filename(url))


def prioritize_assets(urls: list[str], limit: int = DEFAULT_ASSET_CAP) -> list[str]:
    """Order assets for inspection and cap the list.

    Plugin assets before theme assets before anything else, scripts before
    stylesheets, shorter filenames first. Core ``wp-includes``/``wp-admin``
    files are left out.

    Args:
        urls: Absolute asset URLs from the page.
        limit: Maximum number of assets to return.

    Returns:
        At most ``limit`` URLs in inspection order.
    """
    candidates = [
        url
        for url in deduplicate_urls(urls)
        if is_static_asset(url) and "/wp-includes/" not in url and "/wp-admin/" not in url
    ]
    return sorted(candidates, key=_asset_rank)[:limit]


class AssetInspector:
    """Run the extractors over head/tail windows of one asset."""

    def __init__(
        self,
        fetcher: RangeFetcher,
        window: int | None = None,
        map_window: int = SOURCE_MAP_WINDOW,
        budget: ProbeBudget | None = None,
    ):
        self.fetcher = fetcher
        self.window = window or fetcher.window
        self.map_window = map_window
        self.budget = budget

    async def inspect(self, url: str) -> list[Signal]:
        """Collect signals for one asset URL.

        Args:
            url: Absolute script or stylesheet URL.

        Returns:
            Signals attributed to the asset's component where possible.
        """
        url_identity = path_identity(url)
        signals: list[Signal] = []
        texts: list[str] = []

        fast = self.budget is not None and self.budget.under_pressure()
        if fast:
            head = await self.fetcher.fetch_head_fast(url)
        else:
            head = await self.fetcher.fetch_chunk(url, 0, self.window - 1)
        if isinstance(head, FetchFailure):
            logger.debug("No head for %s: %s", url, head.reason)
            return []

        head_text = decode_chunk(head.content)
        texts.append(head_text)
        found = self._extract(head_text, url, head.headers, Provenance.ASSET_HEADER)
        signals.extend(found)
        content_identity = any(s.subject_hint for s in found)

        if not fast and not any(s.version_raw for s in signals):
            tail = await self.fetcher.fetch_tail(url, self.window)
            if not isinstance(tail, FetchFailure) and tail:
                tail_text = decode_chunk(tail)
                texts.append(tail_text)
                found = self._extract(tail_text, url, None, Provenance.ASSET_TAIL)
                signals.extend(found)
                content_identity = content_identity or any(s.subject_hint for s in found)

        if not fast and not content_identity and url.split("?", 1)[0].lower().endswith(".js"):
            signals.extend(await self._follow_source_map(url, texts))

        if url_identity:
            kind, slug = url_identity
            signals = [s if s.subject_hint else s.with_subject(slug, kind) for s in signals]

        return signals

    def _extract(self, text: str, url: str, headers, provenance: Provenance) -> list[Signal]:
        signals = []
        for signal in run_extractors(text, url=url, headers=headers):
            if signal.provenance in _URL_PROVENANCES:
                continue
            if signal.provenance in _KEEP_PROVENANCES:
                signals.append(signal)
            else:
                signals.append(signal.retag(provenance, source=url))
        return signals

    async def _follow_source_map(self, url: str, texts: list[str]) -> list[Signal]:
        reference = None
        for text in reversed(texts):
            reference = extract_source_map_url(text)
            if reference:
                break
        if not reference:
            return []

        map_url = resolve_url(url, reference)
        chunk = await self.fetcher.fetch_head(map_url, self.map_window)
        if isinstance(chunk, FetchFailure):
            logger.debug("Source map %s unavailable: %s", map_url, chunk.reason)
            return []

        return [
            Signal(
                provenance=Provenance.SOURCE_MAP,
                confidence_weight=SOURCE_MAP_WEIGHT,
                subject_hint=slug,
                kind=kind,
                source=map_url,
            )
            for kind, slug in source_map_identities(decode_chunk(chunk))
        ]
