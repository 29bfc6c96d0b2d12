"""Platform detection - is this WordPress, and which version.

Platform evidence is fused with the same rules as plugins under the single
identity ``wordpress``. The version path reads the page first and only goes
to the network (readme.html, REST index, OPML, feed) when the page gives no
high-confidence answer.
"""

import logging
from collections import Counter
from urllib.parse import parse_qs, urlparse

import httpx

from pressprobe.events import EventHook, LoggingHook
from pressprobe.extract.patterns import (
    CORE_COMMENT_PATTERNS,
    CORE_GENERATOR_RE,
    CORE_HTML_INDICATORS,
    CORE_JS_VERSION_PATTERNS,
    CORE_SELECTORS,
    CORE_VERSION_ENDPOINTS,
    CoreVersionEndpoint,
)
from pressprobe.extract.versions import candidate_from_signal, is_valid_core_version, resolve_version
from pressprobe.fusion.scorer import EvidenceFuser
from pressprobe.models import (
    ConfidenceLevel,
    EntityKind,
    EntitySnapshot,
    Provenance,
    Signal,
    VersionRecord,
)
from pressprobe.net.page import PageSnapshot
from pressprobe.net.urls import join_path
from pressprobe.probes.budget import ProbeBudget
from pressprobe.probes.runner import NetworkProbe, run_probes

logger = logging.getLogger(__name__)

PLATFORM = "wordpress"
GENERATOR_WEIGHT = 0.95
COMMENT_WEIGHT = 0.7
JS_VERSION_WEIGHT = 0.75
CORE_ASSET_VERSION_WEIGHT = 0.6
HEADER_WEIGHT = 0.85

ENDPOINT_PROVENANCE: dict[str, Provenance] = {
    "readme_file": Provenance.README,
    "rest_api": Provenance.REST_API,
    "opml_file": Provenance.FILE_FETCH,
    "rss_feed": Provenance.FEED,
}

# Bundled libraries under wp-includes carry their own version numbers
_THIRD_PARTY_CORE_ASSETS = ("jquery", "underscore", "backbone", "imagesloaded", "masonry", "hoverintent")


def _core_signal(provenance: Provenance, weight: float, source: str, version: str | None = None) -> Signal:
    return Signal(
        provenance=provenance,
        confidence_weight=weight,
        subject_hint=PLATFORM,
        version_raw=version,
        kind=EntityKind.CORE,
        source=source,
        display_name="WordPress",
    )


class CoreVersionDetector:
    """Platform identification and version lookup."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        budget: ProbeBudget | None = None,
        hook: EventHook | None = None,
        concurrency: int = 4,
    ):
        self.client = client
        self.budget = budget or ProbeBudget()
        self.hook = hook or LoggingHook()
        self.concurrency = concurrency

    def platform_signals(self, page: PageSnapshot) -> list[Signal]:
        """Identity evidence that the page is served by WordPress."""
        signals: list[Signal] = []

        for pattern, label, weight in CORE_HTML_INDICATORS:
            if pattern.search(page.html):
                signals.append(_core_signal(Provenance.CONTENT_PATTERN, weight, label))

        for selector, label, weight in CORE_SELECTORS:
            if page.soup.select_one(selector) is not None:
                signals.append(_core_signal(Provenance.SELECTOR, weight, label))

        generator = page.soup.find("meta", attrs={"name": "generator"})
        if generator and CORE_GENERATOR_RE.search(generator.get("content") or ""):
            signals.append(_core_signal(Provenance.META_GENERATOR, GENERATOR_WEIGHT, "meta generator"))

        link_header = page.headers.get("link", "")
        if "api.w.org" in link_header:
            signals.append(_core_signal(Provenance.HTTP_HEADER, HEADER_WEIGHT, "Link: api.w.org"))
        if "xmlrpc.php" in page.headers.get("x-pingback", ""):
            signals.append(_core_signal(Provenance.HTTP_HEADER, HEADER_WEIGHT, "X-Pingback"))

        body_classes = page.body_classes()
        if any(c.startswith(("wp-theme-", "wp-embed-", "wp-custom-logo")) for c in body_classes):
            signals.append(_core_signal(Provenance.BODY_CLASS, 0.6, "body class"))

        if any(p.search(page.html) for p in CORE_COMMENT_PATTERNS):
            signals.append(_core_signal(Provenance.HTML_COMMENT, COMMENT_WEIGHT, "HTML comment"))

        return signals

    def detect_platform(self, page: PageSnapshot) -> EntitySnapshot | None:
        """Fuse platform evidence into a ``wordpress`` entity, if any."""
        fuser = EvidenceFuser(default_kind=EntityKind.CORE).add_all(self.platform_signals(page))
        snapshots = fuser.snapshots()
        return snapshots[0] if snapshots else None

    def local_version_signals(self, page: PageSnapshot) -> list[Signal]:
        """Version evidence available in the page itself."""
        signals: list[Signal] = []

        for tag in page.soup.find_all("meta", attrs={"name": "generator"}):
            match = CORE_GENERATOR_RE.search(tag.get("content") or "")
            if match:
                signals.append(
                    _core_signal(Provenance.META_GENERATOR, GENERATOR_WEIGHT, "meta generator", match.group(1))
                )
                break

        for pattern in CORE_COMMENT_PATTERNS:
            match = pattern.search(page.html)
            if match:
                signals.append(_core_signal(Provenance.HTML_COMMENT, COMMENT_WEIGHT, "HTML comment", match.group(1)))
                break

        scripts = "\n".join(page.inline_scripts())
        for pattern in CORE_JS_VERSION_PATTERNS:
            match = pattern.search(scripts)
            if match:
                signals.append(_core_signal(Provenance.JS_VARIABLE, JS_VERSION_WEIGHT, "inline script", match.group(1)))
                break

        asset_version = self._core_asset_version(page)
        if asset_version:
            signals.append(
                _core_signal(Provenance.URL_VERSION_PARAM, CORE_ASSET_VERSION_WEIGHT, "wp-includes assets", asset_version)
            )

        return [s for s in signals if is_valid_core_version(s.version_raw)]

    def _core_asset_version(self, page: PageSnapshot) -> str | None:
        """Most common ``?ver=`` across core-owned wp-includes assets."""
        versions: Counter[str] = Counter()
        for url in page.asset_urls():
            parsed = urlparse(url)
            path = parsed.path.lower()
            if "/wp-includes/" not in path or any(lib in path for lib in _THIRD_PARTY_CORE_ASSETS):
                continue
            value = parse_qs(parsed.query).get("ver", [None])[0]
            if value and is_valid_core_version(value):
                versions[value] += 1
        if not versions:
            return None
        return versions.most_common(1)[0][0]

    async def probe_version_endpoint(self, base_url: str, endpoint: CoreVersionEndpoint) -> list[Signal]:
        """Fetch one well-known file and pull the version out of it."""
        url = join_path(base_url, endpoint.path)
        try:
            response = await self.client.get(url, timeout=self.budget.per_probe_timeout)
        except httpx.HTTPError as e:
            logger.debug("Core version probe %s failed: %s", url, e)
            return []

        if response.status_code != 200:
            return []

        provenance = ENDPOINT_PROVENANCE.get(endpoint.method, Provenance.ENDPOINT_PROBE)
        version = None

        if endpoint.pattern is None:
            try:
                data = response.json()
            except ValueError:
                return []
            if isinstance(data, dict):
                version = data.get("wordpress_version") or data.get("version")
                if not isinstance(version, str):
                    version = None
        else:
            match = endpoint.pattern.search(response.text)
            version = match.group(1) if match else None

        if not version or not is_valid_core_version(version):
            return []
        return [_core_signal(provenance, endpoint.weight, endpoint.path, version)]

    async def detect_version(self, page: PageSnapshot, base_url: str | None = None) -> VersionRecord:
        """Best platform-version record for the site.

        Args:
            page: Fetched main page.
            base_url: Site root; defaults to the page URL.

        Returns:
            VersionRecord, ``VersionRecord.unknown()`` when nothing is found.
        """
        if self.budget.started_at is None:
            self.budget.start()
        base_url = base_url or page.url

        signals = self.local_version_signals(page)
        best = resolve_version(c for c in map(candidate_from_signal, signals) if c)

        if best is None or best.level != ConfidenceLevel.HIGH:
            if self.budget.exceeded():
                logger.debug("Budget exhausted before core version probes")
            else:
                probes = [
                    NetworkProbe(
                        f"core:{endpoint.path}",
                        lambda e=endpoint: self.probe_version_endpoint(base_url, e),
                        "core",
                    )
                    for endpoint in CORE_VERSION_ENDPOINTS
                ]
                outcomes = await run_probes(probes, self.budget, self.concurrency, self.hook, "core")
                for outcome in outcomes:
                    signals.extend(outcome.signals)
                best = resolve_version(c for c in map(candidate_from_signal, signals) if c)

        if best is None:
            return VersionRecord.unknown()

        source = next(
            (s.source for s in signals if s.provenance == best.provenance and s.version_raw),
            None,
        )
        return VersionRecord(
            version=best.version,
            method=best.provenance.value,
            confidence_level=best.level,
            source=source,
        )
