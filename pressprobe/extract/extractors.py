"""Signal extractors - pure functions from text content to raw signals.

Every strategy exposes ``extract(content, url=None, headers=None)`` and never
touches the network. ``DEFAULT_EXTRACTORS`` lists them in precedence order,
most specific and reliable first.
"""

import json
import re
from collections.abc import Mapping, Sequence
from urllib.parse import parse_qs, urlparse

from pressprobe.extract.patterns import WP_CONTENT_PATH_RE
from pressprobe.extract.versions import is_valid_version
from pressprobe.models import EntityKind, Provenance, Signal

SOURCE_MAP_RE = re.compile(r"[#@]\s*sourceMappingURL=([^\s*]+)\s*(?:\*/)?\s*$", re.MULTILINE)

_NAME_HINT_RE = re.compile(
    r"[\"']?(?:plugin|theme|package)(?:_name)?[\"']?\s*[:=]\s*[\"']([^\"']+)[\"']", re.IGNORECASE
)

_LEADING_BANNER_RE = re.compile(r"\A\ufeff?\s*(?:<\?php\s*)?(/\*.*?(?:\*/|\Z)|(?://[^\n]*(?:\n|\Z)[ \t]*)+)", re.DOTALL)


def path_identity(text: str) -> tuple[EntityKind, str] | None:
    """Find the first ``wp-content/(plugins|themes)/<slug>`` segment.

    Args:
        text: URL or content to search.

    Returns:
        (kind, slug) or None.
    """
    match = WP_CONTENT_PATH_RE.search(text or "")
    if not match:
        return None
    kind = EntityKind.PLUGIN if match.group(1) == "plugins" else EntityKind.THEME
    return kind, match.group(2)


def all_path_identities(text: str) -> list[tuple[EntityKind, str]]:
    """All distinct path identities in order of first appearance."""
    found: list[tuple[EntityKind, str]] = []
    for match in WP_CONTENT_PATH_RE.finditer(text or ""):
        kind = EntityKind.PLUGIN if match.group(1) == "plugins" else EntityKind.THEME
        item = (kind, match.group(2))
        if item not in found:
            found.append(item)
    return found


def extract_source_map_url(text: str) -> str | None:
    """Return the last ``sourceMappingURL`` reference in script text."""
    matches = SOURCE_MAP_RE.findall(text or "")
    if not matches:
        return None
    reference = matches[-1].strip()
    # Inline data URIs carry no path we can follow
    if reference.startswith("data:"):
        return None
    return reference


def source_map_identities(text: str) -> list[tuple[EntityKind, str]]:
    """Identities named by a source map's ``sources`` list.

    Falls back to a plain-text search when the map does not parse, which is
    the normal case for a truncated prefix of a large map.
    """
    try:
        data = json.loads(text)
    except ValueError:
        return all_path_identities(text)

    if not isinstance(data, dict):
        return all_path_identities(text)

    sources = data.get("sources")
    if not isinstance(sources, list):
        return []

    found: list[tuple[EntityKind, str]] = []
    for source in sources:
        if not isinstance(source, str):
            continue
        identity = path_identity(source)
        if identity and identity not in found:
            found.append(identity)
    return found


def _longest_valid(values: Sequence[str]) -> str | None:
    valid = [v.strip() for v in values if is_valid_version(v.strip())]
    if not valid:
        return None
    return sorted(valid, key=len, reverse=True)[0]


class Extractor:
    """Base strategy. Subclasses set ``name`` and ``precedence``."""

    name = "extractor"
    precedence = 100
    fallback_only = False

    def extract(
        self,
        content: str,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Signal]:
        raise NotImplementedError


def leading_banner(content: str) -> str:
    """The comment block a file starts with, or "" when it starts with code.

    Allows a byte order mark and a ``<?php`` opener before the comment. A
    block cut off by the fetch window runs to the end of the text.
    """
    match = _LEADING_BANNER_RE.match(content or "")
    return match.group(1) if match else ""


class StructuredHeaderExtractor(Extractor):
    """Parse "Name:/Version:/Author:" banners at the top of plugin and theme files.

    Emits one signal per banner, carrying the version too when the banner
    has a valid one. WordPress "Plugin Name:"/"Theme Name:" headers are only
    read from the leading comment block.
    """

    name = "structured_header"
    precedence = 10
    weight = 0.95

    # (name pattern, version pattern, kind, leading banner only)
    HEADER_FORMATS: tuple[tuple[re.Pattern, re.Pattern, EntityKind, bool], ...] = (
        (
            re.compile(r"Plugin Name:\s*(.+?)\s*(?:\*/)?\s*$", re.IGNORECASE | re.MULTILINE),
            re.compile(r"^[\s*#/]*Version:\s*([0-9][0-9a-zA-Z.+-]*)", re.IGNORECASE | re.MULTILINE),
            EntityKind.PLUGIN,
            True,
        ),
        (
            re.compile(r"/\*\*?[\s*]*@plugin\s+([^\n\r*]+)", re.IGNORECASE),
            re.compile(r"@version\s+([0-9][0-9a-zA-Z.+-]*)", re.IGNORECASE),
            EntityKind.PLUGIN,
            False,
        ),
        (
            re.compile(r"//\s*Plugin:\s*([^\n\r]+)", re.IGNORECASE),
            re.compile(r"//\s*Version:\s*([0-9][0-9a-zA-Z.+-]*)", re.IGNORECASE),
            EntityKind.PLUGIN,
            False,
        ),
        (
            re.compile(r"Theme Name:\s*(.+?)\s*(?:\*/)?\s*$", re.IGNORECASE | re.MULTILINE),
            re.compile(r"^[\s*#/]*Version:\s*([0-9][0-9a-zA-Z.+-]*)", re.IGNORECASE | re.MULTILINE),
            EntityKind.THEME,
            True,
        ),
    )

    def extract(self, content, url=None, headers=None):
        banner = leading_banner(content)
        for name_re, version_re, kind, banner_only in self.HEADER_FORMATS:
            text = banner if banner_only else content or ""
            name_match = name_re.search(text)
            if not name_match:
                continue

            display_name = name_match.group(1).strip()
            if not display_name:
                continue

            subject = display_name
            url_identity = path_identity(url) if url else None
            if url_identity and url_identity[0] == kind:
                subject = url_identity[1]

            version_match = version_re.search(text)
            version = version_match.group(1) if version_match else None
            return [
                Signal(
                    provenance=Provenance.STRUCTURED_HEADER,
                    confidence_weight=self.weight,
                    subject_hint=subject,
                    version_raw=version if is_valid_version(version) else None,
                    kind=kind,
                    source=url or "",
                    display_name=display_name,
                )
            ]

        return []


class PathIdentityExtractor(Extractor):
    """Derive plugin/theme slugs from ``wp-content`` directory segments."""

    name = "path_identity"
    precedence = 20
    weight = 0.7

    def extract(self, content, url=None, headers=None):
        signals: list[Signal] = []
        seen: set[tuple[EntityKind, str]] = set()

        if url:
            identity = path_identity(url)
            if identity:
                seen.add(identity)
                signals.append(
                    Signal(
                        provenance=Provenance.URL_PATH,
                        confidence_weight=self.weight,
                        subject_hint=identity[1],
                        kind=identity[0],
                        source=url,
                    )
                )

        # Banner comments and bundled paths inside the content itself
        for identity in all_path_identities(content):
            if identity in seen:
                continue
            seen.add(identity)
            signals.append(
                Signal(
                    provenance=Provenance.HTML_REFERENCE,
                    confidence_weight=self.weight,
                    subject_hint=identity[1],
                    kind=identity[0],
                    source=url or "content",
                )
            )

        return signals


class UrlVersionParamExtractor(Extractor):
    """Read ``?ver=`` / ``?version=`` cache-busting parameters."""

    name = "url_version_param"
    precedence = 25
    weight = 0.9
    PARAMS = ("ver", "version")

    def extract(self, content, url=None, headers=None):
        if not url:
            return []

        query = parse_qs(urlparse(url).query)
        for param in self.PARAMS:
            values = query.get(param)
            if not values or not is_valid_version(values[0]):
                continue

            identity = path_identity(url)
            return [
                Signal(
                    provenance=Provenance.URL_VERSION_PARAM,
                    confidence_weight=self.weight,
                    subject_hint=identity[1] if identity else None,
                    version_raw=values[0],
                    kind=identity[0] if identity else EntityKind.UNKNOWN,
                    source=url,
                )
            ]

        return []


class DeclaredConstantExtractor(Extractor):
    """Source-level version constants scoped to plugin/theme contexts."""

    name = "declared_constant"
    precedence = 30

    _V = r"([0-9][0-9a-zA-Z.-]+)"

    # (patterns, kind, weight, requires plugin/theme context)
    PATTERN_FAMILIES: tuple[tuple[tuple[re.Pattern, ...], EntityKind, float, bool], ...] = (
        (
            (
                re.compile(r"[\"']plugin_version[\"']\s*:\s*[\"']" + _V + r"[\"']", re.I),
                re.compile(r"plugin_version[\"'\s]*[:=][\"'\s]*" + _V, re.I),
                re.compile(r"const\s+PLUGIN_VERSION\s*=\s*[\"']" + _V + r"[\"']", re.I),
                re.compile(r"define\s*\(\s*[\"']\w*PLUGIN_VERSION[\"']\s*,\s*[\"']" + _V + r"[\"']", re.I),
            ),
            EntityKind.PLUGIN,
            0.75,
            False,
        ),
        (
            (
                re.compile(r"[\"']theme_version[\"']\s*:\s*[\"']" + _V + r"[\"']", re.I),
                re.compile(r"theme_version[\"'\s]*[:=][\"'\s]*" + _V, re.I),
            ),
            EntityKind.THEME,
            0.75,
            False,
        ),
        (
            (
                re.compile(r"\w+_version[\"'\s]*[:=][\"'\s]*" + _V, re.I),
                re.compile(r"[\"']version[\"']\s*:\s*[\"']" + _V + r"[\"']", re.I),
            ),
            EntityKind.UNKNOWN,
            0.6,
            True,
        ),
    )

    def extract(self, content, url=None, headers=None):
        text = content or ""
        has_context = bool(re.search(r"plugin|theme", text, re.IGNORECASE))

        for patterns, kind, weight, needs_context in self.PATTERN_FAMILIES:
            if needs_context and not has_context:
                continue

            values: list[str] = []
            for pattern in patterns:
                values.extend(match.group(1) for match in pattern.finditer(text))

            version = _longest_valid(values)
            if version is None:
                continue

            subject, resolved_kind, display_name = _subject_for(text, url, kind)
            return [
                Signal(
                    provenance=Provenance.DECLARED_CONSTANT,
                    confidence_weight=weight,
                    subject_hint=subject,
                    version_raw=version,
                    kind=resolved_kind,
                    source=url or "content",
                    display_name=display_name,
                )
            ]

        return []


class HttpHeaderVersionExtractor(Extractor):
    """Explicit version response headers some plugins add to their assets."""

    name = "http_header"
    precedence = 40
    weight = 0.8
    HEADERS = ("x-plugin-version", "x-theme-version", "x-version")
    ETAG_RE = re.compile(r"(?<![\w.])v?(\d+\.\d+(?:\.\d+)?)(?![\w.])")
    etag_weight = 0.5

    def extract(self, content, url=None, headers=None):
        if not headers:
            return []

        lowered = {k.lower(): v for k, v in headers.items()}
        identity = path_identity(url) if url else None
        for header in self.HEADERS:
            value = lowered.get(header)
            if not value or not is_valid_version(value):
                continue

            return [
                Signal(
                    provenance=Provenance.HTTP_HEADER,
                    confidence_weight=self.weight,
                    subject_hint=identity[1] if identity else None,
                    version_raw=value.strip(),
                    kind=identity[0] if identity else EntityKind.UNKNOWN,
                    source=f"{header} header",
                )
            ]

        # Release number embedded in the ETag, e.g. "v2.3.1-5f3a"
        match = self.ETAG_RE.search(lowered.get("etag", ""))
        if identity and match and is_valid_version(match.group(1)):
            return [
                Signal(
                    provenance=Provenance.HTTP_HEADER,
                    confidence_weight=self.etag_weight,
                    subject_hint=identity[1],
                    version_raw=match.group(1),
                    kind=identity[0],
                    source="etag header",
                )
            ]

        return []


class GenericVersionExtractor(Extractor):
    """Last-resort version-looking tokens, only in content that says "plugin"."""

    name = "generic_version"
    precedence = 90
    weight = 0.4
    fallback_only = True

    PATTERNS: tuple[re.Pattern, ...] = (
        re.compile(r"version[\"'\s]*[:=][\"'\s]*([0-9][0-9a-zA-Z.-]+)", re.I),
        re.compile(r"\bv\s*[:=]\s*[\"']([0-9][0-9a-zA-Z.-]+)[\"']", re.I),
        re.compile(r"[\"']ver[\"']\s*:\s*[\"']([0-9][0-9a-zA-Z.-]+)[\"']", re.I),
    )

    def extract(self, content, url=None, headers=None):
        text = content or ""
        if "plugin" not in text.lower():
            return []

        for pattern in self.PATTERNS:
            version = _longest_valid([m.group(1) for m in pattern.finditer(text)])
            if version is None:
                continue

            subject, kind, display_name = _subject_for(text, url, EntityKind.UNKNOWN)
            return [
                Signal(
                    provenance=Provenance.GENERIC_VERSION,
                    confidence_weight=self.weight,
                    subject_hint=subject,
                    version_raw=version,
                    kind=kind,
                    source=url or "content",
                    display_name=display_name,
                )
            ]

        return []


def _subject_for(
    text: str,
    url: str | None,
    default_kind: EntityKind,
) -> tuple[str | None, EntityKind, str | None]:
    """Attribute a version found in content to the asset's slug or a named package."""
    identity = path_identity(url) if url else None
    name_match = _NAME_HINT_RE.search(text)
    display_name = name_match.group(1).strip() if name_match else None

    if identity:
        return identity[1], identity[0], display_name
    if display_name:
        kind = default_kind if default_kind != EntityKind.UNKNOWN else EntityKind.PLUGIN
        return display_name, kind, display_name
    return None, default_kind, None


DEFAULT_EXTRACTORS: tuple[Extractor, ...] = tuple(
    sorted(
        (
            StructuredHeaderExtractor(),
            PathIdentityExtractor(),
            UrlVersionParamExtractor(),
            DeclaredConstantExtractor(),
            HttpHeaderVersionExtractor(),
            GenericVersionExtractor(),
        ),
        key=lambda extractor: extractor.precedence,
    )
)


def run_extractors(
    content: str,
    url: str | None = None,
    headers: Mapping[str, str] | None = None,
    extractors: Sequence[Extractor] = DEFAULT_EXTRACTORS,
) -> list[Signal]:
    """Run every extractor in precedence order and collect their signals.

    Fallback-only strategies run only when nothing earlier produced a
    version.

    Args:
        content: Decoded text (page, partial asset, banner).
        url: URL the content came from, if any.
        headers: Response headers, if any.
        extractors: Strategies to apply.

    Returns:
        All signals, in extractor precedence order.
    """
    signals: list[Signal] = []

    for extractor in extractors:
        if extractor.fallback_only and any(s.version_raw for s in signals):
            continue
        signals.extend(extractor.extract(content, url, headers))

    return signals


def decode_chunk(chunk: bytes) -> str:
    """Decode a partial byte window, tolerating cut multi-byte sequences."""
    return chunk.decode("utf-8", errors="replace")
