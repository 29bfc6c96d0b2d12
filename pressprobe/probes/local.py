"""Local scans - signals read from the fetched page without further requests.

Each scan takes a ``PageSnapshot`` and returns a list of signals. They are
synchronous and cheap; the orchestrator runs all of them before any network
probe is considered.
"""

import re
from collections.abc import Iterable

from pressprobe.extract.extractors import (
    DeclaredConstantExtractor,
    PathIdentityExtractor,
    UrlVersionParamExtractor,
    all_path_identities,
    path_identity,
)
from pressprobe.extract.patterns import (
    JS_VARIABLES,
    META_TAG_PATTERNS,
    PLUGIN_COMMENT_PATTERNS,
    PLUGIN_INDICATORS,
    PLUGIN_SELECTORS,
    THEME_BODY_CLASS_IGNORE,
    THEME_BODY_CLASS_PATTERNS,
    IndicatorPattern,
    JsVariableRule,
    MetaTagRule,
    SelectorRule,
)
from pressprobe.extract.versions import is_valid_version
from pressprobe.models import EntityKind, Provenance, Signal
from pressprobe.net.page import PageSnapshot

CONTENT_PATTERN_WEIGHT = 0.5
SELECTOR_WEIGHT = 0.65
JS_VARIABLE_WEIGHT = 0.75
META_TAG_WEIGHT = 0.8
HTML_COMMENT_WEIGHT = 0.8
INLINE_DATA_WEIGHT = 0.7
THEME_STYLESHEET_WEIGHT = 0.85
BODY_CLASS_WEIGHT = 0.6

_META_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)")
_THEME_STYLESHEET_RE = re.compile(r"wp-content/themes/([a-zA-Z0-9_-]+)/style\.css")


def scan_content_patterns(
    page: PageSnapshot,
    indicators: Iterable[IndicatorPattern] = PLUGIN_INDICATORS,
) -> list[Signal]:
    """Regex indicators anywhere in the raw markup."""
    signals: list[Signal] = []
    for indicator in indicators:
        if indicator.pattern.search(page.html):
            signals.append(
                Signal(
                    provenance=Provenance.CONTENT_PATTERN,
                    confidence_weight=CONTENT_PATTERN_WEIGHT,
                    subject_hint=indicator.slug,
                    kind=EntityKind.PLUGIN,
                    source=indicator.pattern.pattern,
                    display_name=indicator.display_name,
                )
            )
    return signals


def scan_selectors(
    page: PageSnapshot,
    rules: Iterable[SelectorRule] = PLUGIN_SELECTORS,
) -> list[Signal]:
    """CSS selector matches in the parsed DOM."""
    signals: list[Signal] = []
    for rule in rules:
        if page.soup.select_one(rule.selector) is not None:
            signals.append(
                Signal(
                    provenance=Provenance.SELECTOR,
                    confidence_weight=SELECTOR_WEIGHT,
                    subject_hint=rule.slug,
                    kind=EntityKind.PLUGIN,
                    source=rule.selector,
                    display_name=rule.display_name,
                )
            )
    return signals


def scan_js_variables(
    page: PageSnapshot,
    rules: Iterable[JsVariableRule] = JS_VARIABLES,
) -> list[Signal]:
    """Globals plugins localize into inline scripts."""
    scripts = "\n".join(page.inline_scripts())
    if not scripts:
        return []

    signals: list[Signal] = []
    for rule in rules:
        name = re.escape(rule.variable)
        pattern = rf"(?:\bvar|\blet|\bconst|window\.)\s*{name}\b\s*=|\b{name}\s*=\s*\{{"
        if re.search(pattern, scripts):
            signals.append(
                Signal(
                    provenance=Provenance.JS_VARIABLE,
                    confidence_weight=JS_VARIABLE_WEIGHT,
                    subject_hint=rule.slug,
                    kind=EntityKind.PLUGIN,
                    source=rule.variable,
                    display_name=rule.display_name,
                )
            )
    return signals


def scan_meta_tags(
    page: PageSnapshot,
    rules: Iterable[MetaTagRule] = META_TAG_PATTERNS,
) -> list[Signal]:
    """Generator and other meta tags naming a plugin, with version if given."""
    signals: list[Signal] = []
    for rule in rules:
        attrs = {"name": rule.name} if rule.name else {"property": rule.property}
        for tag in page.soup.find_all("meta", attrs=attrs):
            content = tag.get("content") or ""
            if not rule.pattern.search(content):
                continue

            version_match = _META_VERSION_RE.search(content)
            version = version_match.group(1) if version_match else None
            signals.append(
                Signal(
                    provenance=Provenance.META_TAG,
                    confidence_weight=META_TAG_WEIGHT,
                    subject_hint=rule.slug,
                    version_raw=version if is_valid_version(version) else None,
                    kind=EntityKind.PLUGIN,
                    source=f"meta {rule.name or rule.property}: {content[:60]}",
                    display_name=rule.display_name,
                )
            )
            break
    return signals


def scan_html_comments(
    page: PageSnapshot,
    patterns: Iterable[IndicatorPattern] = PLUGIN_COMMENT_PATTERNS,
) -> list[Signal]:
    """Banner comments plugins print into the markup."""
    signals: list[Signal] = []
    for indicator in patterns:
        match = indicator.pattern.search(page.html)
        if not match:
            continue

        version = match.group(1) if match.groups() else None
        signals.append(
            Signal(
                provenance=Provenance.HTML_COMMENT,
                confidence_weight=HTML_COMMENT_WEIGHT,
                subject_hint=indicator.slug,
                version_raw=version if is_valid_version(version) else None,
                kind=EntityKind.PLUGIN,
                source=match.group(0)[:80],
                display_name=indicator.display_name,
            )
        )
    return signals


def scan_asset_paths(page: PageSnapshot) -> list[Signal]:
    """Slugs and ``?ver=`` values from script/style URLs, then other references."""
    path_extractor = PathIdentityExtractor()
    version_extractor = UrlVersionParamExtractor()

    signals: list[Signal] = []
    seen: set[tuple[EntityKind, str]] = set()

    for url in page.asset_urls():
        identity = path_identity(url)
        if identity is None:
            continue
        seen.add(identity)
        signals.extend(path_extractor.extract("", url=url))
        signals.extend(version_extractor.extract("", url=url))

    # Images, fonts and links that point into plugin/theme directories
    for kind, slug in all_path_identities(page.html):
        if (kind, slug) in seen:
            continue
        seen.add((kind, slug))
        signals.append(
            Signal(
                provenance=Provenance.HTML_REFERENCE,
                confidence_weight=path_extractor.weight,
                subject_hint=slug,
                kind=kind,
                source=f"wp-content/{kind.value}s/{slug}",
            )
        )

    return signals


def scan_inline_data(page: PageSnapshot) -> list[Signal]:
    """Version constants inside inline scripts (localized plugin settings)."""
    extractor = DeclaredConstantExtractor()
    signals: list[Signal] = []

    for script in page.inline_scripts():
        for signal in extractor.extract(script):
            if not signal.subject_hint:
                continue
            signals.append(
                Signal(
                    provenance=Provenance.INLINE_DATA,
                    confidence_weight=INLINE_DATA_WEIGHT,
                    subject_hint=signal.subject_hint,
                    version_raw=signal.version_raw,
                    kind=signal.kind,
                    source="inline script",
                    display_name=signal.display_name,
                )
            )

    return signals


def scan_theme(page: PageSnapshot) -> list[Signal]:
    """Active theme from the main stylesheet link and body classes."""
    signals: list[Signal] = []

    for url in page.asset_urls():
        match = _THEME_STYLESHEET_RE.search(url)
        if match:
            signals.append(
                Signal(
                    provenance=Provenance.HTML_REFERENCE,
                    confidence_weight=THEME_STYLESHEET_WEIGHT,
                    subject_hint=match.group(1),
                    kind=EntityKind.THEME,
                    source=url,
                )
            )

    for css_class in page.body_classes():
        for pattern in THEME_BODY_CLASS_PATTERNS:
            match = pattern.match(css_class)
            if not match:
                continue
            slug = match.group(1)
            if slug.lower() in THEME_BODY_CLASS_IGNORE:
                break
            signals.append(
                Signal(
                    provenance=Provenance.BODY_CLASS,
                    confidence_weight=BODY_CLASS_WEIGHT,
                    subject_hint=slug,
                    kind=EntityKind.THEME,
                    source=f"body.{css_class}",
                )
            )
            break

    return signals


LOCAL_SCANS = (
    scan_content_patterns,
    scan_selectors,
    scan_js_variables,
    scan_meta_tags,
    scan_html_comments,
    scan_asset_paths,
    scan_inline_data,
    scan_theme,
)


def run_local_scans(page: PageSnapshot) -> list[Signal]:
    """Run every local scan over one page."""
    signals: list[Signal] = []
    for scan in LOCAL_SCANS:
        signals.extend(scan(page))
    return signals
