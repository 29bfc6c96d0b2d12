"""Version normalization, validation and resolution.

Raw version strings come from URL parameters, file banners, readme files and
script constants, so they arrive in many shapes ("v2.3", "'1.0.4'",
"Version 6.4.1-RC2", "2024.05.01"). Everything is funnelled through
``normalize_version`` into ``major.minor.patch[-prerelease]`` before it is
compared or fused.
"""

import re
from collections.abc import Iterable

from pressprobe.models import (
    Provenance,
    Signal,
    VersionCandidate,
    level_for_weight,
)

_PREFIX_RE = re.compile(r"^\s*(?:version\s*[:=]?\s*|v(?=\s*\d))", re.IGNORECASE)
_SEMVER_RE = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?(?:[.-]([0-9A-Za-z.-]+))?")
_CANDIDATE_RE = re.compile(r"^\d+\.\d+(?:\.\d+)*(?:[-+._]?[0-9A-Za-z][0-9A-Za-z.-]*)?$")

_DATE_PATTERNS = [
    re.compile(r"^\d{4}\.\d{1,2}\.\d{1,2}$"),  # YYYY.MM.DD
    re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$"),  # MM.DD.YYYY / DD.MM.YYYY
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"),  # YYYY-MM-DD
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),  # MM-DD-YYYY
]

_CORE_PATTERNS = [
    re.compile(r"^\d+\.\d+(?:\.\d+)?(?:-(?:alpha|beta|rc|dev)\d*)?$", re.IGNORECASE),
    re.compile(r"^\d+\.\d+(?:\.\d+)?-(?:alpha|beta|rc|dev)-\d+$", re.IGNORECASE),
]
CORE_MAJOR_RANGE = (1, 10)
CORE_MINOR_MAX = 99

# Resolution tiers: structured header > file lookup > embedded metadata
# > endpoint-derived > generic pattern
METHOD_PRIORITY: dict[Provenance, int] = {
    Provenance.STRUCTURED_HEADER: 5,
    Provenance.STYLESHEET_HEADER: 5,
    Provenance.META_GENERATOR: 5,
    Provenance.FILE_FETCH: 4,
    Provenance.README: 4,
    Provenance.ASSET_HEADER: 3,
    Provenance.ASSET_TAIL: 3,
    Provenance.SOURCE_MAP: 3,
    Provenance.URL_VERSION_PARAM: 3,
    Provenance.DECLARED_CONSTANT: 3,
    Provenance.INLINE_DATA: 3,
    Provenance.JS_VARIABLE: 3,
    Provenance.HTTP_HEADER: 3,
    Provenance.ENDPOINT_PROBE: 2,
    Provenance.REST_API: 2,
    Provenance.FEED: 2,
}
GENERIC_PRIORITY = 1


def clean_version(raw: str) -> str:
    """Strip quotes, whitespace and leading "v"/"version" markers."""
    text = raw.replace('"', "").replace("'", "").strip()
    return _PREFIX_RE.sub("", text).strip()


def normalize_version(raw: str | None) -> str | None:
    """Render a raw version string canonically.

    Args:
        raw: Version as found in the wild.

    Returns:
        ``major.minor.patch[-prerelease]`` with patch defaulting to 0, or
        None if no ``major.minor`` pair can be found.
    """
    if not raw:
        return None

    match = _SEMVER_RE.search(clean_version(raw))
    if not match:
        return None

    major, minor, patch, prerelease = match.groups()
    canonical = f"{int(major)}.{int(minor)}.{int(patch) if patch else 0}"
    if prerelease:
        canonical += f"-{prerelease}"
    return canonical


def is_valid_version(raw: str | None) -> bool:
    """Check that a raw value is a plausible software version.

    Rejects values without a "." separator, shorter than 3 characters,
    purely numeric values, single characters and calendar dates in either
    day/month order.
    """
    if not raw or not isinstance(raw, str):
        return False

    value = clean_version(raw)
    if len(value) < 3:
        return False
    if "." not in value:
        return False
    if value.isdigit():
        return False
    if any(pattern.match(value) for pattern in _DATE_PATTERNS):
        return False

    return bool(_CANDIDATE_RE.match(value))


def is_valid_core_version(raw: str | None) -> bool:
    """Check that a value is a plausible WordPress core version.

    Major must fall in 1..10 and minor in 0..99, so unrelated numbers
    picked up incidentally (jQuery 3.7, PHP 8.2 build strings) are less
    likely to pass as the platform version.
    """
    if not raw or not isinstance(raw, str):
        return False

    value = clean_version(raw)
    if not any(pattern.match(value) for pattern in _CORE_PATTERNS):
        return False

    major_text, minor_text = value.split(".")[:2]
    major = int(major_text)
    minor = int(re.match(r"\d+", minor_text).group(0))

    low, high = CORE_MAJOR_RANGE
    return low <= major <= high and 0 <= minor <= CORE_MINOR_MAX


def version_specificity(raw: str) -> int:
    """Number of numeric segments in a raw version ("6.4" -> 2, "6.4.1" -> 3)."""
    match = re.match(r"\d+(?:\.\d+)*", clean_version(raw))
    return len(match.group(0).split(".")) if match else 0


def method_priority(provenance: Provenance) -> int:
    return METHOD_PRIORITY.get(provenance, GENERIC_PRIORITY)


def dedupe_candidates(signals: Iterable[Signal]) -> dict[str, VersionCandidate]:
    """Collapse version signals onto their normalized value.

    Raw strings normalizing to the same canonical version keep only the
    highest-weight signal. Invalid versions are dropped silently.

    Args:
        signals: Signals, with or without versions.

    Returns:
        Mapping of normalized version to its strongest candidate.
    """
    candidates: dict[str, VersionCandidate] = {}

    for signal in signals:
        candidate = candidate_from_signal(signal)
        if candidate is None:
            continue
        existing = candidates.get(candidate.version)
        if existing is None or _candidate_key(candidate) > _candidate_key(existing):
            candidates[candidate.version] = candidate

    return candidates


def candidate_from_signal(signal: Signal) -> VersionCandidate | None:
    """Build a candidate from a signal's raw version, if it validates."""
    raw = signal.version_raw
    if not raw or not is_valid_version(raw):
        return None

    normalized = normalize_version(raw)
    if normalized is None:
        return None

    return VersionCandidate(
        version=normalized,
        raw=clean_version(raw),
        weight=signal.confidence_weight,
        provenance=signal.provenance,
        level=level_for_weight(signal.confidence_weight),
    )


def _candidate_key(candidate: VersionCandidate) -> tuple[float, int, int]:
    return (
        candidate.weight,
        method_priority(candidate.provenance),
        version_specificity(candidate.raw),
    )


def _rank_key(candidate: VersionCandidate) -> tuple[int, int, int, float, str]:
    return (
        candidate.level.rank,
        method_priority(candidate.provenance),
        version_specificity(candidate.raw),
        candidate.weight,
        candidate.version,
    )


def resolve_version(candidates: Iterable[VersionCandidate]) -> VersionCandidate | None:
    """Pick the single best version among conflicting candidates.

    Ranking: categorical level of the source, then method priority, then
    version specificity. Weight and the version string itself only break
    remaining ties so the result is deterministic.
    """
    ranked = sorted(candidates, key=_rank_key, reverse=True)
    return ranked[0] if ranked else None


def parse_version_tuple(version: str) -> tuple[int, ...]:
    """Numeric release segments of a version, ignoring any prerelease tag."""
    normalized = normalize_version(version) or clean_version(version)
    release = normalized.split("-", 1)[0]
    parts = []
    for piece in release.split("."):
        digits = re.match(r"\d+", piece)
        parts.append(int(digits.group(0)) if digits else 0)
    return tuple(parts)


def compare_versions(v1: str, v2: str) -> int:
    """Compare two version strings.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2. Missing values compare equal.
    """
    if not v1 or not v2:
        return 0

    p1 = parse_version_tuple(v1)
    p2 = parse_version_tuple(v2)
    width = max(len(p1), len(p2))
    p1 = p1 + (0,) * (width - len(p1))
    p2 = p2 + (0,) * (width - len(p2))

    if p1 < p2:
        return -1
    if p1 > p2:
        return 1
    return 0


def is_older(version: str, reference: str) -> bool:
    """True if ``version`` is strictly older than ``reference``."""
    return compare_versions(version, reference) < 0

