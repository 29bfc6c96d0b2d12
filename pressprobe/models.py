"""Evidence model - signals, fused entities and version records."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Provenance(str, Enum):
    """Detection method that produced a signal."""

    CONTENT_PATTERN = "content-pattern"
    SELECTOR = "selector"
    JS_VARIABLE = "js-variable"
    META_TAG = "meta-tag"
    INLINE_DATA = "inline-data"
    HTML_REFERENCE = "html-reference"
    HTML_COMMENT = "html-comment"
    BODY_CLASS = "body-class"
    ENDPOINT_PROBE = "endpoint-probe"
    REST_API = "rest-api"
    FEED = "feed"
    ASSET_HEADER = "asset-header"
    ASSET_TAIL = "asset-tail"
    SOURCE_MAP = "source-map"
    FILE_FETCH = "file-fetch"
    README = "readme"
    URL_PATH = "url-path"
    URL_VERSION_PARAM = "url-version-param"
    STRUCTURED_HEADER = "structured-header"
    STYLESHEET_HEADER = "stylesheet-header"
    DECLARED_CONSTANT = "declared-constant"
    GENERIC_VERSION = "generic-version"
    META_GENERATOR = "meta-generator"
    HTTP_HEADER = "http-header"


class EntityKind(str, Enum):
    """What a candidate identity refers to."""

    PLUGIN = "plugin"
    THEME = "theme"
    CORE = "core"
    UNKNOWN = "unknown"


class ConfidenceLevel(str, Enum):
    """Categorical confidence, ordered low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @property
    def multiplier(self) -> float:
        """Score multiplier applied to a signal type weight."""
        return _LEVEL_MULTIPLIER[self]


_LEVEL_RANK = {ConfidenceLevel.LOW: 1, ConfidenceLevel.MEDIUM: 2, ConfidenceLevel.HIGH: 3}
_LEVEL_MULTIPLIER = {
    ConfidenceLevel.LOW: 0.4,
    ConfidenceLevel.MEDIUM: 0.7,
    ConfidenceLevel.HIGH: 1.0,
}

# Weight thresholds for the categorical level of a single signal
HIGH_WEIGHT = 0.8
MEDIUM_WEIGHT = 0.6


def level_for_weight(weight: float) -> ConfidenceLevel:
    """Map a numeric signal weight to a categorical level.

    Args:
        weight: Extractor reliability between 0.0 and 1.0.

    Returns:
        HIGH for >= 0.8, MEDIUM for >= 0.6, LOW otherwise.
    """
    if weight >= HIGH_WEIGHT:
        return ConfidenceLevel.HIGH
    if weight >= MEDIUM_WEIGHT:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


@dataclass(frozen=True)
class Signal:
    """One atomic piece of raw evidence from a single extractor or probe.

    A signal must carry a subject hint, a raw version, or both.
    """

    provenance: Provenance
    confidence_weight: float
    subject_hint: str | None = None
    version_raw: str | None = None
    kind: EntityKind = EntityKind.UNKNOWN
    source: str = ""
    display_name: str | None = None

    def __post_init__(self) -> None:
        if not self.subject_hint and not self.version_raw:
            raise ValueError("Signal needs a subject hint or a raw version")
        if not 0.0 <= self.confidence_weight <= 1.0:
            raise ValueError(f"confidence_weight out of range: {self.confidence_weight}")

    @property
    def level(self) -> ConfidenceLevel:
        return level_for_weight(self.confidence_weight)

    def with_subject(
        self,
        subject: str,
        kind: EntityKind | None = None,
    ) -> "Signal":
        """Return a copy attributed to a subject (used for version-only hints)."""
        return Signal(
            provenance=self.provenance,
            confidence_weight=self.confidence_weight,
            subject_hint=subject,
            version_raw=self.version_raw,
            kind=kind or self.kind,
            source=self.source,
            display_name=self.display_name,
        )

    def retag(
        self,
        provenance: "Provenance",
        weight: float | None = None,
        source: str | None = None,
    ) -> "Signal":
        """Return a copy credited to a different detection method."""
        return replace(
            self,
            provenance=provenance,
            confidence_weight=self.confidence_weight if weight is None else weight,
            source=self.source if source is None else source,
        )


@dataclass(frozen=True)
class VersionCandidate:
    """A normalized version with the strongest signal that supports it."""

    version: str
    raw: str
    weight: float
    provenance: Provenance
    level: ConfidenceLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "raw": self.raw,
            "weight": self.weight,
            "provenance": self.provenance.value,
            "level": self.level.value,
        }


@dataclass(frozen=True)
class EntitySnapshot:
    """Read-only view of a fused entity handed to reporting collaborators."""

    identity: str
    kind: EntityKind
    display_name: str | None
    resolved_version: str | None
    confidence_level: ConfidenceLevel
    score: int
    methods: tuple[str, ...]
    version_candidates: tuple[VersionCandidate, ...]
    sources: tuple[str, ...]
    signal_count: int
    latest_version: str | None = None
    is_outdated: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "kind": self.kind.value,
            "display_name": self.display_name,
            "version": self.resolved_version,
            "confidence": self.confidence_level.value,
            "score": self.score,
            "methods": list(self.methods),
            "version_candidates": [c.to_dict() for c in self.version_candidates],
            "sources": list(self.sources),
            "signal_count": self.signal_count,
            "latest_version": self.latest_version,
            "is_outdated": self.is_outdated,
        }


@dataclass(frozen=True)
class VersionRecord:
    """Best platform-version record."""

    version: str | None
    method: str | None
    confidence_level: ConfidenceLevel
    source: str | None

    @classmethod
    def unknown(cls) -> "VersionRecord":
        return cls(version=None, method=None, confidence_level=ConfidenceLevel.LOW, source=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "method": self.method,
            "confidence": self.confidence_level.value,
            "source": self.source,
        }


@dataclass
class ProbeOutcome:
    """Signals returned by one probe, plus whether it actually ran."""

    name: str
    signals: list[Signal] = field(default_factory=list)
    skipped: bool = False
    failed: bool = False
