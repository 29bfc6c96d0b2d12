"""Evidence fusion - merge raw signals into scored, deduplicated entities."""

import logging
from collections.abc import Iterable

from pressprobe.extract.versions import candidate_from_signal, method_priority, resolve_version
from pressprobe.fusion.registry import IdentityRegistry, is_valid_identity
from pressprobe.models import (
    HIGH_WEIGHT,
    MEDIUM_WEIGHT,
    ConfidenceLevel,
    EntityKind,
    EntitySnapshot,
    Provenance,
    Signal,
    VersionCandidate,
)

logger = logging.getLogger(__name__)

# Points per distinct signal type, before the level multiplier
SIGNAL_TYPE_WEIGHTS: dict[Provenance, int] = {
    Provenance.STRUCTURED_HEADER: 30,
    Provenance.META_GENERATOR: 30,
    Provenance.FILE_FETCH: 25,
    Provenance.README: 25,
    Provenance.REST_API: 25,
    Provenance.STYLESHEET_HEADER: 25,
    Provenance.ENDPOINT_PROBE: 20,
    Provenance.ASSET_HEADER: 20,
    Provenance.ASSET_TAIL: 20,
    Provenance.SOURCE_MAP: 20,
    Provenance.URL_PATH: 15,
    Provenance.URL_VERSION_PARAM: 15,
    Provenance.JS_VARIABLE: 15,
    Provenance.META_TAG: 15,
    Provenance.HTTP_HEADER: 15,
    Provenance.DECLARED_CONSTANT: 12,
    Provenance.SELECTOR: 12,
    Provenance.HTML_REFERENCE: 10,
    Provenance.CONTENT_PATTERN: 10,
    Provenance.INLINE_DATA: 10,
    Provenance.HTML_COMMENT: 8,
    Provenance.FEED: 8,
    Provenance.BODY_CLASS: 8,
    Provenance.GENERIC_VERSION: 5,
}
DEFAULT_TYPE_WEIGHT = 5
MAX_SCORE = 100


def confidence_for(signals: Iterable[Signal]) -> ConfidenceLevel:
    """Categorical confidence from the weight distribution of signals.

    Signals sharing a method and a source are one piece of evidence, counted
    at their strongest weight. Two or more high-weight pieces give HIGH, as
    does one high-weight piece backed by another method of at least medium
    weight. A lone high-weight piece or three medium-weight ones give MEDIUM;
    anything else is LOW.
    """
    strongest: dict[tuple[Provenance, str], float] = {}
    for signal in signals:
        key = (signal.provenance, signal.source)
        strongest[key] = max(signal.confidence_weight, strongest.get(key, 0.0))

    high = [key for key, weight in strongest.items() if weight >= HIGH_WEIGHT]
    medium = [key for key, weight in strongest.items() if MEDIUM_WEIGHT <= weight < HIGH_WEIGHT]

    if len(high) >= 2:
        return ConfidenceLevel.HIGH
    if high:
        high_method = high[0][0]
        if any(provenance != high_method for provenance, _ in medium):
            return ConfidenceLevel.HIGH
        return ConfidenceLevel.MEDIUM
    if len(medium) >= 3:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def score_for(signals: Iterable[Signal]) -> int:
    """Weighted score counted once per signal type, capped at 100."""
    best: dict[Provenance, ConfidenceLevel] = {}
    for signal in signals:
        current = best.get(signal.provenance)
        if current is None or signal.level.rank > current.rank:
            best[signal.provenance] = signal.level

    total = sum(
        SIGNAL_TYPE_WEIGHTS.get(provenance, DEFAULT_TYPE_WEIGHT) * level.multiplier
        for provenance, level in best.items()
    )
    return min(MAX_SCORE, round(total))


class Entity:
    """Mutable accumulator for one candidate identity.

    Derived fields are recomputed after every signal. Collaborators only
    ever see the frozen ``EntitySnapshot``.
    """

    def __init__(self, identity: str, kind: EntityKind = EntityKind.UNKNOWN, display_name: str | None = None):
        self.identity = identity
        self.kind = kind
        self.display_name = display_name
        self.signals: list[Signal] = []
        self.version_candidates: dict[str, VersionCandidate] = {}
        self.resolved_version: str | None = None
        self.confidence_level = ConfidenceLevel.LOW
        self.score = 0
        self.methods: list[str] = []
        self.latest_version: str | None = None
        self.is_outdated: bool | None = None

    def add_signal(self, signal: Signal) -> None:
        """Accumulate a signal and recompute derived fields.

        Signals whose version fails validation still count as identity
        evidence; they just never become version candidates.
        """
        self.signals.append(signal)

        if self.kind == EntityKind.UNKNOWN and signal.kind != EntityKind.UNKNOWN:
            self.kind = signal.kind
        if not self.display_name and signal.display_name:
            self.display_name = signal.display_name
        if signal.provenance.value not in self.methods:
            self.methods.append(signal.provenance.value)

        candidate = candidate_from_signal(signal)
        if candidate is not None:
            existing = self.version_candidates.get(candidate.version)
            if existing is None or _stronger(candidate, existing):
                self.version_candidates[candidate.version] = candidate

        self._recompute()

    def _recompute(self) -> None:
        best = resolve_version(self.version_candidates.values())
        self.resolved_version = best.version if best else None
        self.confidence_level = confidence_for(self.signals)
        self.score = score_for(self.signals)

    @property
    def best_candidate(self) -> VersionCandidate | None:
        return resolve_version(self.version_candidates.values())

    def freeze(self) -> EntitySnapshot:
        candidates = sorted(
            self.version_candidates.values(),
            key=lambda c: (c.level.rank, method_priority(c.provenance), c.weight),
            reverse=True,
        )
        sources = []
        for signal in self.signals:
            if signal.source and signal.source not in sources:
                sources.append(signal.source)

        return EntitySnapshot(
            identity=self.identity,
            kind=self.kind,
            display_name=self.display_name,
            resolved_version=self.resolved_version,
            confidence_level=self.confidence_level,
            score=self.score,
            methods=tuple(self.methods),
            version_candidates=tuple(candidates),
            sources=tuple(sources),
            signal_count=len(self.signals),
            latest_version=self.latest_version,
            is_outdated=self.is_outdated,
        )


def _stronger(candidate: VersionCandidate, existing: VersionCandidate) -> bool:
    return (candidate.weight, method_priority(candidate.provenance)) > (
        existing.weight,
        method_priority(existing.provenance),
    )


def is_noise(entity: Entity) -> bool:
    """Low confidence, no version and fewer than two methods."""
    return (
        entity.confidence_level == ConfidenceLevel.LOW
        and entity.resolved_version is None
        and len(entity.methods) < 2
    )


class EvidenceFuser:
    """Group signals by canonical identity and score the resulting entities."""

    def __init__(
        self,
        registry: IdentityRegistry | None = None,
        default_kind: EntityKind = EntityKind.PLUGIN,
    ):
        """Initialize fuser.

        Args:
            registry: Name/alias lookup; a default registry if omitted.
            default_kind: Kind given to entities whose signals never name one.
        """
        self.registry = registry or IdentityRegistry()
        self.default_kind = default_kind
        self._entities: dict[str, Entity] = {}
        self.discarded = 0

    def add(self, signal: Signal) -> Entity | None:
        """Route one signal to its entity.

        Returns:
            The entity it was merged into, or None for unattributable signals.
        """
        if not signal.subject_hint:
            # Version-only signal with no asset to attach it to
            self.discarded += 1
            return None

        kind = signal.kind if signal.kind != EntityKind.UNKNOWN else self.default_kind
        identity = self.registry.resolve(signal.subject_hint, kind)
        if not identity:
            self.discarded += 1
            return None

        entity = self._entities.get(identity)
        if entity is None:
            entity = Entity(identity, display_name=self.registry.display_name(identity))
            self._entities[identity] = entity
            logger.debug("New %s entity %s from %s", kind.value, identity, signal.provenance.value)

        entity.add_signal(signal)
        if entity.kind == EntityKind.UNKNOWN:
            entity.kind = kind
        return entity

    def add_all(self, signals: Iterable[Signal]) -> "EvidenceFuser":
        for signal in signals:
            self.add(signal)
        return self

    def get(self, identity: str) -> Entity | None:
        return self._entities.get(identity)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def raw_entities(self) -> list[Entity]:
        """All entities, including ones the false-positive filter would drop."""
        return list(self._entities.values())

    def entities(self) -> list[Entity]:
        """Entities passing the false-positive filter, best first."""
        kept = [
            entity
            for entity in self._entities.values()
            if is_valid_identity(entity.identity) and not is_noise(entity)
        ]
        return sorted(kept, key=lambda e: (-e.score, e.identity))

    def snapshots(self) -> tuple[EntitySnapshot, ...]:
        return tuple(entity.freeze() for entity in self.entities())


def fuse(
    signals: Iterable[Signal],
    registry: IdentityRegistry | None = None,
    default_kind: EntityKind = EntityKind.PLUGIN,
) -> tuple[EntitySnapshot, ...]:
    """Fuse a batch of signals in one call.

    Args:
        signals: Raw signals from any mix of probes.
        registry: Optional identity registry.
        default_kind: Kind for signals that never name one.

    Returns:
        Filtered snapshots ordered by score, then identity.
    """
    return EvidenceFuser(registry, default_kind).add_all(signals).snapshots()
