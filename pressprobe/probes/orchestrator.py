"""Probe orchestrator - phased, budgeted evidence collection for one run.

Phases run in order of increasing cost:

1. Local scans over the fetched page (no network).
2. Related-component short-circuit: a category whose plugin is already
   identified with high confidence from local evidence gets no endpoint probes.
3. Network probes (endpoint checks and asset range inspections) as one
   bounded, gathered batch, followed by per-entity file probes (plugin
   readme/main file, theme stylesheet) as a second batch.

The overall budget is checked before each network batch. Whatever was
collected by the time the budget runs out is returned as a partial result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

import httpx

from pressprobe.events import EventHook, LoggingHook, ProbeEvent
from pressprobe.extract.patterns import CATEGORY_TABLE, CategorySpec, EndpointRule
from pressprobe.fusion.registry import IdentityRegistry, is_valid_identity
from pressprobe.fusion.scorer import EvidenceFuser
from pressprobe.models import ConfidenceLevel, EntityKind, Signal
from pressprobe.net.page import PageSnapshot
from pressprobe.net.range_fetch import RangeFetcher
from pressprobe.probes.assets import DEFAULT_ASSET_CAP, AssetInspector, prioritize_assets
from pressprobe.probes.budget import ProbeBudget
from pressprobe.probes.local import LOCAL_SCANS
from pressprobe.probes.network import (
    probe_endpoint,
    probe_plugin_main_file,
    probe_plugin_readme,
    probe_theme_stylesheet,
)
from pressprobe.probes.runner import NetworkProbe, run_probes

logger = logging.getLogger(__name__)

DEFAULT_SLUG_CAP = 10


class RunState(str, Enum):
    """Lifecycle of one detection run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    BUDGET_EXCEEDED = "budget_exceeded"


@dataclass
class RunResult:
    """Signals collected by a run plus how the run ended."""

    signals: list[Signal]
    state: RunState
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    events: list[ProbeEvent] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.state == RunState.BUDGET_EXCEEDED


class ProbeOrchestrator:
    """Drive the phases for one target. One instance per run."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        fetcher: RangeFetcher | None = None,
        budget: ProbeBudget | None = None,
        hook: EventHook | None = None,
        concurrency: int = 6,
        asset_cap: int = DEFAULT_ASSET_CAP,
        slug_cap: int = DEFAULT_SLUG_CAP,
        categories: dict[str, CategorySpec] | None = None,
        registry: IdentityRegistry | None = None,
        probe_files: bool = True,
    ):
        """Initialize orchestrator.

        Args:
            client: Shared AsyncClient.
            fetcher: Range fetcher; built over ``client`` if omitted.
            budget: Run budget; defaults to 8 s overall, 2.5 s per probe.
            hook: Event hook; events are also kept in the result.
            concurrency: Maximum network probes in flight.
            asset_cap: Maximum assets range-inspected per run.
            slug_cap: Maximum plugins given file probes per run.
            categories: Category table driving endpoint probes and short-circuits.
            registry: Identity registry used for interim fusion.
            probe_files: Run the per-entity file probes.
        """
        self.client = client
        self.fetcher = fetcher or RangeFetcher(client)
        self.budget = budget or ProbeBudget()
        self.hook = hook or LoggingHook()
        self.concurrency = concurrency
        self.asset_cap = asset_cap
        self.slug_cap = slug_cap
        self.categories = CATEGORY_TABLE if categories is None else categories
        self.registry = registry or IdentityRegistry()
        self.probe_files = probe_files

        self.state = RunState.IDLE
        self.events: list[ProbeEvent] = []
        self.skipped: list[str] = []
        self.failed: list[str] = []

    def _emit(self, name: str, phase: str, detail: str = "") -> None:
        event = ProbeEvent(name, phase, detail, self.budget.elapsed_ms())
        self.events.append(event)
        self.hook(event)

    def _record(self, event: ProbeEvent) -> None:
        self.events.append(event)
        self.hook(event)

    async def run(self, page: PageSnapshot, base_url: str | None = None) -> RunResult:
        """Collect signals for one page.

        Args:
            page: Fetched main page.
            base_url: Site root; defaults to the page URL.

        Returns:
            RunResult in state COMPLETED or BUDGET_EXCEEDED.
        """
        if self.state != RunState.IDLE:
            raise RuntimeError(f"Orchestrator already used (state: {self.state.value})")

        self.state = RunState.RUNNING
        if self.budget.started_at is None:
            self.budget.start()
        base_url = base_url or page.url
        self._emit("run.start", "local", base_url)

        # Phase 1
        signals = self.run_local(page)

        # Phase 2
        endpoints = self.plan_endpoints(signals)

        # Phase 3
        if self._check_budget("network"):
            probes = [self._endpoint_probe(base_url, rule) for rule in endpoints]
            probes.extend(self._asset_probes(page))
            signals.extend(await self._run_batch(probes))

        if self.probe_files and self._check_budget("entities"):
            probes = self.plan_entity_probes(signals, base_url)
            signals.extend(await self._run_batch(probes))

        if self.state == RunState.RUNNING:
            self.state = RunState.COMPLETED

        elapsed = self.budget.elapsed_ms()
        self._emit("run.done", "done", f"{len(signals)} signals, state={self.state.value}")
        return RunResult(
            signals=signals,
            state=self.state,
            skipped=list(self.skipped),
            failed=list(self.failed),
            elapsed_ms=elapsed,
            events=list(self.events),
        )

    def run_local(self, page: PageSnapshot) -> list[Signal]:
        signals: list[Signal] = []
        for scan in LOCAL_SCANS:
            found = scan(page)
            signals.extend(found)
            self._emit(f"scan.{scan.__name__.removeprefix('scan_')}", "local", f"{len(found)} signals")
        return signals

    def plan_endpoints(self, local_signals: list[Signal]) -> list[EndpointRule]:
        """Endpoint rules still worth probing after the short-circuit check."""
        fuser = EvidenceFuser(self.registry).add_all(
            s for s in local_signals if s.kind in (EntityKind.PLUGIN, EntityKind.UNKNOWN)
        )

        planned: list[EndpointRule] = []

        for name, spec in self.categories.items():
            confident = [
                slug
                for slug in spec.related
                if (entity := fuser.get(slug)) is not None
                and entity.confidence_level == ConfidenceLevel.HIGH
            ]
            if confident:
                self.skipped.extend(f"endpoint:{rule.path}" for rule in spec.endpoints)
                self._emit(
                    "category.short_circuit",
                    "short-circuit",
                    f"{name}: {', '.join(confident)}",
                )
                continue
            planned.extend(spec.endpoints)

        return planned

    def plan_entity_probes(self, signals: list[Signal], base_url: str) -> list[NetworkProbe]:
        """File probes for plugins and the theme that still lack a strong version."""
        plugins = EvidenceFuser(self.registry, EntityKind.PLUGIN).add_all(
            s for s in signals if s.kind in (EntityKind.PLUGIN, EntityKind.UNKNOWN)
        )
        themes = EvidenceFuser(self.registry, EntityKind.THEME).add_all(
            s for s in signals if s.kind == EntityKind.THEME
        )

        probes: list[NetworkProbe] = []
        for entity in _probe_candidates(plugins)[: self.slug_cap]:
            if _has_strong_version(entity):
                continue
            slug = entity.identity
            probes.append(
                NetworkProbe(f"plugin-files:{slug}", lambda s=slug: self._plugin_files(base_url, s), "entity")
            )

        theme_entities = _probe_candidates(themes)
        if theme_entities and not _has_strong_version(theme_entities[0]):
            slug = theme_entities[0].identity
            probes.append(
                NetworkProbe(
                    f"theme-stylesheet:{slug}",
                    lambda s=slug: probe_theme_stylesheet(self.fetcher, base_url, s),
                    "entity",
                )
            )

        return probes

    async def _plugin_files(self, base_url: str, slug: str) -> list[Signal]:
        signals = await probe_plugin_readme(self.fetcher, base_url, slug)
        if any(s.version_raw for s in signals):
            return signals
        if self.budget.exceeded():
            self.skipped.append(f"plugin-main-file:{slug}")
            return signals
        return signals + await probe_plugin_main_file(self.fetcher, base_url, slug)

    def _endpoint_probe(self, base_url: str, rule: EndpointRule) -> NetworkProbe:
        return NetworkProbe(
            f"endpoint:{rule.path}",
            lambda: probe_endpoint(self.client, base_url, rule, self.budget.per_probe_timeout),
            "endpoint",
        )

    def _asset_probes(self, page: PageSnapshot) -> list[NetworkProbe]:
        inspector = AssetInspector(self.fetcher, budget=self.budget)
        return [
            NetworkProbe(f"asset:{url}", lambda u=url: inspector.inspect(u), "asset")
            for url in prioritize_assets(page.asset_urls(), self.asset_cap)
        ]

    async def _run_batch(self, probes: list[NetworkProbe]) -> list[Signal]:
        if not probes:
            return []

        outcomes = await run_probes(probes, self.budget, self.concurrency, self._record)

        signals: list[Signal] = []
        for outcome in outcomes:
            if outcome.skipped:
                self.skipped.append(outcome.name)
                self.state = RunState.BUDGET_EXCEEDED
            elif outcome.failed:
                self.failed.append(outcome.name)
            signals.extend(outcome.signals)
        return signals

    def _check_budget(self, step: str) -> bool:
        if not self.budget.exceeded():
            return True
        self.state = RunState.BUDGET_EXCEEDED
        self.skipped.append(f"phase:{step}")
        self._emit("budget.exceeded", "budget", f"skipping {step}")
        return False


def _has_strong_version(entity) -> bool:
    best = entity.best_candidate
    return best is not None and best.level == ConfidenceLevel.HIGH


def _probe_candidates(fuser: EvidenceFuser) -> list:
    # Includes low-confidence entities the final report would drop
    kept = [entity for entity in fuser.raw_entities() if is_valid_identity(entity.identity)]
    return sorted(kept, key=lambda e: (-e.score, e.identity))
