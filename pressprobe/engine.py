"""Fingerprint engine - one object that owns the client and runs a full scan."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from pressprobe.config import EngineSettings
from pressprobe.events import EventHook, LoggingHook, ProbeEvent
from pressprobe.fusion.registry import IdentityRegistry
from pressprobe.fusion.scorer import EvidenceFuser
from pressprobe.integrations.wporg import WordPressOrgClient
from pressprobe.models import EntityKind, EntitySnapshot, VersionRecord
from pressprobe.net.client import DEFAULT_USER_AGENT, create_client
from pressprobe.net.page import PageSnapshot, fetch_page
from pressprobe.net.range_fetch import RangeFetcher
from pressprobe.probes.budget import ProbeBudget
from pressprobe.probes.core_version import CoreVersionDetector
from pressprobe.probes.orchestrator import ProbeOrchestrator, RunState

logger = logging.getLogger(__name__)


@dataclass
class FingerprintReport:
    """Everything one scan found. Plain data for reporting collaborators."""

    target: str
    url: str
    platform: EntitySnapshot | None
    core_version: VersionRecord
    themes: tuple[EntitySnapshot, ...]
    plugins: tuple[EntitySnapshot, ...]
    state: RunState
    elapsed_ms: float
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    events: list[ProbeEvent] = field(default_factory=list)
    scanned_at: datetime = field(default_factory=datetime.now)

    @property
    def theme(self) -> EntitySnapshot | None:
        """The active theme: the best-scored theme entity."""
        return self.themes[0] if self.themes else None

    @property
    def is_wordpress(self) -> bool:
        return self.platform is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "url": self.url,
            "scanned_at": self.scanned_at.isoformat(),
            "is_wordpress": self.is_wordpress,
            "platform": self.platform.to_dict() if self.platform else None,
            "core_version": self.core_version.to_dict(),
            "theme": self.theme.to_dict() if self.theme else None,
            "themes": [t.to_dict() for t in self.themes],
            "plugins": [p.to_dict() for p in self.plugins],
            "run": {
                "state": self.state.value,
                "elapsed_ms": round(self.elapsed_ms, 1),
                "skipped": list(self.skipped),
                "failed": list(self.failed),
            },
        }


class FingerprintEngine:
    """Run the full detection pipeline against a target.

    Use as an async context manager; the HTTP client is created on entry
    and closed on exit unless one was injected.

    Example:
        async with FingerprintEngine(settings) as engine:
            report = await engine.scan("example.com")
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        client: httpx.AsyncClient | None = None,
        hook: EventHook | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize engine.

        Args:
            settings: Validated settings; defaults if omitted.
            client: Shared client to use instead of creating one.
            hook: Event hook for progress reporting.
            transport: Transport for the client the engine creates.
        """
        self.settings = settings or EngineSettings()
        self.hook = hook or LoggingHook()
        self._transport = transport
        self._client = client
        self._owns_client = client is None
        self.registry = IdentityRegistry()
        self.registry.extend(self.settings.extra_plugins, self.settings.extra_aliases)
        self._wporg: WordPressOrgClient | None = None

    async def __aenter__(self) -> "FingerprintEngine":
        if self._client is None:
            self._client = create_client(
                timeout=self.settings.request_timeout,
                user_agent=self.settings.user_agent or DEFAULT_USER_AGENT,
                verify=self.settings.verify_tls,
                transport=self._transport,
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._wporg = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("FingerprintEngine must be used as an async context manager")
        return self._client

    async def scan(self, target: str) -> FingerprintReport:
        """Fetch the target's main page and fingerprint it.

        Raises:
            TargetError: If the target is invalid or unreachable.
        """
        page = await fetch_page(self.client, target)
        report = await self.fingerprint(page)
        report.target = target
        return report

    async def fingerprint(self, page: PageSnapshot, base_url: str | None = None) -> FingerprintReport:
        """Run every phase over an already-fetched page.

        Args:
            page: Main page snapshot.
            base_url: Site root; defaults to the page URL.

        Returns:
            Fused report. Never raises on network trouble.
        """
        settings = self.settings
        base_url = base_url or page.url

        budget = ProbeBudget(
            overall_budget_ms=settings.budget_ms,
            per_probe_timeout_ms=settings.per_probe_timeout_ms,
        ).start()
        fetcher = RangeFetcher(self.client, timeout=settings.request_timeout, window=settings.range_window)

        orchestrator = ProbeOrchestrator(
            self.client,
            fetcher=fetcher,
            budget=budget,
            hook=self.hook,
            concurrency=settings.concurrency,
            asset_cap=settings.asset_cap,
            slug_cap=settings.slug_cap,
            registry=self.registry,
            probe_files=settings.probe_files,
        )
        core = CoreVersionDetector(self.client, budget=budget, hook=self.hook)

        run, core_version = await asyncio.gather(
            orchestrator.run(page, base_url),
            core.detect_version(page, base_url),
        )

        plugins = (
            EvidenceFuser(self.registry, EntityKind.PLUGIN)
            .add_all(s for s in run.signals if s.kind in (EntityKind.PLUGIN, EntityKind.UNKNOWN))
            .snapshots()
        )
        themes = (
            EvidenceFuser(self.registry, EntityKind.THEME)
            .add_all(s for s in run.signals if s.kind == EntityKind.THEME)
            .snapshots()
        )

        skipped = list(run.skipped)
        events = list(run.events)
        if settings.check_outdated:
            plugins, themes = await self._annotate_outdated(plugins, themes, budget, skipped, events)

        logger.info(
            "Fingerprinted %s: %d plugins, %d themes, core %s (%s)",
            base_url,
            len(plugins),
            len(themes),
            core_version.version or "unknown",
            run.state.value,
        )

        return FingerprintReport(
            target=base_url,
            url=page.url,
            platform=core.detect_platform(page),
            core_version=core_version,
            themes=themes,
            plugins=plugins,
            state=run.state,
            elapsed_ms=budget.elapsed_ms(),
            skipped=skipped,
            failed=run.failed,
            events=events,
        )

    async def _annotate_outdated(
        self,
        plugins: tuple[EntitySnapshot, ...],
        themes: tuple[EntitySnapshot, ...],
        budget: ProbeBudget,
        skipped: list[str],
        events: list[ProbeEvent],
    ) -> tuple[tuple[EntitySnapshot, ...], tuple[EntitySnapshot, ...]]:
        """Fill in latest versions within the run deadline.

        The lookups get whatever remains of the budget plus one per-probe
        timeout. When that runs out the snapshots are returned unannotated
        and the check is listed as skipped.
        """
        if not plugins and not themes:
            return plugins, themes

        if budget.exceeded():
            reason = "budget exhausted"
        else:
            wporg = self._wordpress_org()
            timeout = (budget.remaining_ms() + budget.per_probe_timeout_ms) / 1000.0
            try:
                return await asyncio.wait_for(
                    asyncio.gather(wporg.annotate_all(plugins), wporg.annotate_all(themes)),
                    timeout,
                )
            except asyncio.TimeoutError:
                reason = f"timed out after {timeout:.1f}s"

        event = ProbeEvent("outdated.skipped", "outdated", reason, budget.elapsed_ms())
        events.append(event)
        self.hook(event)
        skipped.append("outdated-check")
        return plugins, themes

    def _wordpress_org(self) -> WordPressOrgClient:
        # One cache for the engine's lifetime
        if self._wporg is None:
            self._wporg = WordPressOrgClient(self.client, timeout=self.settings.request_timeout)
        return self._wporg
