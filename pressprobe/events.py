"""Probe events - observability hooks for the orchestrator.

The engine never prints. It reports what it is doing through an
``EventHook``; the CLI plugs in a rich console hook, tests record events.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeEvent:
    """Something that happened during a run."""

    name: str
    phase: str
    detail: str = ""
    elapsed_ms: float = 0.0
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phase": self.phase,
            "detail": self.detail,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


class EventHook(Protocol):
    def __call__(self, event: ProbeEvent) -> None: ...


class LoggingHook:
    """Forward events to stdlib logging at debug level."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def __call__(self, event: ProbeEvent) -> None:
        self.log.debug("[%s] %s %s (%.0f ms)", event.phase, event.name, event.detail, event.elapsed_ms)


class ConsoleHook:
    """Print progress lines to a rich console."""

    PHASE_STYLES = {
        "local": "cyan",
        "short-circuit": "yellow",
        "network": "blue",
        "budget": "red",
        "done": "green",
    }

    def __init__(self, console: Console | None = None, verbose: bool = False):
        self.console = console or Console(stderr=True)
        self.verbose = verbose

    def __call__(self, event: ProbeEvent) -> None:
        # Per-probe chatter only in verbose mode
        if event.name.startswith("probe.") and not self.verbose:
            return
        style = self.PHASE_STYLES.get(event.phase, "white")
        label = escape(f"[{event.phase}]")
        self.console.print(f"[{style}]{label}[/] {event.name} [dim]{escape(event.detail)}[/]")


class RecordingHook:
    """Collect events in memory."""

    def __init__(self):
        self.events: list[ProbeEvent] = []

    def __call__(self, event: ProbeEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]


class CompositeHook:
    """Fan one event out to several hooks."""

    def __init__(self, *hooks: EventHook):
        self.hooks = [hook for hook in hooks if hook is not None]

    def __call__(self, event: ProbeEvent) -> None:
        for hook in self.hooks:
            hook(event)
