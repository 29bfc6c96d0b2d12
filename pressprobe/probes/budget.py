"""Probe budget - shared deadline for one detection run."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class ProbeBudget:
    """Overall time budget plus a per-probe timeout.

    ``clock`` returns seconds and defaults to ``time.monotonic``; tests inject
    a fake clock.
    """

    overall_budget_ms: float = 8000.0
    per_probe_timeout_ms: float = 2500.0
    clock: Callable[[], float] = time.monotonic
    started_at: float | None = field(default=None)

    def start(self) -> "ProbeBudget":
        self.started_at = self.clock()
        return self

    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self.clock() - self.started_at) * 1000.0

    def remaining_ms(self) -> float:
        return max(0.0, self.overall_budget_ms - self.elapsed_ms())

    def exceeded(self) -> bool:
        return self.started_at is not None and self.elapsed_ms() >= self.overall_budget_ms

    def under_pressure(self) -> bool:
        """Less than two per-probe timeouts remain before the deadline."""
        return self.started_at is not None and self.remaining_ms() < 2 * self.per_probe_timeout_ms

    @property
    def per_probe_timeout(self) -> float:
        """Per-probe timeout in seconds, for ``asyncio.wait_for``."""
        return self.per_probe_timeout_ms / 1000.0
