"""Bounded probe runner - one gathered batch under a semaphore and a deadline."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pressprobe.events import EventHook, LoggingHook, ProbeEvent
from pressprobe.models import ProbeOutcome, Signal
from pressprobe.probes.budget import ProbeBudget

logger = logging.getLogger(__name__)


@dataclass
class NetworkProbe:
    """A named coroutine factory; the coroutine is only created if the probe starts."""

    name: str
    factory: Callable[[], Awaitable[list[Signal]]]
    group: str = "probe"


async def run_probes(
    probes: list[NetworkProbe],
    budget: ProbeBudget,
    concurrency: int = 6,
    hook: EventHook | None = None,
    phase: str = "network",
) -> list[ProbeOutcome]:
    """Dispatch probes as one batch and wait for all of them.

    Each probe waits for a concurrency slot, then checks the overall
    deadline: a probe whose slot frees up after the deadline is skipped
    without being started. Started probes are bounded by the per-probe
    timeout. Timeouts and errors become empty outcomes; the batch itself
    never fails.

    Args:
        probes: Probes to run.
        budget: Started run budget.
        concurrency: Maximum probes in flight.
        hook: Event hook.
        phase: Phase name reported in events.

    Returns:
        One outcome per probe, in input order.
    """
    hook = hook or LoggingHook()
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run_one(probe: NetworkProbe) -> ProbeOutcome:
        async with semaphore:
            if budget.exceeded():
                hook(ProbeEvent("probe.skipped", phase, probe.name, budget.elapsed_ms()))
                return ProbeOutcome(probe.name, skipped=True)

            hook(ProbeEvent("probe.start", phase, probe.name, budget.elapsed_ms()))
            try:
                signals = await asyncio.wait_for(probe.factory(), budget.per_probe_timeout)
            except asyncio.TimeoutError:
                hook(ProbeEvent("probe.timeout", phase, probe.name, budget.elapsed_ms()))
                return ProbeOutcome(probe.name, failed=True)
            except Exception as e:
                logger.debug("Probe %s failed: %s", probe.name, e)
                hook(ProbeEvent("probe.error", phase, f"{probe.name}: {type(e).__name__}", budget.elapsed_ms()))
                return ProbeOutcome(probe.name, failed=True)

            hook(
                ProbeEvent(
                    "probe.done",
                    phase,
                    f"{probe.name} ({len(signals)} signals)",
                    budget.elapsed_ms(),
                )
            )
            return ProbeOutcome(probe.name, list(signals))

    return list(await asyncio.gather(*(run_one(probe) for probe in probes)))
