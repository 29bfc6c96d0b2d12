"""Probes module - local scans, network probes and the orchestrator."""

from pressprobe.probes.assets import AssetInspector, prioritize_assets
from pressprobe.probes.budget import ProbeBudget
from pressprobe.probes.core_version import CoreVersionDetector
from pressprobe.probes.local import run_local_scans
from pressprobe.probes.orchestrator import ProbeOrchestrator, RunResult, RunState
from pressprobe.probes.runner import NetworkProbe, run_probes

__all__ = [
    "AssetInspector",
    "CoreVersionDetector",
    "NetworkProbe",
    "ProbeBudget",
    "ProbeOrchestrator",
    "RunResult",
    "RunState",
    "prioritize_assets",
    "run_local_scans",
    "run_probes",
]
