"""Profiling sessions, timing statistics and the versioned report format."""

from snapbench.profiling.engine import (
    InMemoryEngine,
    RunResult,
    SnapEngine,
    get_engine,
    register_engine,
)
from snapbench.profiling.harness import ProfileOptions, ProfileOutcome, run_profile
from snapbench.profiling.report import SnapProfileReportV1, format_report
from snapbench.profiling.stats import PhaseStats, phase_stats

__all__ = [
    "InMemoryEngine",
    "PhaseStats",
    "ProfileOptions",
    "ProfileOutcome",
    "RunResult",
    "SnapEngine",
    "SnapProfileReportV1",
    "format_report",
    "get_engine",
    "phase_stats",
    "register_engine",
    "run_profile",
]
