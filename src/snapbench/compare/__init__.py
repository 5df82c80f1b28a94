"""Regression comparison between two profile reports."""

from snapbench.compare.comparator import (
    CompareOptions,
    ComparisonReport,
    PhaseDelta,
    PhaseDeltaSummary,
    compare,
    format_comparison,
    run_compare,
)

__all__ = [
    "CompareOptions",
    "ComparisonReport",
    "PhaseDelta",
    "PhaseDeltaSummary",
    "compare",
    "format_comparison",
    "run_compare",
]
