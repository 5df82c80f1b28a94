"""Descriptive statistics for one phase's timing samples.

phase_stats() is a pure function shared by the live profiler and by
anything that rebuilds a summary from a stored run log, so both always
agree on the numbers.

Definitions, for n samples sorted ascending:
  median      middle sample, or mean of the two middle samples
  mean        arithmetic mean
  stddev      sample standard deviation (divide by n-1); 0 when n < 2
  p95, p99    nearest rank: sorted[round(p/100 * (n-1))], clamped
  min, max    first and last sample

Percentiles use nearest rank rather than linear interpolation. With the
handful of runs a benchmark session produces (5-20), interpolation would
report latencies that no run actually had.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Union

Duration = Union[float, timedelta]


@dataclass(frozen=True, slots=True)
class PhaseStats:
    """Summary of one phase's durations, all in seconds."""
    median_secs: float = 0.0
    mean_secs: float = 0.0
    stddev_secs: float = 0.0
    p95_secs: float = 0.0
    p99_secs: float = 0.0
    min_secs: float = 0.0
    max_secs: float = 0.0


def _seconds(d: Duration) -> float:
    if isinstance(d, timedelta):
        return d.total_seconds()
    return float(d)


def percentile(sorted_values: list[float], p: float) -> float:
    """Nearest-rank percentile of an ascending, non-empty list."""
    n = len(sorted_values)
    # round half away from zero; Python's round() is banker's rounding
    idx = math.floor(p / 100.0 * (n - 1) + 0.5)
    return sorted_values[min(max(idx, 0), n - 1)]


def phase_stats(durations: Iterable[Duration]) -> PhaseStats:
    """Summarize durations (floats in seconds, or timedeltas).

    An empty input yields all-zero stats rather than an error.
    """
    values = sorted(_seconds(d) for d in durations)
    n = len(values)
    if n == 0:
        return PhaseStats()

    mid = n // 2
    if n % 2 == 1:
        median = values[mid]
    else:
        median = (values[mid - 1] + values[mid]) / 2.0

    # rounding can push the mean of identical samples one ulp past max
    mean = min(max(math.fsum(values) / n, values[0]), values[-1])

    if n < 2:
        stddev = 0.0
    else:
        variance = sum((v - mean) ** 2 for v in values) / (n - 1)
        stddev = math.sqrt(variance)

    return PhaseStats(
        median_secs=median,
        mean_secs=mean,
        stddev_secs=stddev,
        p95_secs=percentile(values, 95.0),
        p99_secs=percentile(values, 99.0),
        min_secs=values[0],
        max_secs=values[-1],
    )
