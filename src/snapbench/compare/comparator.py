"""Compare two profile reports and flag performance regressions.

Before computing anything the comparator checks that the two reports
measured the same thing: same report schema, same dataset (by manifest
SHA-256) and same backend. Diffing a rocksdb run against an in-memory
run, or runs over different pivots, yields numbers that look meaningful
and are not, so any mismatch raises IncompatibleReportsError and no
partial comparison is produced.

Deltas are percentages relative to the baseline, per phase, for the
median and the p95:

    delta = (candidate - baseline) / baseline * 100

A zero baseline yields exactly 0.0 rather than infinity or a fabricated
sign. A regression is flagged only when a threshold is given and the
TOTAL phase's median delta is strictly greater than it.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from snapbench.errors import IncompatibleReportsError, RegressionDetectedError
from snapbench.profiling.report import SnapProfileReportV1
from snapbench.profiling.stats import PhaseStats

log = logging.getLogger(__name__)

COMPARISON_SCHEMA_VERSION = 1

# (report attribute, display label), in JSON order
PHASES = [
    ("total", "Total"),
    ("insert_accounts", "InsertAccounts"),
    ("insert_storages", "InsertStorages"),
]


def delta_pct(baseline: float, candidate: float) -> float:
    if baseline == 0.0:
        return 0.0
    return (candidate - baseline) / baseline * 100.0


@dataclass(frozen=True, slots=True)
class PhaseDelta:
    median_delta_pct: float
    p95_delta_pct: float

    @classmethod
    def between(cls, baseline: PhaseStats, candidate: PhaseStats) -> PhaseDelta:
        return cls(
            median_delta_pct=delta_pct(baseline.median_secs, candidate.median_secs),
            p95_delta_pct=delta_pct(baseline.p95_secs, candidate.p95_secs),
        )


@dataclass(frozen=True, slots=True)
class PhaseDeltaSummary:
    total: PhaseDelta
    insert_accounts: PhaseDelta
    insert_storages: PhaseDelta


@dataclass(frozen=True, slots=True)
class ComparisonReport:
    baseline_path: str
    candidate_path: str
    compatible: bool
    deltas: PhaseDeltaSummary
    regression_detected: bool
    threshold_pct: float | None = None
    schema_version: int = COMPARISON_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "baseline_path": self.baseline_path,
            "candidate_path": self.candidate_path,
            "compatible": self.compatible,
            "deltas": {
                name: {
                    "median_delta_pct": getattr(self.deltas, name).median_delta_pct,
                    "p95_delta_pct": getattr(self.deltas, name).p95_delta_pct,
                }
                for name, _ in PHASES
            },
            "regression_detected": self.regression_detected,
            "threshold_pct": self.threshold_pct,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> ComparisonReport:
        deltas = obj["deltas"]
        return cls(
            schema_version=obj["schema_version"],
            baseline_path=obj["baseline_path"],
            candidate_path=obj["candidate_path"],
            compatible=obj["compatible"],
            deltas=PhaseDeltaSummary(**{
                name: PhaseDelta(
                    median_delta_pct=float(deltas[name]["median_delta_pct"]),
                    p95_delta_pct=float(deltas[name]["p95_delta_pct"]),
                )
                for name, _ in PHASES
            }),
            regression_detected=obj["regression_detected"],
            threshold_pct=obj["threshold_pct"],
        )


def check_compatible(
    baseline: SnapProfileReportV1, candidate: SnapProfileReportV1
) -> None:
    """Raise IncompatibleReportsError if the reports cannot be compared."""
    if baseline.schema_version != candidate.schema_version:
        raise IncompatibleReportsError(
            f"Schema version mismatch: baseline={baseline.schema_version} "
            f"candidate={candidate.schema_version}"
        )
    if baseline.dataset.manifest_sha256 != candidate.dataset.manifest_sha256:
        raise IncompatibleReportsError(
            f"Dataset mismatch: baseline manifest_sha256="
            f"{baseline.dataset.manifest_sha256} candidate manifest_sha256="
            f"{candidate.dataset.manifest_sha256}"
        )
    if baseline.config.backend != candidate.config.backend:
        raise IncompatibleReportsError(
            f"Backend mismatch: baseline={baseline.config.backend} "
            f"candidate={candidate.config.backend}"
        )


def compare(
    baseline: SnapProfileReportV1,
    candidate: SnapProfileReportV1,
    threshold_pct: float | None = None,
    baseline_path: str = "",
    candidate_path: str = "",
) -> ComparisonReport:
    check_compatible(baseline, candidate)

    deltas = PhaseDeltaSummary(**{
        name: PhaseDelta.between(
            getattr(baseline.summary, name), getattr(candidate.summary, name)
        )
        for name, _ in PHASES
    })
    regression = (
        threshold_pct is not None
        and deltas.total.median_delta_pct > threshold_pct
    )
    return ComparisonReport(
        baseline_path=baseline_path,
        candidate_path=candidate_path,
        compatible=True,
        deltas=deltas,
        regression_detected=regression,
        threshold_pct=threshold_pct,
    )


def format_comparison(report: ComparisonReport) -> str:
    """Ranked table of per-phase deltas, worst median delta first."""
    ranked = sorted(
        PHASES,
        key=lambda phase: getattr(report.deltas, phase[0]).median_delta_pct,
        reverse=True,
    )
    lines = [
        "=== Snap Profile Comparison ===",
        "",
        f"Baseline:  {report.baseline_path}",
        f"Candidate: {report.candidate_path}",
        "",
        f"{'Rank':<6}{'Phase':<20} {'Median delta%':>14} {'P95 delta%':>14}",
        "-" * 56,
    ]
    for rank, (name, label) in enumerate(ranked, start=1):
        d = getattr(report.deltas, name)
        lines.append(
            f"{rank:<6}{label:<20} {d.median_delta_pct:>+13.2f}% "
            f"{d.p95_delta_pct:>+13.2f}%"
        )
    lines.append("")
    if report.threshold_pct is not None:
        lines.append(f"Regression threshold: {report.threshold_pct:+.2f}%")
    if report.regression_detected:
        lines.append("REGRESSION DETECTED: total median delta exceeds threshold")
    elif report.threshold_pct is not None:
        lines.append("No regression detected.")
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class CompareOptions:
    baseline: Path
    candidate: Path
    regression_threshold_pct: float | None = None
    fail_on_regression: bool = False
    json_out: Path | None = None
    json_stdout: bool = False


def run_compare(opts: CompareOptions) -> ComparisonReport:
    """Load, compare, print the table, emit JSON, then gate.

    The table and any requested JSON are always produced before a
    RegressionDetectedError is raised.
    """
    baseline = SnapProfileReportV1.load_from_file(opts.baseline)
    candidate = SnapProfileReportV1.load_from_file(opts.candidate)

    report = compare(
        baseline,
        candidate,
        threshold_pct=opts.regression_threshold_pct,
        baseline_path=str(opts.baseline),
        candidate_path=str(opts.candidate),
    )

    print(format_comparison(report))

    if opts.json_out is not None:
        Path(opts.json_out).write_text(report.to_json(), encoding="utf-8")
        log.info("Comparison report written to: %s", opts.json_out)
    if opts.json_stdout:
        print(report.to_json())

    if opts.fail_on_regression and report.regression_detected:
        raise RegressionDetectedError(
            f"Regression detected, failing as requested: total median "
            f"{report.deltas.total.median_delta_pct:+.2f}% exceeds "
            f"threshold {report.threshold_pct:+.2f}%"
        )
    return report
