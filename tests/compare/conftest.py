"""Report builders for comparator tests."""
from __future__ import annotations

from pathlib import Path

from snapbench.profiling.report import (
    DatasetInfo,
    PhaseSummary,
    RootValidation,
    RunConfig,
    SnapProfileReportV1,
    ToolInfo,
)
from snapbench.profiling.stats import PhaseStats

ROOT = "0x" + "11" * 32
SHA = "ab" * 32


def stats(median: float, p95: float | None = None) -> PhaseStats:
    p95 = median if p95 is None else p95
    return PhaseStats(
        median_secs=median,
        mean_secs=median,
        stddev_secs=0.0,
        p95_secs=p95,
        p99_secs=p95,
        min_secs=median,
        max_secs=p95,
    )


def make_report(
    total: float,
    accounts: float | None = None,
    storages: float | None = None,
    *,
    sha: str = SHA,
    backend: str = "inmemory",
    total_p95: float | None = None,
) -> SnapProfileReportV1:
    accounts = total / 2 if accounts is None else accounts
    storages = total / 2 if storages is None else storages
    return SnapProfileReportV1(
        tool=ToolInfo(name="snapbench", version="0.1.0", git_sha="abc123"),
        dataset=DatasetInfo(path="/data/tiny", manifest_sha256=sha, chain_id=1, pivot_block=100),
        config=RunConfig(backend=backend, repeat=5, warmup=1),
        runs=(),
        summary=PhaseSummary(
            insert_accounts=stats(accounts),
            insert_storages=stats(storages),
            total=stats(total, total_p95),
        ),
        root_validation=RootValidation.check(ROOT, ROOT),
    )


def write_pair(tmp_path: Path, baseline, candidate) -> tuple[Path, Path]:
    b = tmp_path / "baseline.json"
    c = tmp_path / "candidate.json"
    baseline.write_to_file(b)
    candidate.write_to_file(c)
    return b, c
