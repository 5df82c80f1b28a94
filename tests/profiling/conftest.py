"""Shared fixtures for profiling tests: a scripted engine and report builders."""
from __future__ import annotations

from pathlib import Path

import pytest

from snapbench.dataset.fixtures import generate_tiny_dataset
from snapbench.dataset.records import h256
from snapbench.profiling.engine import RunResult, SnapEngine
from snapbench.profiling.report import (
    DatasetInfo,
    PhaseSummary,
    RootValidation,
    RunConfig,
    RunEntry,
    SnapProfileReportV1,
    ToolInfo,
)

# the tiny fixture's post_accounts_insert_state_root
TINY_EXPECTED_ROOT = "0x" + h256(777).hex()
OTHER_ROOT = "0x" + h256(1234).hex()
TOOL = ToolInfo(name="snapbench", version="0.1.0", git_sha="abc123")


class ScriptedEngine(SnapEngine):
    """Fake engine returning pre-scripted roots and durations.

    durations is a list of (accounts_secs, storages_secs) per pass; the
    total is their sum. Each call records what the working directory held
    when the pass started, and drops a file into it.
    """

    def __init__(self, roots, durations=None):
        self.roots = list(roots)
        self.durations = durations
        self.workdirs: list[Path] = []
        self.initial_contents: list[list[str]] = []

    def run_once(self, dataset, backend, workdir):
        i = len(self.workdirs)
        self.workdirs.append(Path(workdir))
        self.initial_contents.append(sorted(p.name for p in Path(workdir).iterdir()))
        (Path(workdir) / "state.db").write_text(f"pass {i}")
        if self.durations is not None:
            acc, sto = self.durations[i]
        else:
            acc, sto = 1.0 + i, 2.0 + i
        root = self.roots[min(i, len(self.roots) - 1)]
        return RunResult(
            insert_accounts_duration=acc,
            insert_storages_duration=sto,
            total_duration=acc + sto,
            state_root=root,
        )


class FailingEngine(SnapEngine):
    def run_once(self, dataset, backend, workdir):
        raise OSError("disk full")


@pytest.fixture
def tiny_dataset(tmp_path: Path) -> Path:
    return generate_tiny_dataset(tmp_path / "tiny")


def make_runs(totals: list[float], warmup: int = 0) -> list[RunEntry]:
    return [
        RunEntry(
            index=i,
            is_warmup=i < warmup,
            insert_accounts_secs=t * 0.25,
            insert_storages_secs=t * 0.75,
            total_secs=t,
            state_root=TINY_EXPECTED_ROOT,
        )
        for i, t in enumerate(totals)
    ]


def make_report(totals: list[float], warmup: int = 0) -> SnapProfileReportV1:
    runs = make_runs(totals, warmup)
    return SnapProfileReportV1(
        tool=TOOL,
        dataset=DatasetInfo(
            path="/data/tiny",
            manifest_sha256="ab" * 32,
            chain_id=1,
            pivot_block=100,
        ),
        config=RunConfig(backend="inmemory", repeat=len(totals) - warmup, warmup=warmup),
        runs=tuple(runs),
        summary=PhaseSummary.from_runs(runs),
        root_validation=RootValidation.check(TINY_EXPECTED_ROOT, TINY_EXPECTED_ROOT),
    )
