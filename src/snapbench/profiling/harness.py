"""Profiling session: replay a dataset N times and build a report.

A session runs warmup + repeat passes, strictly one after another:

  1. Provision an empty working directory for the pass.
  2. Call engine.run_once() and record the three phase durations and
     the resulting state root.
  3. Compare the root to the previous pass's root. Same dataset, same
     engine, different root means the engine is non-deterministic. That
     is a bug in the engine, so the session aborts with no report.
  4. Tear the working directory down (unless it is the final measured
     pass and keep_db was requested).

Warmup passes go into the run log but not into the statistics. After the
last pass the final root is checked against the manifest's expected
root. The JSON report is written BEFORE a mismatch is raised: a failing
run is exactly the run someone will want to inspect.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

import snapbench
from snapbench.dataset.manifest import compute_manifest_sha256, load_manifest, manifest_path
from snapbench.errors import (
    EngineError,
    NonDeterministicRootError,
    RootMismatchError,
    SnapbenchError,
)
from snapbench.profiling.engine import SnapEngine, get_engine, normalize_root
from snapbench.profiling.report import (
    DatasetInfo,
    PhaseSummary,
    RootValidation,
    RunConfig,
    RunEntry,
    SnapProfileReportV1,
    ToolInfo,
)

log = logging.getLogger(__name__)

TOOL_NAME = "snapbench"
GIT_SHA_ENV = "SNAPBENCH_GIT_SHA"
WORKDIR_MARKER = ".snapbench-workdir"


@dataclass(frozen=True, slots=True)
class ProfileOptions:
    dataset: Path
    backend: str = "inmemory"
    repeat: int = 5
    warmup: int = 1
    db_dir: Path | None = None
    keep_db: bool = False
    json_out: Path | None = None
    json_stdout: bool = False


@dataclass(frozen=True, slots=True)
class ProfileOutcome:
    report: SnapProfileReportV1
    kept_db: Path | None = None


def _git_sha() -> str:
    env = os.environ.get(GIT_SHA_ENV)
    if env:
        return env
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    sha = proc.stdout.strip()
    return sha if proc.returncode == 0 and sha else "unknown"


def tool_info() -> ToolInfo:
    return ToolInfo(name=TOOL_NAME, version=snapbench.__version__, git_sha=_git_sha())


class _Workdirs:
    """Hands out one fresh working directory per pass and cleans it up.

    With an explicit db_dir, every pass reuses that path: it is cleared
    and recreated before the pass and removed after it. Without one,
    every pass gets its own tempfile.mkdtemp() directory. Either way a
    pass never sees files left behind by an earlier pass.
    """

    def __init__(self, db_dir: Path | None) -> None:
        self._db_dir = Path(db_dir) if db_dir is not None else None

    def provision(self) -> Path:
        if self._db_dir is None:
            path = Path(tempfile.mkdtemp(prefix="snapbench-"))
        else:
            path = self._db_dir
            if path.exists():
                self._check_owned(path)
                shutil.rmtree(path)
            path.mkdir(parents=True)
        (path / WORKDIR_MARKER).touch()
        return path

    @staticmethod
    def _check_owned(path: Path) -> None:
        if not path.is_dir():
            raise SnapbenchError(f"--db-dir {path} exists and is not a directory")
        if any(path.iterdir()) and not (path / WORKDIR_MARKER).exists():
            raise SnapbenchError(
                f"Refusing to clear {path}: it is not empty and was not "
                f"created by snapbench"
            )

    @staticmethod
    def release(path: Path, keep: bool) -> None:
        if keep:
            log.info("Keeping working directory: %s", path)
            return
        shutil.rmtree(path, ignore_errors=True)


def _validate(opts: ProfileOptions) -> None:
    if opts.repeat < 1:
        raise ValueError(f"repeat must be at least 1, got {opts.repeat}")
    if opts.warmup < 0:
        raise ValueError(f"warmup must be non-negative, got {opts.warmup}")


def emit_report(report: SnapProfileReportV1, json_out: Path | None, json_stdout: bool) -> None:
    if json_out is not None:
        report.write_to_file(json_out)
        log.info("Report written to: %s", json_out)
    if json_stdout:
        print(report.to_json())


def run_profile(
    opts: ProfileOptions,
    engine: SnapEngine | None = None,
    tool: ToolInfo | None = None,
) -> ProfileOutcome:
    """Run a full profiling session and return the report.

    Raises:
        ManifestError: the dataset's manifest cannot be loaded.
        EngineError: a pass failed inside the engine.
        NonDeterministicRootError: two passes disagreed on the root.
        RootMismatchError: the final root differs from the manifest's
            expected root (raised after the report has been emitted).
    """
    _validate(opts)
    dataset = Path(opts.dataset)
    manifest = load_manifest(dataset)
    manifest_sha = compute_manifest_sha256(manifest_path(dataset))
    if engine is None:
        engine = get_engine(opts.backend)

    log.info("=== SnapSync Offline Profiler ===")
    log.info("Dataset: %s", dataset)
    log.info("Pivot block: #%d (hash: %s)", manifest.pivot.number, manifest.pivot.hash)
    log.info(
        "Backend: %s | Repeat: %d | Warmup: %d",
        opts.backend, opts.repeat, opts.warmup,
    )

    workdirs = _Workdirs(opts.db_dir)
    total_runs = opts.warmup + opts.repeat
    runs: list[RunEntry] = []
    last_root: str | None = None
    kept: Path | None = None

    for i in range(total_runs):
        is_warmup = i < opts.warmup
        label = "warmup" if is_warmup else "run"
        run_num = i + 1 if is_warmup else i - opts.warmup + 1
        keep = opts.keep_db and i == total_runs - 1

        workdir = workdirs.provision()
        log.debug("[%s %d] working directory %s", label, run_num, workdir)
        try:
            try:
                result = engine.run_once(dataset, opts.backend, workdir)
            except Exception as exc:
                raise EngineError(f"Run {i + 1} failed: {exc}") from exc
            root = normalize_root(result.state_root)

            if last_root is not None and root != last_root:
                raise NonDeterministicRootError(i + 1, root, last_root)
            last_root = root
        finally:
            workdirs.release(workdir, keep)
        if keep:
            kept = workdir

        log.info(
            "[%s %d] accounts=%.3fs storages=%.3fs total=%.3fs",
            label, run_num,
            result.insert_accounts_duration,
            result.insert_storages_duration,
            result.total_duration,
        )
        runs.append(RunEntry(
            index=i,
            is_warmup=is_warmup,
            insert_accounts_secs=float(result.insert_accounts_duration),
            insert_storages_secs=float(result.insert_storages_duration),
            total_secs=float(result.total_duration),
            state_root=root,
        ))

    validation = RootValidation.check(
        computed=last_root or "",
        expected=manifest.post_accounts_insert_state_root,
    )
    report = SnapProfileReportV1(
        tool=tool or tool_info(),
        dataset=DatasetInfo(
            path=str(dataset),
            manifest_sha256=manifest_sha,
            chain_id=manifest.chain_id,
            pivot_block=manifest.pivot.number,
        ),
        config=RunConfig(backend=opts.backend, repeat=opts.repeat, warmup=opts.warmup),
        runs=tuple(runs),
        summary=PhaseSummary.from_runs(runs),
        root_validation=validation,
    )

    emit_report(report, opts.json_out, opts.json_stdout)

    if not validation.matches:
        raise RootMismatchError(validation.computed, validation.expected, report)

    return ProfileOutcome(report=report, kept_db=kept)
