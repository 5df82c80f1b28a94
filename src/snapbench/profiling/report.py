"""SnapProfileReportV1: the persisted record of one profiling session.

The report is the unit of persistence and the unit of comparison. It
carries enough identity (tool build, manifest hash, backend) for the
comparator to refuse to diff two runs that measured different things.

Serialization is plain JSON. Floats go through json's repr-based
encoding, so a write/load round trip reproduces every phase statistic
bit for bit. Loading a document with any schema_version other than
REPORT_SCHEMA_VERSION raises UnsupportedSchemaError: a reader must not
guess at the meaning of a format it does not know.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from snapbench.errors import ReportFormatError, UnsupportedSchemaError
from snapbench.profiling.stats import PhaseStats, phase_stats

REPORT_SCHEMA_VERSION = 1


@dataclass(frozen=True, slots=True)
class ToolInfo:
    name: str
    version: str
    git_sha: str


@dataclass(frozen=True, slots=True)
class DatasetInfo:
    path: str
    manifest_sha256: str
    chain_id: int
    pivot_block: int


@dataclass(frozen=True, slots=True)
class RunConfig:
    backend: str
    repeat: int
    warmup: int


@dataclass(frozen=True, slots=True)
class RunEntry:
    """One executed pass. Warmup passes are kept for audit."""
    index: int
    is_warmup: bool
    insert_accounts_secs: float
    insert_storages_secs: float
    total_secs: float
    state_root: str


@dataclass(frozen=True, slots=True)
class PhaseSummary:
    insert_accounts: PhaseStats
    insert_storages: PhaseStats
    total: PhaseStats

    @classmethod
    def from_runs(cls, runs: list[RunEntry]) -> PhaseSummary:
        """Summarize measured runs only; warmups are skipped."""
        measured = [r for r in runs if not r.is_warmup]
        return cls(
            insert_accounts=phase_stats(r.insert_accounts_secs for r in measured),
            insert_storages=phase_stats(r.insert_storages_secs for r in measured),
            total=phase_stats(r.total_secs for r in measured),
        )


@dataclass(frozen=True, slots=True)
class RootValidation:
    computed: str
    expected: str
    matches: bool

    @classmethod
    def check(cls, computed: str, expected: str) -> RootValidation:
        return cls(
            computed=computed,
            expected=expected,
            matches=computed.lower() == expected.lower(),
        )


def _load(cls: type, obj: Any, where: str) -> Any:
    """Build a flat record dataclass from a dict, checking field types."""
    if not isinstance(obj, dict):
        raise ReportFormatError(f"Expected an object at {where}")
    kwargs = {}
    for f in fields(cls):
        if f.name not in obj:
            raise ReportFormatError(f"Missing field '{where}.{f.name}'")
        value = obj[f.name]
        kind = f.type if isinstance(f.type, str) else f.type.__name__
        if kind == "float":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ReportFormatError(f"Field '{where}.{f.name}' must be a number")
            value = float(value)
        elif kind == "int":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ReportFormatError(f"Field '{where}.{f.name}' must be an integer")
        elif kind == "bool":
            if not isinstance(value, bool):
                raise ReportFormatError(f"Field '{where}.{f.name}' must be a boolean")
        elif kind == "str":
            if not isinstance(value, str):
                raise ReportFormatError(f"Field '{where}.{f.name}' must be a string")
        kwargs[f.name] = value
    return cls(**kwargs)


def _dump(record: Any) -> dict[str, Any]:
    return {f.name: getattr(record, f.name) for f in fields(record)}


@dataclass(frozen=True, slots=True)
class SnapProfileReportV1:
    tool: ToolInfo
    dataset: DatasetInfo
    config: RunConfig
    runs: tuple[RunEntry, ...]
    summary: PhaseSummary
    root_validation: RootValidation
    schema_version: int = REPORT_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "tool": _dump(self.tool),
            "dataset": _dump(self.dataset),
            "config": _dump(self.config),
            "runs": [_dump(r) for r in self.runs],
            "summary": {
                "insert_accounts": _dump(self.summary.insert_accounts),
                "insert_storages": _dump(self.summary.insert_storages),
                "total": _dump(self.summary.total),
            },
            "root_validation": _dump(self.root_validation),
        }

    @classmethod
    def from_dict(cls, obj: Any) -> SnapProfileReportV1:
        if not isinstance(obj, dict):
            raise ReportFormatError("Report must be a JSON object")
        version = obj.get("schema_version")
        if version != REPORT_SCHEMA_VERSION or isinstance(version, bool):
            raise UnsupportedSchemaError(version, REPORT_SCHEMA_VERSION)

        runs = obj.get("runs")
        if not isinstance(runs, list):
            raise ReportFormatError("Field 'runs' must be a list")
        summary = obj.get("summary")
        if not isinstance(summary, dict):
            raise ReportFormatError("Field 'summary' must be an object")

        return cls(
            schema_version=version,
            tool=_load(ToolInfo, obj.get("tool"), "tool"),
            dataset=_load(DatasetInfo, obj.get("dataset"), "dataset"),
            config=_load(RunConfig, obj.get("config"), "config"),
            runs=tuple(
                _load(RunEntry, r, f"runs[{i}]") for i, r in enumerate(runs)
            ),
            summary=PhaseSummary(
                insert_accounts=_load(
                    PhaseStats, summary.get("insert_accounts"), "summary.insert_accounts"
                ),
                insert_storages=_load(
                    PhaseStats, summary.get("insert_storages"), "summary.insert_storages"
                ),
                total=_load(PhaseStats, summary.get("total"), "summary.total"),
            ),
            root_validation=_load(
                RootValidation, obj.get("root_validation"), "root_validation"
            ),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> SnapProfileReportV1:
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ReportFormatError(f"Report is not valid JSON: {exc}") from exc
        return cls.from_dict(obj)

    def write_to_file(self, path: Path) -> None:
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load_from_file(cls, path: Path) -> SnapProfileReportV1:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ReportFormatError(
                f"Cannot read report {path}: {exc.strerror or exc}"
            ) from exc
        except UnicodeDecodeError as exc:
            raise ReportFormatError(f"Report {path} is not valid UTF-8: {exc}") from exc
        return cls.from_json(text)


def _phase_rows(label: str, s: PhaseStats) -> list[str]:
    return [
        f"{label}:",
        f"  median:  {s.median_secs:>10.3f} s",
        f"  mean:    {s.mean_secs:>10.3f} s",
        f"  stddev:  {s.stddev_secs:>10.3f} s",
        f"  p95:     {s.p95_secs:>10.3f} s",
        f"  p99:     {s.p99_secs:>10.3f} s",
        f"  min:     {s.min_secs:>10.3f} s",
        f"  max:     {s.max_secs:>10.3f} s",
    ]


def format_report(report: SnapProfileReportV1) -> str:
    """Format a profile report as a readable summary."""
    measured = sum(1 for r in report.runs if not r.is_warmup)
    rv = report.root_validation
    status = "MATCH" if rv.matches else "MISMATCH"
    lines = [
        f"=== Results ({measured} measured runs, backend={report.config.backend}) ===",
        f"Dataset:           {report.dataset.path}",
        f"Pivot block:       #{report.dataset.pivot_block}",
        f"Computed root:     {rv.computed}",
        f"Expected root:     {rv.expected} [{status}]",
        "",
    ]
    lines += _phase_rows("InsertAccounts", report.summary.insert_accounts)
    lines += _phase_rows("InsertStorages", report.summary.insert_storages)
    lines += _phase_rows("Total", report.summary.total)
    return "\n".join(lines)
