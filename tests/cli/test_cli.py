"""End-to-end tests for the snapbench command line."""
from __future__ import annotations

import json

import pytest

from snapbench.cli import build_parser, main
from snapbench.dataset.fixtures import VARIANTS


def _exit_code(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParser:
    def test_fixture_variants_listed(self):
        args = build_parser().parse_args(["fixture", "out", "--variant", "gap-index"])
        assert args.variant == "gap-index"
        assert set(VARIANTS) >= {"tiny", "bad-rlp", "duplicate-index"}

    def test_profile_defaults(self):
        args = build_parser().parse_args(["profile", "data"])
        assert args.backend == "inmemory"
        assert args.repeat == 5
        assert args.warmup == 1
        assert args.db_dir is None
        assert not args.keep_db

    def test_verbose_and_quiet_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-v", "-q", "verify", "data"])

    def test_no_command_prints_help(self, capsys):
        assert _exit_code([]) == 0
        assert "snapbench" in capsys.readouterr().out


class TestVerifyCommand:
    def test_fixture_then_verify(self, tmp_path, capsys):
        ds = tmp_path / "tiny"
        main(["fixture", str(ds)])
        main(["verify", str(ds), "--strict", "--json-stdout"])
        obj = json.loads(capsys.readouterr().out)
        assert obj["valid"] is True
        assert obj["stats"]["total_accounts"] == 3

    @pytest.mark.parametrize("variant", [
        "missing-manifest", "empty-storage", "bad-version", "gap-index", "duplicate-index",
    ])
    def test_corrupt_variants_fail(self, tmp_path, variant):
        ds = tmp_path / variant
        main(["fixture", str(ds), "--variant", variant])
        assert _exit_code(["verify", str(ds)]) == 1

    def test_non_utf8_manifest_fails_verification(self, tmp_path):
        ds = tmp_path / "tiny"
        out = tmp_path / "verify.json"
        main(["fixture", str(ds)])
        (ds / "manifest.json").write_bytes(b'{"version": 1, "\xff\xfe": 1}')
        assert _exit_code(["verify", str(ds), "--json-out", str(out)]) == 1
        assert json.loads(out.read_text())["errors"][0]["file"] == "manifest.json"

    def test_bad_rlp_needs_strict(self, tmp_path):
        ds = tmp_path / "bad"
        main(["fixture", str(ds), "--variant", "bad-rlp"])
        main(["verify", str(ds)])
        assert _exit_code(["verify", str(ds), "--strict"]) == 1


class TestProfileCommand:
    def test_inmemory_root_mismatch_exits_with_report(self, tmp_path):
        ds = tmp_path / "tiny"
        out = tmp_path / "report.json"
        main(["fixture", str(ds)])
        code = _exit_code([
            "-q", "profile", str(ds), "--repeat", "2", "--warmup", "0",
            "--json-out", str(out),
        ])
        assert code == 1
        obj = json.loads(out.read_text())
        assert obj["root_validation"]["matches"] is False
        assert len(obj["runs"]) == 2

    def test_zero_repeat_is_a_usage_error(self, tmp_path):
        ds = tmp_path / "tiny"
        main(["fixture", str(ds)])
        assert _exit_code(["profile", str(ds), "--repeat", "0"]) == 2

    @pytest.mark.parametrize("flags", [["--warmup", "-1"], ["--repeat", "x"]])
    def test_bad_counts_are_usage_errors(self, tmp_path, flags):
        assert _exit_code(["profile", str(tmp_path), *flags]) == 2

    def test_non_utf8_manifest_is_a_data_error(self, tmp_path):
        ds = tmp_path / "tiny"
        main(["fixture", str(ds)])
        (ds / "manifest.json").write_bytes(b'{"version": 1, "\xff\xfe": 1}')
        assert _exit_code(["profile", str(ds)]) == 1

    def test_unknown_backend(self, tmp_path):
        ds = tmp_path / "tiny"
        main(["fixture", str(ds)])
        assert _exit_code(["profile", str(ds), "--backend", "lmdb"]) == 1

    def test_missing_dataset(self, tmp_path):
        assert _exit_code(["profile", str(tmp_path / "nope")]) == 1


class TestCompareCommand:
    @staticmethod
    def _report(tmp_path, name, scale):
        from snapbench.profiling.report import SnapProfileReportV1

        ds = tmp_path / "tiny"
        out = tmp_path / "seed.json"
        if not ds.exists():
            main(["fixture", str(ds)])
        if not out.exists():
            _exit_code(["-q", "profile", str(ds), "--repeat", "1", "--warmup", "0",
                        "--json-out", str(out)])
        obj = json.loads(out.read_text())
        for phase in obj["summary"].values():
            for key in phase:
                phase[key] = 10.0 * scale
        path = tmp_path / name
        path.write_text(json.dumps(obj))
        SnapProfileReportV1.load_from_file(path)
        return path

    def test_regression_gate(self, tmp_path, capsys):
        b = self._report(tmp_path, "b.json", 1.0)
        c = self._report(tmp_path, "c.json", 1.2)
        code = _exit_code([
            "compare", str(b), str(c),
            "--regression-threshold-pct", "5", "--fail-on-regression",
        ])
        assert code == 1
        assert "REGRESSION DETECTED" in capsys.readouterr().out

    def test_within_threshold_passes(self, tmp_path, capsys):
        b = self._report(tmp_path, "b.json", 1.0)
        c = self._report(tmp_path, "c.json", 1.2)
        main([
            "compare", str(b), str(c),
            "--regression-threshold-pct", "25", "--fail-on-regression",
        ])
        assert "No regression detected." in capsys.readouterr().out

    def test_missing_report(self, tmp_path):
        b = self._report(tmp_path, "b.json", 1.0)
        assert _exit_code(["compare", str(b), str(tmp_path / "absent.json")]) == 1
