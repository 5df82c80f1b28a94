"""snapbench CLI entry point.

Usage: snapbench [-v | -q] {verify,profile,compare,fixture} ...
"""
import argparse
import logging
import sys
from pathlib import Path

from snapbench.errors import RootMismatchError, SnapbenchError

log = logging.getLogger("snapbench")


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {value}")
    return value


def _positive_int(text: str) -> int:
    value = _non_negative_int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _add_json_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--json-out", type=Path, default=None, metavar="PATH",
        help="Write the JSON result to PATH.",
    )
    p.add_argument(
        "--json-stdout", action="store_true",
        help="Print the JSON result to stdout.",
    )


def _add_verify_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "verify",
        help="Validate a snapshot dataset directory.",
    )
    p.add_argument("dataset", type=Path, help="Dataset directory")
    p.add_argument(
        "--strict", action="store_true",
        help="Also read and RLP-decode every chunk (slow on large datasets).",
    )
    _add_json_flags(p)


def _add_profile_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "profile",
        help="Replay a dataset repeatedly and report per-phase timings.",
    )
    p.add_argument("dataset", type=Path, help="Dataset directory")
    p.add_argument(
        "--backend", default="inmemory",
        help="Engine backend to benchmark (default: inmemory)",
    )
    p.add_argument(
        "--repeat", type=_positive_int, default=5,
        help="Number of measured runs (default: 5)",
    )
    p.add_argument(
        "--warmup", type=_non_negative_int, default=1,
        help="Number of warmup runs excluded from statistics (default: 1)",
    )
    p.add_argument(
        "--db-dir", type=Path, default=None, metavar="PATH",
        help="Working directory for the engine (default: a fresh temp dir per run)",
    )
    p.add_argument(
        "--keep-db", action="store_true",
        help="Keep the final measured run's working directory.",
    )
    _add_json_flags(p)


def _add_compare_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "compare",
        help="Compare two profile reports and flag regressions.",
    )
    p.add_argument("baseline", type=Path, help="Baseline report JSON")
    p.add_argument("candidate", type=Path, help="Candidate report JSON")
    p.add_argument(
        "--regression-threshold-pct", type=float, default=None, metavar="PCT",
        help="Flag a regression when total median grows by more than PCT percent.",
    )
    p.add_argument(
        "--fail-on-regression", action="store_true",
        help="Exit non-zero when a regression is detected.",
    )
    _add_json_flags(p)


def _add_fixture_parser(subparsers: argparse._SubParsersAction) -> None:
    from snapbench.dataset.fixtures import VARIANTS

    p = subparsers.add_parser(
        "fixture",
        help="Write a synthetic dataset (valid or deliberately corrupt).",
    )
    p.add_argument("directory", type=Path, help="Output directory")
    p.add_argument(
        "--variant", choices=sorted(VARIANTS), default="tiny",
        help="Which dataset to generate (default: tiny)",
    )


def _run_verify(args: argparse.Namespace) -> None:
    from snapbench.dataset.verifier import VerifyOptions, run_verify

    run_verify(VerifyOptions(
        dataset=args.dataset,
        strict=args.strict,
        json_out=args.json_out,
        json_stdout=args.json_stdout,
    ))


def _run_profile(args: argparse.Namespace) -> None:
    from snapbench.profiling.harness import ProfileOptions, run_profile
    from snapbench.profiling.report import format_report

    opts = ProfileOptions(
        dataset=args.dataset,
        backend=args.backend,
        repeat=args.repeat,
        warmup=args.warmup,
        db_dir=args.db_dir,
        keep_db=args.keep_db,
        json_out=args.json_out,
        json_stdout=args.json_stdout,
    )
    try:
        outcome = run_profile(opts)
    except RootMismatchError as exc:
        if exc.report is not None:
            log.info("%s", format_report(exc.report))
        raise
    log.info("%s", format_report(outcome.report))
    if outcome.kept_db is not None:
        log.info("Working directory kept at: %s", outcome.kept_db)


def _run_compare(args: argparse.Namespace) -> None:
    from snapbench.compare.comparator import CompareOptions, run_compare

    run_compare(CompareOptions(
        baseline=args.baseline,
        candidate=args.candidate,
        regression_threshold_pct=args.regression_threshold_pct,
        fail_on_regression=args.fail_on_regression,
        json_out=args.json_out,
        json_stdout=args.json_stdout,
    ))


def _run_fixture(args: argparse.Namespace) -> None:
    from snapbench.dataset.fixtures import VARIANTS

    path = VARIANTS[args.variant](args.directory)
    log.info("Fixture '%s' written to %s", args.variant, path)


_COMMANDS = {
    "verify": _run_verify,
    "profile": _run_profile,
    "compare": _run_compare,
    "fixture": _run_fixture,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapbench",
        description="Snap-sync dataset verification, profiling and regression gating.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging."
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only warnings and errors."
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_verify_parser(subparsers)
    _add_profile_parser(subparsers)
    _add_compare_parser(subparsers)
    _add_fixture_parser(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        _COMMANDS[args.command](args)
    except SnapbenchError as exc:
        log.error("%s", exc)
        sys.exit(1)
