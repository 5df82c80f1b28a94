"""Exception hierarchy for snapbench.

Everything raised on purpose derives from SnapbenchError so the CLI can
turn it into a log line and a non-zero exit status. Dataset problems
found by the verifier are NOT raised; they are collected into a
VerifyResult instead.
"""
from __future__ import annotations


class SnapbenchError(Exception):
    """Base class for all snapbench failures."""


class ManifestError(SnapbenchError):
    """manifest.json is missing, unreadable or malformed."""


class ChunkIndexError(SnapbenchError):
    """A chunk filename does not end in a parsable index."""

    def __init__(self, filename: str, suffix: str) -> None:
        self.filename = filename
        self.suffix = suffix
        super().__init__(f"Invalid chunk index in filename: {filename}")


class RLPDecodingError(SnapbenchError):
    """Bytes are not valid RLP, or do not match the expected record shape."""


class ReportFormatError(SnapbenchError):
    """A report document is missing fields or has the wrong types."""


class UnsupportedSchemaError(ReportFormatError):
    """A report declares a schema version this build does not understand."""

    def __init__(self, found: object, supported: int) -> None:
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported report schema version: {found!r} "
            f"(this build understands {supported})"
        )


class EngineError(SnapbenchError):
    """The state-insertion engine failed or could not be resolved."""


class NonDeterministicRootError(SnapbenchError):
    """Two passes over the same dataset produced different state roots."""

    def __init__(self, run_number: int, root: str, previous_root: str) -> None:
        self.run_number = run_number
        self.root = root
        self.previous_root = previous_root
        super().__init__(
            f"Non-deterministic state root! Run {run_number} produced {root}, "
            f"previous was {previous_root}"
        )


class RootMismatchError(SnapbenchError):
    """The final computed root differs from the manifest's expected root.

    The finished report rides along on the exception, since it has
    already been emitted and callers may still want to display it.
    """

    def __init__(self, computed: str, expected: str, report: object = None) -> None:
        self.computed = computed
        self.expected = expected
        self.report = report
        super().__init__(
            f"State root mismatch: computed {computed}, expected {expected}"
        )


class IncompatibleReportsError(SnapbenchError):
    """Two profile reports cannot be meaningfully compared."""


class RegressionDetectedError(SnapbenchError):
    """The candidate is slower than the baseline by more than the threshold."""


class VerificationFailedError(SnapbenchError):
    """Dataset verification reported at least one error."""

    def __init__(self, error_count: int) -> None:
        self.error_count = error_count
        super().__init__(
            f"Dataset verification failed with {error_count} errors"
        )
