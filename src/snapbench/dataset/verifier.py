"""Dataset verification before a profiling run consumes it.

The DatasetVerifier walks a dataset directory and collects every problem
it finds instead of stopping at the first one. A broken dataset usually
has several things wrong with it, and one pass that lists all of them is
far more useful than fixing them one error message at a time.

Two modes, selected by VerifyMode and sharing a single check list:
- STRUCTURAL: manifest, version, directories, chunk-index sanity.
  Cheap; touches only directory listings and the manifest.
- STRICT: everything above, then reads and RLP-decodes every chunk and
  totals the accounts and storage slots. O(dataset size).

Checks run in a fixed order. None of them aborts the others, except
that a directory which is missing or empty contributes no chunks to the
later index and decode checks.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from snapbench.dataset.chunks import (
    ACCOUNT_CHUNK_PREFIX,
    STORAGE_CHUNK_PREFIX,
    ChunkFile,
    check_chunk_indices,
    list_chunks,
)
from snapbench.dataset.manifest import (
    DEFAULT_ACCOUNT_STATE_DIR,
    DEFAULT_ACCOUNT_STORAGES_DIR,
    MANIFEST_FILENAME,
    SUPPORTED_MANIFEST_VERSION,
    Manifest,
    load_manifest,
)
from snapbench.dataset.records import decode_account_chunk, decode_storage_chunk
from snapbench.dataset.result import DatasetStats, VerifyError, VerifyResult
from snapbench.errors import ManifestError, RLPDecodingError, VerificationFailedError

log = logging.getLogger(__name__)


class VerifyMode(Enum):
    STRUCTURAL = "structural"
    STRICT = "strict"


class DatasetVerifier:
    """Validates one dataset directory.

    A verifier instance is single-use: construct it, call verify(), read
    the VerifyResult. The result is immutable; the verifier's scratch
    state is not reused.
    """

    def __init__(self, dataset: Path, mode: VerifyMode = VerifyMode.STRUCTURAL) -> None:
        self._dataset = Path(dataset)
        self._mode = mode
        self._errors: list[VerifyError] = []
        self._total_accounts = 0
        self._total_storage_slots = 0

    def verify(self) -> VerifyResult:
        manifest = self._check_manifest()

        if manifest is not None:
            acc_dir_name = manifest.paths.account_state_snapshots_dir
            storage_dir_name = manifest.paths.account_storages_snapshots_dir
        else:
            acc_dir_name = DEFAULT_ACCOUNT_STATE_DIR
            storage_dir_name = DEFAULT_ACCOUNT_STORAGES_DIR

        acc_chunks = list_chunks(
            self._dataset / acc_dir_name, ACCOUNT_CHUNK_PREFIX, self._errors
        )
        storage_chunks = list_chunks(
            self._dataset / storage_dir_name, STORAGE_CHUNK_PREFIX, self._errors
        )

        check_chunk_indices(acc_chunks, acc_dir_name, self._errors)
        check_chunk_indices(storage_chunks, storage_dir_name, self._errors)

        if self._mode is VerifyMode.STRICT:
            self._decode_accounts(acc_chunks)
            self._decode_storages(storage_chunks)

        return VerifyResult(
            valid=not self._errors,
            strict=self._mode is VerifyMode.STRICT,
            errors=tuple(self._errors),
            stats=DatasetStats(
                account_chunks=len(acc_chunks),
                storage_chunks=len(storage_chunks),
                total_accounts=self._total_accounts,
                total_storage_slots=self._total_storage_slots,
            ),
        )

    def _check_manifest(self) -> Manifest | None:
        try:
            manifest = load_manifest(self._dataset)
        except ManifestError as exc:
            self._errors.append(
                VerifyError(MANIFEST_FILENAME, f"Failed to load manifest: {exc}")
            )
            return None

        if manifest.version != SUPPORTED_MANIFEST_VERSION:
            self._errors.append(VerifyError(
                MANIFEST_FILENAME,
                f"Unsupported manifest version: {manifest.version} "
                f"(expected {SUPPORTED_MANIFEST_VERSION})",
            ))
        return manifest

    def _read(self, chunk: ChunkFile) -> bytes | None:
        try:
            return chunk.path.read_bytes()
        except OSError as exc:
            self._errors.append(VerifyError(
                str(chunk.path), f"Failed to read file: {exc.strerror or exc}"
            ))
            return None

    def _decode_accounts(self, chunks: list[ChunkFile]) -> None:
        for chunk in chunks:
            data = self._read(chunk)
            if data is None:
                continue
            try:
                accounts = decode_account_chunk(data)
            except RLPDecodingError as exc:
                self._errors.append(VerifyError(
                    str(chunk.path), f"Failed to decode account RLP: {exc}"
                ))
                continue
            self._total_accounts += len(accounts)
            log.debug("%s: %d accounts", chunk.name, len(accounts))

    def _decode_storages(self, chunks: list[ChunkFile]) -> None:
        for chunk in chunks:
            data = self._read(chunk)
            if data is None:
                continue
            try:
                entries = decode_storage_chunk(data)
            except RLPDecodingError as exc:
                self._errors.append(VerifyError(
                    str(chunk.path), f"Failed to decode storage RLP: {exc}"
                ))
                continue
            slots = sum(len(e.slots) for e in entries)
            self._total_storage_slots += slots
            log.debug("%s: %d entries, %d slots", chunk.name, len(entries), slots)


def verify_dataset(
    dataset: Path, mode: VerifyMode = VerifyMode.STRUCTURAL
) -> VerifyResult:
    """Verify a dataset directory. Never raises for dataset problems."""
    return DatasetVerifier(dataset, mode).verify()


def format_verify_result(result: VerifyResult, dataset: Path) -> str:
    """Human-readable summary of a VerifyResult."""
    lines = [
        "=== Dataset Verification ===",
        f"Dataset:           {dataset}",
        f"Strict mode:       {result.strict}",
        f"Account chunks:    {result.stats.account_chunks}",
        f"Storage chunks:    {result.stats.storage_chunks}",
    ]
    if result.strict:
        lines.append(f"Total accounts:    {result.stats.total_accounts:,}")
        lines.append(f"Total slots:       {result.stats.total_storage_slots:,}")
    if result.valid:
        lines.append("Result:            VALID")
    else:
        lines.append(f"Result:            INVALID ({len(result.errors)} errors)")
        for err in result.errors:
            lines.append(f"  [{err.file}] {err.message}")
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class VerifyOptions:
    dataset: Path
    strict: bool = False
    json_out: Path | None = None
    json_stdout: bool = False


def run_verify(opts: VerifyOptions) -> VerifyResult:
    """Verify, log the summary, emit JSON, then fail if invalid.

    JSON output is written even for an invalid dataset; the
    VerificationFailedError comes last.
    """
    mode = VerifyMode.STRICT if opts.strict else VerifyMode.STRUCTURAL
    result = verify_dataset(opts.dataset, mode)

    for line in format_verify_result(result, opts.dataset).splitlines():
        log.info("%s", line)

    if opts.json_out is not None:
        Path(opts.json_out).write_text(result.to_json(), encoding="utf-8")
        log.info("Report written to: %s", opts.json_out)
    if opts.json_stdout:
        print(result.to_json())

    if not result.valid:
        raise VerificationFailedError(len(result.errors))
    return result
