"""Synthetic datasets for exercising the verifier and the profiler.

generate_tiny_dataset() writes a valid dataset with 3 accounts and one
storage entry holding 2 slots. Each generate_corrupt_* function starts
from the tiny dataset (or from nothing) and breaks exactly one thing, so
a test can assert that the verifier reports that one thing.

The expected state root in the tiny manifest is a placeholder. It is not
the root any real engine would compute, so a profiling run against the
tiny dataset ends with a root mismatch. These fixtures test dataset
loading and decoding, not replay correctness.
"""
from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Callable

from snapbench.dataset.chunks import (
    ACCOUNT_CHUNK_PREFIX,
    STORAGE_CHUNK_PREFIX,
    chunk_filename,
)
from snapbench.dataset.manifest import (
    DEFAULT_ACCOUNT_STATE_DIR,
    DEFAULT_ACCOUNT_STORAGES_DIR,
    MANIFEST_FILENAME,
    DatasetPaths,
    Manifest,
    PivotInfo,
    write_manifest,
)
from snapbench.dataset.records import (
    AccountState,
    StorageEntry,
    encode_account_chunk,
    encode_storage_chunk,
    h256,
)

TINY_ACCOUNTS = [
    (h256(1), AccountState(nonce=1, balance=1000)),
    (h256(2), AccountState(nonce=0, balance=2000)),
    (h256(3), AccountState(nonce=5, balance=500)),
]

TINY_STORAGES = [
    StorageEntry(
        account_hashes=(h256(1),),
        slots=((h256(100), 42), (h256(101), 99)),
    ),
]

BAD_RLP_BYTES = b"\xff\xfe\xfd\xfc"


def _hex(value: bytes) -> str:
    return "0x" + value.hex()


def tiny_manifest() -> Manifest:
    return Manifest(
        version=1,
        chain_id=1,
        pivot=PivotInfo(
            number=100,
            hash=_hex(h256(999)),
            state_root=_hex(h256(888)),
            timestamp=1_700_000_000,
        ),
        post_accounts_insert_state_root=_hex(h256(777)),
        paths=DatasetPaths(),
    )


def generate_tiny_dataset(directory: Path) -> Path:
    """Write the 3-account / 2-slot dataset into directory and return it."""
    directory = Path(directory)
    acc_dir = directory / DEFAULT_ACCOUNT_STATE_DIR
    storage_dir = directory / DEFAULT_ACCOUNT_STORAGES_DIR
    acc_dir.mkdir(parents=True, exist_ok=True)
    storage_dir.mkdir(parents=True, exist_ok=True)

    (acc_dir / chunk_filename(ACCOUNT_CHUNK_PREFIX, 0)).write_bytes(
        encode_account_chunk(TINY_ACCOUNTS)
    )
    (storage_dir / chunk_filename(STORAGE_CHUNK_PREFIX, 0)).write_bytes(
        encode_storage_chunk(TINY_STORAGES)
    )
    write_manifest(directory, tiny_manifest())
    return directory


def generate_corrupt_missing_manifest(directory: Path) -> Path:
    """Snapshot directories with placeholder files, but no manifest.json."""
    directory = Path(directory)
    for name in (DEFAULT_ACCOUNT_STATE_DIR, DEFAULT_ACCOUNT_STORAGES_DIR):
        sub = directory / name
        sub.mkdir(parents=True, exist_ok=True)
        (sub / "dummy.rlp.0").write_bytes(b"placeholder")
    return directory


def generate_corrupt_empty_storage_dir(directory: Path) -> Path:
    """Valid manifest and account chunks; the storage directory is empty."""
    generate_tiny_dataset(directory)
    storage_dir = Path(directory) / DEFAULT_ACCOUNT_STORAGES_DIR
    shutil.rmtree(storage_dir)
    storage_dir.mkdir()
    return Path(directory)


def generate_corrupt_bad_rlp(directory: Path) -> Path:
    """The account chunk holds garbage bytes instead of RLP."""
    generate_tiny_dataset(directory)
    path = Path(directory) / DEFAULT_ACCOUNT_STATE_DIR / chunk_filename(
        ACCOUNT_CHUNK_PREFIX, 0
    )
    path.write_bytes(BAD_RLP_BYTES)
    return Path(directory)


def generate_corrupt_bad_version(directory: Path) -> Path:
    """Valid data, but the manifest declares version 99."""
    generate_tiny_dataset(directory)
    path = Path(directory) / MANIFEST_FILENAME
    obj = json.loads(path.read_text(encoding="utf-8"))
    obj["version"] = 99
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
    return Path(directory)


def generate_corrupt_gap_index(directory: Path) -> Path:
    """Two account chunks with indices {0, 2}: index 1 is missing."""
    generate_tiny_dataset(directory)
    acc_dir = Path(directory) / DEFAULT_ACCOUNT_STATE_DIR
    shutil.copyfile(
        acc_dir / chunk_filename(ACCOUNT_CHUNK_PREFIX, 0),
        acc_dir / chunk_filename(ACCOUNT_CHUNK_PREFIX, 2),
    )
    return Path(directory)


def generate_corrupt_duplicate_index(directory: Path) -> Path:
    """Two account chunks whose suffixes "0" and "00" both parse to 0."""
    generate_tiny_dataset(directory)
    acc_dir = Path(directory) / DEFAULT_ACCOUNT_STATE_DIR
    shutil.copyfile(
        acc_dir / chunk_filename(ACCOUNT_CHUNK_PREFIX, 0),
        acc_dir / f"{ACCOUNT_CHUNK_PREFIX}.rlp.00",
    )
    return Path(directory)


VARIANTS: dict[str, Callable[[Path], Path]] = {
    "tiny": generate_tiny_dataset,
    "missing-manifest": generate_corrupt_missing_manifest,
    "empty-storage": generate_corrupt_empty_storage_dir,
    "bad-rlp": generate_corrupt_bad_rlp,
    "bad-version": generate_corrupt_bad_version,
    "gap-index": generate_corrupt_gap_index,
    "duplicate-index": generate_corrupt_duplicate_index,
}
