"""manifest.json: the descriptor at the root of every snapshot dataset.

The manifest pins the pivot block the snapshots were taken at, the state
root expected once every account has been inserted (the correctness
oracle for a profiling run), and where the two snapshot directories live
relative to the dataset root.

The SHA-256 of the manifest's raw bytes is the dataset's identity: two
profile reports are only comparable if they were produced from byte-
identical manifests.
"""
from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from snapbench.errors import ManifestError

MANIFEST_FILENAME = "manifest.json"
SUPPORTED_MANIFEST_VERSION = 1

DEFAULT_ACCOUNT_STATE_DIR = "account_state_snapshots"
DEFAULT_ACCOUNT_STORAGES_DIR = "account_storages_snapshots"

_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_READ_BLOCK = 8192


@dataclass(frozen=True, slots=True)
class PivotInfo:
    number: int
    hash: str
    state_root: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class DatasetPaths:
    account_state_snapshots_dir: str = DEFAULT_ACCOUNT_STATE_DIR
    account_storages_snapshots_dir: str = DEFAULT_ACCOUNT_STORAGES_DIR


@dataclass(frozen=True, slots=True)
class Manifest:
    version: int
    chain_id: int
    pivot: PivotInfo
    post_accounts_insert_state_root: str
    paths: DatasetPaths
    rocksdb_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "chain_id": self.chain_id,
            "rocksdb_enabled": self.rocksdb_enabled,
            "pivot": {
                "number": self.pivot.number,
                "hash": self.pivot.hash,
                "state_root": self.pivot.state_root,
                "timestamp": self.pivot.timestamp,
            },
            "post_accounts_insert_state_root": self.post_accounts_insert_state_root,
            "paths": {
                "account_state_snapshots_dir": self.paths.account_state_snapshots_dir,
                "account_storages_snapshots_dir": self.paths.account_storages_snapshots_dir,
            },
        }

    @classmethod
    def from_dict(cls, obj: Any) -> Manifest:
        """Build a Manifest from parsed JSON, validating every field."""
        root = _require_dict(obj, "manifest")
        pivot = _require_dict(_field(root, "pivot"), "pivot")
        paths = _require_dict(_field(root, "paths"), "paths")
        rocksdb = root.get("rocksdb_enabled", False)
        if not isinstance(rocksdb, bool):
            raise ManifestError("Field 'rocksdb_enabled' must be a boolean")
        return cls(
            version=_int(root, "version"),
            chain_id=_int(root, "chain_id"),
            pivot=PivotInfo(
                number=_int(pivot, "number", "pivot."),
                hash=_hash(pivot, "hash", "pivot."),
                state_root=_hash(pivot, "state_root", "pivot."),
                timestamp=_int(pivot, "timestamp", "pivot."),
            ),
            post_accounts_insert_state_root=_hash(
                root, "post_accounts_insert_state_root"
            ),
            paths=DatasetPaths(
                account_state_snapshots_dir=_str(
                    paths, "account_state_snapshots_dir", "paths."
                ),
                account_storages_snapshots_dir=_str(
                    paths, "account_storages_snapshots_dir", "paths."
                ),
            ),
            rocksdb_enabled=rocksdb,
        )


def _require_dict(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ManifestError(f"Expected an object for {what}")
    return value


def _field(obj: dict, key: str, scope: str = "") -> Any:
    try:
        return obj[key]
    except KeyError:
        raise ManifestError(f"Missing field '{scope}{key}'") from None


def _int(obj: dict, key: str, scope: str = "") -> int:
    value = _field(obj, key, scope)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ManifestError(
            f"Field '{scope}{key}' must be a non-negative integer, got {value!r}"
        )
    return value


def _str(obj: dict, key: str, scope: str = "") -> str:
    value = _field(obj, key, scope)
    if not isinstance(value, str) or not value:
        raise ManifestError(f"Field '{scope}{key}' must be a non-empty string")
    return value


def _hash(obj: dict, key: str, scope: str = "") -> str:
    value = _field(obj, key, scope)
    if not isinstance(value, str) or not _HASH_RE.match(value):
        raise ManifestError(
            f"Field '{scope}{key}' must be a 0x-prefixed 32-byte hex string, "
            f"got {value!r}"
        )
    return value.lower()


def manifest_path(dataset: Path) -> Path:
    return Path(dataset) / MANIFEST_FILENAME


def load_manifest(dataset: Path) -> Manifest:
    """Read and validate <dataset>/manifest.json.

    Raises ManifestError if the file is missing, is not JSON, or does not
    have the expected shape. The version number is NOT checked here; the
    verifier reports an unsupported version as a separate finding.
    """
    path = manifest_path(dataset)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(f"{path} is not valid UTF-8: {exc}") from exc
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc
    return Manifest.from_dict(obj)


def write_manifest(dataset: Path, manifest: Manifest) -> Path:
    path = manifest_path(dataset)
    path.write_text(json.dumps(manifest.to_dict(), indent=2), encoding="utf-8")
    return path


def compute_manifest_sha256(path: Path) -> str:
    """SHA-256 of a file's bytes as lowercase hex, read in 8 KiB blocks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for block in iter(lambda: fh.read(_READ_BLOCK), b""):
            digest.update(block)
    return digest.hexdigest()
