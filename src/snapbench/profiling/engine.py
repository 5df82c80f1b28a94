"""The boundary to the state-insertion engine being benchmarked.

The profiler never builds tries itself. It calls an engine's run_once()
once per pass and records what comes back: three phase durations and the
resulting state root. Engines subclass SnapEngine, so the harness can be
driven by a scripted fake in tests.

Engines are looked up by backend name. "inmemory" is built in; callers
embedding snapbench add their own with register_engine() before running
a profile.
"""
from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

from snapbench.dataset import rlp
from snapbench.dataset.chunks import (
    ACCOUNT_CHUNK_PREFIX,
    STORAGE_CHUNK_PREFIX,
    ChunkFile,
    list_chunks,
)
from snapbench.dataset.manifest import load_manifest
from snapbench.dataset.records import decode_account_chunk, decode_storage_chunk
from snapbench.dataset.result import VerifyError
from snapbench.errors import EngineError, SnapbenchError

log = logging.getLogger(__name__)

def normalize_root(root: Union[bytes, str]) -> str:
    """Render a state root as 0x + 64 lowercase hex characters."""
    if isinstance(root, (bytes, bytearray)):
        if len(root) != 32:
            raise EngineError(f"State root must be 32 bytes, got {len(root)}")
        return "0x" + bytes(root).hex()
    text = root.lower()
    if text.startswith("0x"):
        text = text[2:]
    if len(text) != 64 or any(c not in "0123456789abcdef" for c in text):
        raise EngineError(f"State root is not a 32-byte hex string: {root!r}")
    return "0x" + text


@dataclass(frozen=True, slots=True)
class RunResult:
    """What one pass of the engine reports back (durations in seconds)."""
    insert_accounts_duration: float
    insert_storages_duration: float
    total_duration: float
    state_root: Union[bytes, str]


class SnapEngine(ABC):
    """Interface every benchmarked engine implements."""

    @abstractmethod
    def run_once(self, dataset: Path, backend: str, workdir: Path) -> RunResult:
        """Insert the whole dataset into workdir once and time each phase."""
        ...


class InMemoryEngine(SnapEngine):
    """Reference engine: decode every chunk and fingerprint the records.

    The "state root" it returns is a SHA-256 over the sorted account
    records, not a Merkle-Patricia trie root. It is deterministic for a
    given dataset, which is all the profiler's consistency check needs,
    but it will not match a manifest's expected root.
    """

    def run_once(self, dataset: Path, backend: str, workdir: Path) -> RunResult:
        try:
            manifest = load_manifest(dataset)
        except SnapbenchError as exc:
            raise EngineError(f"Cannot load dataset: {exc}") from exc
        paths = manifest.paths
        acc_chunks = self._chunks(
            Path(dataset) / paths.account_state_snapshots_dir, ACCOUNT_CHUNK_PREFIX
        )
        storage_chunks = self._chunks(
            Path(dataset) / paths.account_storages_snapshots_dir, STORAGE_CHUNK_PREFIX
        )

        t_start = time.perf_counter()
        accounts = []
        for chunk in acc_chunks:
            accounts.extend(decode_account_chunk(chunk.path.read_bytes()))
        accounts.sort(key=lambda pair: pair[0])
        account_digest = hashlib.sha256()
        with open(Path(workdir) / "accounts.rlp", "wb") as fh:
            for key, state in accounts:
                record = rlp.encode([key, state.to_rlp_item()])
                fh.write(record)
                account_digest.update(record)
        t_accounts = time.perf_counter()

        slots = []
        for chunk in storage_chunks:
            for entry in decode_storage_chunk(chunk.path.read_bytes()):
                for account in entry.account_hashes:
                    slots.extend((account, slot, value) for slot, value in entry.slots)
        slots.sort()
        with open(Path(workdir) / "storages.rlp", "wb") as fh:
            for account, slot, value in slots:
                fh.write(rlp.encode([account, slot, value]))
        t_end = time.perf_counter()

        log.debug(
            "inmemory engine: %d accounts, %d slots into %s",
            len(accounts), len(slots), workdir,
        )
        return RunResult(
            insert_accounts_duration=t_accounts - t_start,
            insert_storages_duration=t_end - t_accounts,
            total_duration=t_end - t_start,
            state_root=normalize_root(account_digest.digest()),
        )

    @staticmethod
    def _chunks(directory: Path, prefix: str) -> list[ChunkFile]:
        problems: list[VerifyError] = []
        chunks = list_chunks(directory, prefix, problems)
        if problems:
            raise EngineError(
                f"{problems[0].file}: {problems[0].message} "
                f"(run `snapbench verify` on the dataset)"
            )
        return chunks


_ENGINES: dict[str, Callable[[], SnapEngine]] = {
    "inmemory": InMemoryEngine,
}


def register_engine(name: str, factory: Callable[[], SnapEngine]) -> None:
    """Make an engine available under a backend name, replacing any existing one."""
    _ENGINES[name] = factory


def available_engines() -> list[str]:
    return sorted(_ENGINES)


def get_engine(backend: str) -> SnapEngine:
    """Resolve a backend name to a fresh engine instance."""
    factory = _ENGINES.get(backend)
    if factory is None:
        raise EngineError(
            f"Unknown backend {backend!r}; available: {', '.join(available_engines())}"
        )
    return factory()
