"""Shared fixtures for dataset format and verifier tests."""
from __future__ import annotations

from pathlib import Path

import pytest

from snapbench.dataset.fixtures import generate_tiny_dataset
from snapbench.dataset.result import VerifyResult
from snapbench.dataset.verifier import VerifyMode, verify_dataset

ACC_DIR = "account_state_snapshots"
STORAGE_DIR = "account_storages_snapshots"
ACC_CHUNK_0 = "account_state_chunk.rlp.0"
STORAGE_CHUNK_0 = "account_storages_chunk.rlp.0"


def verify(path: Path, strict: bool = False) -> VerifyResult:
    mode = VerifyMode.STRICT if strict else VerifyMode.STRUCTURAL
    return verify_dataset(path, mode)


def messages(result: VerifyResult) -> list[str]:
    return [e.message for e in result.errors]


@pytest.fixture
def tiny_dataset(tmp_path: Path) -> Path:
    return generate_tiny_dataset(tmp_path / "tiny")


def nested_lists(depth: int) -> bytes:
    """RLP for an empty list wrapped in depth further lists, built without recursion."""
    data = b"\xc0"
    for _ in range(depth):
        n = len(data)
        if n <= 55:
            data = bytes([0xC0 + n]) + data
        else:
            size = n.to_bytes((n.bit_length() + 7) // 8, "big")
            data = bytes([0xF7 + len(size)]) + size + data
    return data
