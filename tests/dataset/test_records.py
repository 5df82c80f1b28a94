"""Tests for typed chunk records and the fixture generator."""
from __future__ import annotations

import json

import pytest

from snapbench.dataset import fixtures, rlp
from snapbench.dataset.manifest import load_manifest
from snapbench.dataset.records import (
    EMPTY_CODE_HASH,
    EMPTY_TRIE_HASH,
    AccountState,
    decode_account_chunk,
    decode_storage_chunk,
    h256,
)
from snapbench.errors import RLPDecodingError

from .conftest import ACC_CHUNK_0, ACC_DIR, STORAGE_CHUNK_0, STORAGE_DIR


class TestTinyDataset:
    def test_account_chunk_decodes(self, tiny_dataset):
        accounts = decode_account_chunk((tiny_dataset / ACC_DIR / ACC_CHUNK_0).read_bytes())
        assert len(accounts) == 3
        key, state = accounts[0]
        assert key == h256(1)
        assert state.nonce == 1
        assert state.balance == 1000
        assert state.storage_root == EMPTY_TRIE_HASH
        assert state.code_hash == EMPTY_CODE_HASH

    def test_storage_chunk_decodes(self, tiny_dataset):
        entries = decode_storage_chunk(
            (tiny_dataset / STORAGE_DIR / STORAGE_CHUNK_0).read_bytes()
        )
        assert len(entries) == 1
        assert entries[0].account_hashes == (h256(1),)
        assert entries[0].slots == ((h256(100), 42), (h256(101), 99))

    def test_manifest_loads(self, tiny_dataset):
        manifest = load_manifest(tiny_dataset)
        assert manifest.version == 1
        assert manifest.pivot.number == 100
        assert manifest.post_accounts_insert_state_root == "0x" + h256(777).hex()


class TestCorruptVariants:
    def test_missing_manifest(self, tmp_path):
        fixtures.generate_corrupt_missing_manifest(tmp_path)
        assert not (tmp_path / "manifest.json").exists()
        assert (tmp_path / ACC_DIR).is_dir()

    def test_empty_storage_dir(self, tmp_path):
        fixtures.generate_corrupt_empty_storage_dir(tmp_path)
        assert (tmp_path / "manifest.json").exists()
        assert list((tmp_path / STORAGE_DIR).iterdir()) == []

    def test_bad_rlp(self, tmp_path):
        fixtures.generate_corrupt_bad_rlp(tmp_path)
        assert (tmp_path / ACC_DIR / ACC_CHUNK_0).read_bytes() == b"\xff\xfe\xfd\xfc"

    def test_bad_version(self, tmp_path):
        fixtures.generate_corrupt_bad_version(tmp_path)
        obj = json.loads((tmp_path / "manifest.json").read_text())
        assert obj["version"] == 99

    def test_gap_index(self, tmp_path):
        fixtures.generate_corrupt_gap_index(tmp_path)
        names = sorted(p.name for p in (tmp_path / ACC_DIR).iterdir())
        assert names == ["account_state_chunk.rlp.0", "account_state_chunk.rlp.2"]


class TestDecodeRejects:
    def test_garbage(self):
        with pytest.raises(RLPDecodingError):
            decode_account_chunk(b"\xff\xfe\xfd\xfc")

    def test_short_account_hash(self):
        data = rlp.encode([[b"\x01", AccountState().to_rlp_item()]])
        with pytest.raises(RLPDecodingError, match="32 bytes"):
            decode_account_chunk(data)

    def test_account_state_wrong_arity(self):
        data = rlp.encode([[h256(1), [1, 2, EMPTY_TRIE_HASH]]])
        with pytest.raises(RLPDecodingError, match="3 fields"):
            decode_account_chunk(data)

    def test_storage_chunk_given_account_data(self, tiny_dataset):
        # an account chunk is well-formed RLP but the wrong shape for storage
        with pytest.raises(RLPDecodingError):
            decode_storage_chunk((tiny_dataset / ACC_DIR / ACC_CHUNK_0).read_bytes())
