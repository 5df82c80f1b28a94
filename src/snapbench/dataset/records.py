"""Typed records stored in snapshot chunk files.

Account chunk:  [[account_hash, [nonce, balance, storage_root, code_hash]], ...]
Storage chunk:  [[[account_hash, ...], [[slot_hash, value], ...]], ...]

A storage entry carries a list of account hashes ("key path") because
several accounts can share an identical storage trie; the snapshot
stores the slots once and lists every account that owns them.
"""
from __future__ import annotations

from dataclasses import dataclass

from snapbench.dataset import rlp
from snapbench.errors import RLPDecodingError

HASH_SIZE = 32

# keccak256(rlp(b"")) and keccak256(b""), the defaults for a fresh account.
EMPTY_TRIE_HASH = bytes.fromhex(
    "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
)
EMPTY_CODE_HASH = bytes.fromhex(
    "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
)


def h256(value: int) -> bytes:
    """A 32-byte hash whose low bytes hold value (handy for fixtures)."""
    return value.to_bytes(HASH_SIZE, "big")


@dataclass(frozen=True, slots=True)
class AccountState:
    nonce: int = 0
    balance: int = 0
    storage_root: bytes = EMPTY_TRIE_HASH
    code_hash: bytes = EMPTY_CODE_HASH

    def to_rlp_item(self) -> list:
        return [self.nonce, self.balance, self.storage_root, self.code_hash]

    @classmethod
    def from_rlp_item(cls, item: rlp.Item) -> AccountState:
        fields = rlp.as_list(item, "account state")
        if len(fields) != 4:
            raise RLPDecodingError(
                f"Account state has {len(fields)} fields, expected 4"
            )
        return cls(
            nonce=rlp.as_uint(fields[0], "nonce", max_bytes=8),
            balance=rlp.as_uint(fields[1], "balance"),
            storage_root=rlp.as_bytes(fields[2], "storage_root", HASH_SIZE),
            code_hash=rlp.as_bytes(fields[3], "code_hash", HASH_SIZE),
        )


@dataclass(frozen=True, slots=True)
class StorageEntry:
    account_hashes: tuple[bytes, ...]
    slots: tuple[tuple[bytes, int], ...]


def encode_account_chunk(accounts: list[tuple[bytes, AccountState]]) -> bytes:
    return rlp.encode([[key, state.to_rlp_item()] for key, state in accounts])


def decode_account_chunk(data: bytes) -> list[tuple[bytes, AccountState]]:
    """Decode an account chunk; raises RLPDecodingError on any mismatch."""
    out = []
    for i, pair in enumerate(rlp.as_list(rlp.decode(data), "account chunk")):
        fields = rlp.as_list(pair, f"account pair {i}")
        if len(fields) != 2:
            raise RLPDecodingError(
                f"Account pair {i} has {len(fields)} elements, expected 2"
            )
        key = rlp.as_bytes(fields[0], f"account hash {i}", HASH_SIZE)
        out.append((key, AccountState.from_rlp_item(fields[1])))
    return out


def encode_storage_chunk(entries: list[StorageEntry]) -> bytes:
    return rlp.encode([
        [list(e.account_hashes), [[slot, value] for slot, value in e.slots]]
        for e in entries
    ])


def decode_storage_chunk(data: bytes) -> list[StorageEntry]:
    """Decode a storage chunk; raises RLPDecodingError on any mismatch."""
    out = []
    for i, raw in enumerate(rlp.as_list(rlp.decode(data), "storage chunk")):
        fields = rlp.as_list(raw, f"storage entry {i}")
        if len(fields) != 2:
            raise RLPDecodingError(
                f"Storage entry {i} has {len(fields)} elements, expected 2"
            )
        hashes = tuple(
            rlp.as_bytes(h, f"storage entry {i} account hash", HASH_SIZE)
            for h in rlp.as_list(fields[0], f"storage entry {i} key path")
        )
        slots = []
        for pair in rlp.as_list(fields[1], f"storage entry {i} slots"):
            slot_fields = rlp.as_list(pair, f"storage entry {i} slot")
            if len(slot_fields) != 2:
                raise RLPDecodingError(
                    f"Storage slot in entry {i} has {len(slot_fields)} "
                    f"elements, expected 2"
                )
            slots.append((
                rlp.as_bytes(slot_fields[0], "slot hash", HASH_SIZE),
                rlp.as_uint(slot_fields[1], "slot value"),
            ))
        out.append(StorageEntry(account_hashes=hashes, slots=tuple(slots)))
    return out
