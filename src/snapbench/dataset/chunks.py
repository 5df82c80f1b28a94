"""Chunk file discovery and index sanity checks.

Chunk files are named <prefix>.rlp.<index>, where index is a zero-based
decimal integer. Within one snapshot directory the indices must be
unique and cover 0..count-1 with no gaps; the insertion engine replays
chunks in index order, so a missing index means silently missing state.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from snapbench.dataset.result import VerifyError
from snapbench.errors import ChunkIndexError

ACCOUNT_CHUNK_PREFIX = "account_state_chunk"
STORAGE_CHUNK_PREFIX = "account_storages_chunk"
CHUNK_EXTENSION = "rlp"


def chunk_filename(prefix: str, index: int) -> str:
    return f"{prefix}.{CHUNK_EXTENSION}.{index}"


def parse_chunk_index(filename: str) -> int:
    """Return the trailing integer segment of a chunk filename.

    Only plain ASCII digits are accepted: "chunk.rlp.7" -> 7, while
    "chunk.rlp.-1", "chunk.rlp.+1" and "chunk.rlp.x" raise ChunkIndexError.
    """
    suffix = filename.rsplit(".", 1)[-1]
    if not suffix or not (suffix.isascii() and suffix.isdigit()):
        raise ChunkIndexError(filename, suffix)
    return int(suffix)


@dataclass(frozen=True, slots=True)
class ChunkFile:
    path: Path
    index: int | None                       # None when the suffix did not parse
    index_error: ChunkIndexError | None = None

    @property
    def name(self) -> str:
        return self.path.name


def list_chunks(
    directory: Path, prefix: str, errors: list[VerifyError]
) -> list[ChunkFile]:
    """List the files in directory named <prefix>.rlp.<suffix>.

    A missing or unreadable directory, or one with no matching files, is
    appended to errors and yields an empty list. Files whose index does
    not parse are returned with index=None (and reported later by
    check_chunk_indices). The result is ordered by index, unparsable
    names last.
    """
    if not directory.is_dir():
        errors.append(VerifyError(str(directory), "Directory does not exist"))
        return []

    match = f"{prefix}.{CHUNK_EXTENSION}"
    try:
        paths = [
            p for p in directory.iterdir()
            if (p.name == match or p.name.startswith(match + "."))
            and p.is_file()
        ]
    except OSError as exc:
        errors.append(VerifyError(
            str(directory), f"Failed to read directory: {exc.strerror or exc}"
        ))
        return []

    if not paths:
        errors.append(VerifyError(
            str(directory), "Directory is empty (no matching chunk files)"
        ))
        return []

    chunks = []
    for path in paths:
        try:
            chunks.append(ChunkFile(path=path, index=parse_chunk_index(path.name)))
        except ChunkIndexError as exc:
            chunks.append(ChunkFile(path=path, index=None, index_error=exc))

    chunks.sort(key=lambda c: (c.index is None, c.index or 0, c.name))
    return chunks


def check_chunk_indices(
    chunks: list[ChunkFile], dir_name: str, errors: list[VerifyError]
) -> None:
    """Report unparsable, duplicate and non-contiguous chunk indices."""
    indices: list[int] = []
    for chunk in chunks:
        if chunk.index is None:
            errors.append(VerifyError(chunk.name, str(chunk.index_error)))
            continue
        indices.append(chunk.index)

    unique = sorted(set(indices))
    if len(unique) != len(indices):
        dupes = sorted(i for i, n in Counter(indices).items() if n > 1)
        errors.append(VerifyError(
            dir_name, f"Duplicate chunk indices found: {dupes}"
        ))

    if unique and unique != list(range(len(unique))):
        errors.append(VerifyError(
            dir_name, f"Chunk indices are not contiguous from 0: {unique}"
        ))
