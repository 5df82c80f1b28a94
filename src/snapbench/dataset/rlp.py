"""Recursive Length Prefix (RLP) encoding for snapshot chunk records.

RLP has exactly two kinds of item: a byte string and a list of items.
Everything else (integers, hashes, tuples) is mapped onto those two by
the caller. The prefix byte tells the decoder which kind it is and how
long the payload is:

    0x00-0x7f   the byte itself is a one-byte string
    0x80-0xb7   short string, length = prefix - 0x80 (0-55 bytes)
    0xb8-0xbf   long string, next (prefix - 0xb7) bytes hold the length
    0xc0-0xf7   short list, payload length = prefix - 0xc0
    0xf8-0xff   long list, next (prefix - 0xf7) bytes hold the length

The decoder is strict. It rejects trailing bytes, truncated payloads and
non-canonical forms (a single low byte wrapped in 0x81, a long form used
for a short payload, length fields with leading zeros). A chunk that
decodes here decodes identically everywhere.
"""

from __future__ import annotations

from typing import Union

from snapbench.errors import RLPDecodingError

Item = Union[bytes, list["Item"]]

_SHORT_LIMIT = 55

# Chunk records nest at most 4 lists deep; anything far past that is hostile.
MAX_DEPTH = 32


def _be(value: int) -> bytes:
    """Minimal big-endian bytes for a non-negative int (0 -> b"")."""
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _prefix(length: int, short_base: int, long_base: int) -> bytes:
    if length <= _SHORT_LIMIT:
        return bytes([short_base + length])
    length_bytes = _be(length)
    return bytes([long_base + len(length_bytes)]) + length_bytes


def encode(item: Item | int) -> bytes:
    """Encode bytes, a non-negative int, or a (nested) list of those."""
    if isinstance(item, bool):
        raise TypeError("RLP has no boolean type; encode 0 or 1 explicitly")
    if isinstance(item, int):
        if item < 0:
            raise ValueError(f"RLP cannot encode negative integers: {item}")
        return encode(_be(item))
    if isinstance(item, (bytes, bytearray)):
        data = bytes(item)
        if len(data) == 1 and data[0] < 0x80:
            return data
        return _prefix(len(data), 0x80, 0xB7) + data
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(child) for child in item)
        return _prefix(len(payload), 0xC0, 0xF7) + payload
    raise TypeError(f"Cannot RLP-encode {type(item).__name__}")


def _read_length(data: bytes, pos: int, n: int) -> int:
    if pos + n > len(data):
        raise RLPDecodingError(
            f"Truncated length field at offset {pos}: need {n} bytes"
        )
    raw = data[pos:pos + n]
    if raw[0] == 0:
        raise RLPDecodingError(f"Length field with leading zero at offset {pos}")
    length = int.from_bytes(raw, "big")
    if length <= _SHORT_LIMIT:
        raise RLPDecodingError(
            f"Long form used for a {length}-byte payload at offset {pos}"
        )
    return length


def _decode_at(data: bytes, pos: int, depth: int = 0) -> tuple[Item, int]:
    """Decode one item starting at pos; return it and the offset after it."""
    if pos >= len(data):
        raise RLPDecodingError(f"Unexpected end of input at offset {pos}")
    prefix = data[pos]

    if prefix < 0x80:
        return data[pos:pos + 1], pos + 1

    if prefix <= 0xBF:
        if prefix <= 0xB7:
            length = prefix - 0x80
            start = pos + 1
        else:
            n = prefix - 0xB7
            length = _read_length(data, pos + 1, n)
            start = pos + 1 + n
        end = start + length
        if end > len(data):
            raise RLPDecodingError(
                f"String at offset {pos} runs past end of input "
                f"({length} bytes declared, {len(data) - start} available)"
            )
        if length == 1 and data[start] < 0x80:
            raise RLPDecodingError(
                f"Non-canonical single byte encoding at offset {pos}"
            )
        return data[start:end], end

    if depth >= MAX_DEPTH:
        raise RLPDecodingError(
            f"List at offset {pos} nested deeper than {MAX_DEPTH} levels"
        )
    if prefix <= 0xF7:
        length = prefix - 0xC0
        start = pos + 1
    else:
        n = prefix - 0xF7
        length = _read_length(data, pos + 1, n)
        start = pos + 1 + n
    end = start + length
    if end > len(data):
        raise RLPDecodingError(
            f"List at offset {pos} runs past end of input "
            f"({length} bytes declared, {len(data) - start} available)"
        )
    items: list[Item] = []
    cursor = start
    while cursor < end:
        child, cursor = _decode_at(data, cursor, depth + 1)
        if cursor > end:
            raise RLPDecodingError(
                f"List item at offset {start} overruns its parent list"
            )
        items.append(child)
    return items, end


def decode(data: bytes) -> Item:
    """Decode exactly one RLP item that spans all of data."""
    if not data:
        raise RLPDecodingError("Empty input")
    item, end = _decode_at(bytes(data), 0)
    if end != len(data):
        raise RLPDecodingError(
            f"Trailing bytes after item: consumed {end} of {len(data)}"
        )
    return item


def as_list(item: Item, what: str) -> list[Item]:
    if not isinstance(item, list):
        raise RLPDecodingError(f"Expected a list for {what}, got a byte string")
    return item


def as_bytes(item: Item, what: str, size: int | None = None) -> bytes:
    if not isinstance(item, bytes):
        raise RLPDecodingError(f"Expected a byte string for {what}, got a list")
    if size is not None and len(item) != size:
        raise RLPDecodingError(
            f"Expected {size} bytes for {what}, got {len(item)}"
        )
    return item


def as_uint(item: Item, what: str, max_bytes: int = 32) -> int:
    """Interpret a byte string as a canonical big-endian unsigned int."""
    raw = as_bytes(item, what)
    if len(raw) > max_bytes:
        raise RLPDecodingError(
            f"Integer {what} is {len(raw)} bytes, limit is {max_bytes}"
        )
    if raw and raw[0] == 0:
        raise RLPDecodingError(f"Integer {what} has leading zero bytes")
    return int.from_bytes(raw, "big")
