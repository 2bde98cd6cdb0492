"""Recursive Length Prefix (RLP) encoding and strict decoding.

An item is either a byte string or a list of items. Non-negative integers
are encoded as their minimal big-endian byte string, with zero encoding
as the empty string.
"""

from __future__ import annotations

from typing import Union

Item = Union[bytes, list]

_SHORT_LIMIT = 55
_STRING_OFFSET = 0x80
_LIST_OFFSET = 0xC0


class RLPError(ValueError):
    """Raised when a value cannot be encoded or input is not valid RLP."""


def encode(item) -> bytes:
    """Encode bytes, non-negative ints and (nested) lists/tuples as RLP."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        data = bytes(item)
        if len(data) == 1 and data[0] < _STRING_OFFSET:
            return data
        return _header(len(data), _STRING_OFFSET) + data
    if isinstance(item, bool):
        raise RLPError("cannot encode a bool")
    if isinstance(item, int):
        if item < 0:
            raise RLPError(f"cannot encode negative integer {item}")
        return encode(item.to_bytes((item.bit_length() + 7) // 8, "big"))
    if isinstance(item, (list, tuple)):
        body = b"".join(encode(element) for element in item)
        return _header(len(body), _LIST_OFFSET) + body
    raise RLPError(f"cannot encode value of type {type(item).__name__}")


def decode(data) -> Item:
    """Decode one RLP item that must span the whole input."""
    data = bytes(data)
    item, end = _decode_at(data, 0, len(data))
    if end != len(data):
        raise RLPError(f"{len(data) - end} trailing bytes after RLP item")
    return item


def _header(length: int, offset: int) -> bytes:
    if length <= _SHORT_LIMIT:
        return bytes([offset + length])
    size = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + _SHORT_LIMIT + len(size)]) + size


def _decode_at(data: bytes, pos: int, limit: int) -> tuple[Item, int]:
    if pos >= limit:
        raise RLPError("unexpected end of input")
    prefix = data[pos]
    if prefix < _STRING_OFFSET:
        return data[pos : pos + 1], pos + 1
    if prefix < _LIST_OFFSET:
        start, length = _payload_bounds(data, pos, limit, _STRING_OFFSET)
        payload = data[start : start + length]
        if length == 1 and payload[0] < _STRING_OFFSET:
            raise RLPError("non-canonical encoding of a single byte")
        return payload, start + length

    start, length = _payload_bounds(data, pos, limit, _LIST_OFFSET)
    end = start + length
    items: list = []
    cursor = start
    while cursor < end:
        element, cursor = _decode_at(data, cursor, end)
        items.append(element)
    return items, end


def _payload_bounds(data: bytes, pos: int, limit: int, offset: int) -> tuple[int, int]:
    short = data[pos] - offset
    if short <= _SHORT_LIMIT:
        start = pos + 1
        length = short
    else:
        size_length = short - _SHORT_LIMIT
        start = pos + 1 + size_length
        if start > limit:
            raise RLPError("input truncated inside a size prefix")
        size = data[pos + 1 : start]
        if size[0] == 0:
            raise RLPError("non-canonical size: leading zero bytes")
        length = int.from_bytes(size, "big")
        if length <= _SHORT_LIMIT:
            raise RLPError("non-canonical size: long form used for a short value")
    if start + length > limit:
        raise RLPError("input truncated: value exceeds available bytes")
    return start, length