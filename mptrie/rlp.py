"""Minimal RLP encoding and decoding with canonical-form checks, plus Keccak-256."""

from __future__ import annotations

from typing import List, Tuple

from Crypto.Hash import keccak

_STRING_SHORT = 0x80
_STRING_LONG = 0xB7
_LIST_SHORT = 0xC0
_LIST_LONG = 0xF7
_SHORT_LIMIT = 56


class RlpError(ValueError):
    """Raised when data is not valid canonical RLP."""


def keccak256(data: bytes) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def _length_prefix(length: int, short_base: int, long_base: int) -> bytes:
    if length < _SHORT_LIMIT:
        return bytes([short_base + length])
    size = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([long_base + len(size)]) + size


def encode_bytes(data: bytes) -> bytes:
    """RLP-encode a byte string."""
    data = bytes(data)
    if len(data) == 1 and data[0] < _STRING_SHORT:
        return data
    return _length_prefix(len(data), _STRING_SHORT, _STRING_LONG) + data


def encode_list_header(payload_length: int) -> bytes:
    """Return the RLP header of a list whose payload has the given length."""
    if payload_length < 0:
        raise ValueError("payload length must not be negative")
    return _length_prefix(payload_length, _LIST_SHORT, _LIST_LONG)


def encode_list(encoded_items) -> bytes:
    """Wrap already RLP-encoded items into an RLP list."""
    payload = b"".join(bytes(item) for item in encoded_items)
    return encode_list_header(len(payload)) + payload


def _read_long_length(data: bytes, offset: int, size: int) -> int:
    start = offset + 1
    if start + size > len(data):
        raise RlpError("input too short")
    raw = data[start : start + size]
    if raw[0] == 0:
        raise RlpError("leading zero in length")
    length = int.from_bytes(raw, "big")
    if length < _SHORT_LIMIT:
        raise RlpError("non-canonical size")
    return length


def _parse(data: bytes, offset: int) -> Tuple[bool, int, int]:
    """Parse the item at ``offset``: returns ``(is_list, payload_start, end)``."""
    if offset >= len(data):
        raise RlpError("input too short")
    first = data[offset]
    if first < _STRING_SHORT:
        return False, offset, offset + 1
    if first <= _STRING_LONG:
        is_list = False
        length = first - _STRING_SHORT
        start = offset + 1
        if length == 1:
            if start >= len(data):
                raise RlpError("input too short")
            if data[start] < _STRING_SHORT:
                raise RlpError("non-canonical single byte")
    elif first < _LIST_SHORT:
        is_list = False
        size = first - _STRING_LONG
        length = _read_long_length(data, offset, size)
        start = offset + 1 + size
    elif first <= _LIST_LONG:
        is_list = True
        length = first - _LIST_SHORT
        start = offset + 1
    else:
        is_list = True
        size = first - _LIST_LONG
        length = _read_long_length(data, offset, size)
        start = offset + 1 + size
    end = start + length
    if end > len(data):
        raise RlpError("input too short")
    return is_list, start, end


def decode_raw(data: bytes) -> Tuple[bool, bytes]:
    """Decode exactly one RLP item and return ``(is_list, payload)``."""
    data = bytes(data)
    is_list, start, end = _parse(data, 0)
    if end != len(data):
        raise RlpError("unexpected trailing data")
    return is_list, data[start:end]


def decode_bytes(data: bytes) -> bytes:
    """Decode exactly one RLP byte string."""
    is_list, payload = decode_raw(data)
    if is_list:
        raise RlpError("unexpected list")
    return payload


def split_list(payload: bytes) -> List[bytes]:
    """Split a list payload into the raw encodings of its items."""
    payload = bytes(payload)
    items: List[bytes] = []
    offset = 0
    while offset < len(payload):
        _, _, end = _parse(payload, offset)
        items.append(payload[offset:end])
        offset = end
    return items