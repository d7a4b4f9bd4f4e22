"""Nibble sequences and the compact (hex-prefix) path encoding of trie nodes.

A nibble sequence is a ``bytes`` object in which every byte holds a value in
the range 0..15. Slicing, comparison and concatenation then behave the way a
trie path needs them to.
"""

from __future__ import annotations

from typing import Optional, Tuple

_LEAF_FLAG = 0b0010
_ODD_FLAG = 0b0001


def unpack(data: bytes) -> bytes:
    """Split every byte of ``data`` into its high and low nibble."""
    out = bytearray()
    for byte in bytes(data):
        out.append(byte >> 4)
        out.append(byte & 0x0F)
    return bytes(out)


def split_common_prefix(a: bytes, b: bytes) -> Tuple[bytes, bytes, bytes]:
    """Split ``a`` and ``b`` at the first nibble where they differ.

    Returns ``(common, a_tail, b_tail)``.
    """
    a, b = bytes(a), bytes(b)
    mid = 0
    for x, y in zip(a, b):
        if x != y:
            break
        mid += 1
    return a[:mid], a[mid:], b[mid:]


def strip_prefix(key: bytes, prefix: bytes) -> Optional[bytes]:
    """Return ``key`` without ``prefix``, or ``None`` if it does not start with it."""
    key, prefix = bytes(key), bytes(prefix)
    if key.startswith(prefix):
        return key[len(prefix):]
    return None


def strip_suffix(key: bytes, suffix: bytes) -> Optional[bytes]:
    """Return ``key`` without ``suffix``, or ``None`` if it does not end with it."""
    key, suffix = bytes(key), bytes(suffix)
    if key.endswith(suffix):
        return key[: len(key) - len(suffix)]
    return None


def encode_path(nibbles: bytes, is_leaf: bool) -> bytes:
    """Encode a nibble path with its hex-prefix flag into packed bytes."""
    nibbles = bytes(nibbles)
    flag = _LEAF_FLAG if is_leaf else 0
    if len(nibbles) % 2:
        full = bytes([flag | _ODD_FLAG]) + nibbles
    else:
        full = bytes([flag, 0]) + nibbles
    return bytes((hi << 4) | lo for hi, lo in zip(full[::2], full[1::2]))


def decode_path(data: bytes) -> Tuple[bytes, bool]:
    """Decode packed hex-prefix bytes into ``(nibbles, is_leaf)``.

    Raises ``ValueError`` if the path is too short or carries an unknown flag.
    """
    path = unpack(data)
    if len(path) < 2:
        raise ValueError("input too short")
    flag = path[0]
    if flag > 0b0011:
        raise ValueError("node is not an extension or leaf")
    is_leaf = bool(flag & _LEAF_FLAG)
    odd = bool(flag & _ODD_FLAG)
    return (path[1:] if odd else path[2:]), is_leaf


def format_nibbles(nibbles: bytes) -> str:
    """Render a nibble sequence for debugging output."""
    return f"Nibbles(0x{bytes(nibbles).hex()})"