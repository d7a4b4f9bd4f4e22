"""Pruning of tries down to the nodes needed to reach a set of keys."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .codec import node_hash
from .node import Branch, Digest, Extension, Node

__all__ = ["SortedKeysCursor", "prune_to_keys"]


class SortedKeysCursor:
    """A forward-only cursor over strictly sorted nibble keys.

    Trie traversal visits paths in lexicographic order, so the cursor only
    ever moves forward through the keys.
    """

    def __init__(self, keys: Iterable[bytes]) -> None:
        self._keys: List[bytes] = [bytes(key) for key in keys]
        if any(a >= b for a, b in zip(self._keys, self._keys[1:])):
            raise ValueError("keys must be sorted lexicographically and without duplicates")
        self._pos = 0

    def peek(self) -> Optional[bytes]:
        """Return the current key without consuming it, or ``None`` at the end."""
        if self._pos < len(self._keys):
            return self._keys[self._pos]
        return None

    def seek(self, lookup_key: bytes) -> None:
        """Skip every key that is strictly less than ``lookup_key``."""
        lookup_key = bytes(lookup_key)
        while self._pos < len(self._keys) and self._keys[self._pos] < lookup_key:
            self._pos += 1

    def peek_with_prefix(self, prefix: bytes) -> Optional[bytes]:
        """Seek to ``prefix`` and return the current key if it starts with it."""
        prefix = bytes(prefix)
        self.seek(prefix)
        key = self.peek()
        if key is not None and key.startswith(prefix):
            return key
        return None


def _prune(node: Node, path: bytes, cursor: SortedKeysCursor) -> Node:
    if cursor.peek_with_prefix(path) is None:
        return Digest(node_hash(node))
    if isinstance(node, Extension):
        node.child = _prune(node.child, path + node.prefix, cursor)
    elif isinstance(node, Branch):
        for idx, child in enumerate(list(node.children)):
            if child is not None:
                node.children.insert(idx, _prune(child, path + bytes([idx]), cursor))
    return node


def prune_to_keys(node: Node, keys: Iterable[bytes]) -> Node:
    """Replace every sub-trie that no key in ``keys`` reaches by its digest.

    ``keys`` are nibble sequences, sorted and unique. The trie is changed in
    place; the returned node takes the place of ``node``.
    """
    return _prune(node, b"", SortedKeysCursor(keys))