"""Resolution of orphan nodes that a removal from a sparse trie would create.

Removing a key from a sparse trie is only safe if it does not leave a branch
with a single child that is known by its digest alone. A proof of the trie
*after* the removal supplies the missing node.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .codec import from_rlp, resolve_digests, rlp_encoded
from .nibbles import split_common_prefix, strip_prefix, strip_suffix
from .node import Branch, Cache, Digest, Extension, Leaf, NoCache, Node, Null
from .rlp import RlpError, keccak256

__all__ = [
    "InvalidProofError",
    "OrphanError",
    "UnresolvableError",
    "contains_prefix",
    "diverging",
    "is_branch_with_digest",
    "resolve_orphan",
]


class OrphanError(Exception):
    """Raised when an orphan cannot be resolved; also covers malformed proofs."""


class InvalidProofError(OrphanError):
    """The proof does not prove that the key is absent after the removal."""

    def __init__(self) -> None:
        super().__init__("invalid proof")


class UnresolvableError(OrphanError):
    """The proof alone does not suffice; ``prefix`` has to be resolved first."""

    def __init__(self, prefix: bytes) -> None:
        self.prefix = bytes(prefix)
        super().__init__(f"key prefix `0x{self.prefix.hex()}` not resolved")


def _cache_type(node: Node) -> type:
    if isinstance(node, Null):
        return node.cache_type
    cache = getattr(node, "cache", None)
    return NoCache if cache is None else type(cache)


def diverging(node: Node, key: bytes) -> Optional[Tuple[Node, bytes]]:
    """Return the node where a lookup of ``key`` fails and the unmatched key part.

    Returns ``None`` if ``key`` is present in the trie.
    """
    key = bytes(key)
    if isinstance(node, Null):
        return node, key
    if isinstance(node, Leaf):
        return None if node.prefix == key else (node, key)
    if isinstance(node, Extension):
        tail = strip_prefix(key, node.prefix)
        return (node, key) if tail is None else diverging(node.child, tail)
    if isinstance(node, Branch):
        if not key:
            return node, key
        child = node.children.get(key[0])
        if child is None:
            return Null(_cache_type(node)), key[1:]
        return diverging(child, key[1:])
    return node, key


def contains_prefix(node: Node, key: bytes) -> bool:
    """Return whether the resolved part of the trie reaches the path ``key``."""
    found = diverging(node, key)
    if found is None:
        return True
    reached, unmatched = found
    if isinstance(reached, Digest):
        return False
    return not unmatched


def is_branch_with_digest(node: Node, key: bytes, idx: int) -> bool:
    """Return whether the node at path ``key`` is a branch with a digest child at ``idx``."""
    found = diverging(node, key)
    if found is None:
        return False
    reached, unmatched = found
    if isinstance(reached, Branch) and not unmatched:
        return isinstance(reached.children.get(idx), Digest)
    return False


def _resolve_with(node: Node, sibling: Node) -> Node:
    rlp = rlp_encoded(sibling)
    return resolve_digests(node, {keccak256(rlp): rlp})


def resolve_orphan(node: Node, key: bytes, proof: Iterable[bytes]) -> Node:
    """Resolve the orphan that removing ``key`` would leave, using a post-removal proof.

    ``key`` is a nibble sequence that must be present in the trie; ``proof``
    holds the RLP nodes of the trie after the removal, root first. Returns the
    node taking the place of ``node``.
    """
    key = bytes(key)
    if node.get(key) is None:
        raise KeyError("key not contained")
    cache_type = _cache_type(node)
    try:
        other = from_rlp(proof, cached=cache_type is Cache)
    except RlpError as exc:
        raise OrphanError("proof RLP encoding error") from exc

    found = diverging(other, key)
    if found is None:
        return node
    reached, unmatched = found
    matched = strip_suffix(key, unmatched)

    if isinstance(reached, Null):
        return node
    if isinstance(reached, Digest):
        raise InvalidProofError()
    if isinstance(reached, Branch):
        raise OrphanError("branch node with value")

    common, rest, _ = split_common_prefix(reached.prefix, unmatched)
    if not rest:
        raise OrphanError("empty unmatched key")
    idx, suffix = rest[0], rest[1:]
    if not is_branch_with_digest(node, matched + common, idx):
        return node

    if isinstance(reached, Leaf):
        return _resolve_with(node, Leaf(suffix, reached.value, cache_type()))

    child = reached.child
    if not suffix:
        # The orphan is a branch whose parent was turned into an extension;
        # the proof may still hold that branch as the extension's child.
        if not isinstance(child, Digest):
            node = _resolve_with(node, child)
        orphan_prefix = matched + reached.prefix
        if contains_prefix(node, orphan_prefix):
            return node
        raise UnresolvableError(orphan_prefix)

    return _resolve_with(node, Extension(suffix, child, cache_type()))