"""RLP encoding, hashing and decoding of trie nodes.

Nodes shorter than 32 bytes are embedded in their parent; longer ones are
referenced by the Keccak-256 hash of their encoding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

from .nibbles import decode_path, encode_path
from .node import Branch, Cache, Children, Digest, Extension, Leaf, NoCache, Node, Null
from .rlp import (
    RlpError,
    decode_bytes,
    decode_raw,
    encode_bytes,
    encode_list,
    keccak256,
    split_list,
)

HASH_LENGTH = 32
DIGEST_RLP_LENGTH = 1 + HASH_LENGTH
EMPTY_STRING_CODE = b"\x80"
EMPTY_ROOT_HASH = keccak256(EMPTY_STRING_CODE)

__all__ = [
    "DIGEST_RLP_LENGTH",
    "EMPTY_ROOT_HASH",
    "RlpNode",
    "decode_node",
    "from_rlp",
    "memoize",
    "node_hash",
    "resolve_digests",
    "rlp_encoded",
    "rlp_nodes",
]


@dataclass(frozen=True)
class RlpNode:
    """The way a node is referenced from its parent: inline RLP or an encoded hash."""

    data: bytes

    @classmethod
    def from_rlp(cls, rlp: bytes) -> "RlpNode":
        """Build the reference for a node with the given full RLP encoding."""
        rlp = bytes(rlp)
        if len(rlp) >= HASH_LENGTH:
            return cls(encode_bytes(keccak256(rlp)))
        return cls(rlp)

    @classmethod
    def from_digest(cls, digest: bytes) -> "RlpNode":
        """Build the reference for a node known by its hash."""
        return cls(encode_bytes(digest))

    def hash(self) -> bytes:
        """Return the Keccak-256 hash of the referenced node."""
        if len(self.data) == DIGEST_RLP_LENGTH:
            return self.data[1:]
        return keccak256(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"0x{self.data.hex()}"


def _cached_ref(node: Node) -> Optional[RlpNode]:
    cache = getattr(node, "cache", None)
    return None if cache is None else cache.get()


def _node_ref(node: Node) -> bytes:
    """Return the encoding used when ``node`` is embedded in its parent."""
    if isinstance(node, Null):
        return EMPTY_STRING_CODE
    if isinstance(node, Digest):
        return encode_bytes(node.digest)
    cached = _cached_ref(node)
    if cached is not None:
        return cached.data
    return RlpNode.from_rlp(rlp_encoded(node)).data


def node_hash(node: Node) -> bytes:
    """Return the Keccak-256 hash of ``node``; the empty trie has the empty root hash."""
    if isinstance(node, Null):
        return EMPTY_ROOT_HASH
    if isinstance(node, Digest):
        return node.digest
    cached = _cached_ref(node)
    if cached is not None:
        return cached.hash()
    return keccak256(rlp_encoded(node))


def rlp_encoded(node: Node) -> bytes:
    """Return the full RLP encoding of ``node``."""
    if isinstance(node, Null):
        return EMPTY_STRING_CODE
    if isinstance(node, Leaf):
        return encode_list([encode_bytes(encode_path(node.prefix, True)), encode_bytes(node.value)])
    if isinstance(node, Extension):
        return encode_list(
            [encode_bytes(encode_path(node.prefix, False)), _node_ref(node.child)]
        )
    if isinstance(node, Branch):
        refs = [EMPTY_STRING_CODE if child is None else _node_ref(child) for child in node.children]
        refs.append(EMPTY_STRING_CODE)
        return encode_list(refs)
    if isinstance(node, Digest):
        return encode_bytes(node.digest)
    raise TypeError(f"not a trie node: {node!r}")


def memoize(node: Node) -> None:
    """Store the RLP reference of every sub-trie in its node's cache."""
    if isinstance(node, (Null, Digest)):
        return
    if node.cache.get() is not None:
        return
    if isinstance(node, Extension):
        memoize(node.child)
    elif isinstance(node, Branch):
        for child in node.children:
            if child is not None:
                memoize(child)
    node.cache.set(RlpNode.from_rlp(rlp_encoded(node)))


def rlp_nodes(node: Node) -> List[bytes]:
    """Return the RLP encodings of the trie's nodes, root first; may hold duplicates.

    Every entry but the first is a node whose encoding is at least 32 bytes long;
    shorter nodes appear inline in their parent.
    """
    if isinstance(node, Null):
        return []
    out: List[bytes] = []

    def visit(current: Node) -> Tuple[bytes, Optional[bytes]]:
        if isinstance(current, Extension):
            child_ref, _ = visit(current.child)
            full = encode_list([encode_bytes(encode_path(current.prefix, False)), child_ref])
        elif isinstance(current, Branch):
            refs = [
                EMPTY_STRING_CODE if child is None else visit(child)[0]
                for child in current.children
            ]
            refs.append(EMPTY_STRING_CODE)
            full = encode_list(refs)
        elif isinstance(current, Leaf):
            full = rlp_encoded(current)
        elif isinstance(current, Digest):
            return encode_bytes(current.digest), None
        else:
            return EMPTY_STRING_CODE, None
        if len(full) >= HASH_LENGTH:
            out.append(full)
            return encode_bytes(keccak256(full)), full
        return full, full

    ref, full = visit(node)
    if full is None or len(full) < HASH_LENGTH:
        out.append(ref)
    out.reverse()
    return out


def _decode(data: bytes, cache_type: type) -> Node:
    is_list, payload = decode_raw(data)
    if not is_list:
        if len(payload) == 0:
            return Null(cache_type)
        if len(payload) == HASH_LENGTH:
            return Digest(payload)
        raise RlpError("unexpected length")

    items = split_list(payload)
    if len(items) == 17:
        children = Children()
        for idx, item in enumerate(items):
            if item == EMPTY_STRING_CODE:
                continue
            if idx == 16:
                raise RlpError("branch node with value")
            children.insert(idx, _decode(item, cache_type))
        if len(children) < 2:
            raise RlpError("branch node without two children")
        return Branch(children, cache_type())

    if len(items) == 2:
        encoded_path, value = items
        try:
            path, is_leaf = decode_path(decode_bytes(encoded_path))
        except RlpError:
            raise
        except ValueError as exc:
            raise RlpError(str(exc)) from exc
        if is_leaf:
            return Leaf(path, decode_bytes(value), cache_type())
        child = _decode(value, cache_type)
        if not isinstance(child, (Branch, Digest)):
            raise RlpError("extension node with invalid child")
        return Extension(path, child, cache_type())

    raise RlpError("unexpected list length")


def decode_node(data: bytes, cached: bool = False) -> Node:
    """Decode a single RLP-encoded node; ``cached`` selects memoizing nodes."""
    return _decode(bytes(data), Cache if cached else NoCache)


def _set_cache(node: Node, rlp_node: RlpNode) -> None:
    cache = getattr(node, "cache", None)
    if cache is not None:
        cache.set(rlp_node)


def from_rlp(nodes: Iterable[bytes], cached: bool = False) -> Node:
    """Build a trie from RLP-encoded nodes; the first one must be the root."""
    cache_type = Cache if cached else NoCache
    iterator = iter(nodes)
    first = next(iterator, None)
    if first is None:
        return Null(cache_type)
    first = bytes(first)
    root = _decode(first, cache_type)
    _set_cache(root, RlpNode.from_rlp(first))

    rlp_by_digest = {}
    for rlp in iterator:
        rlp = bytes(rlp)
        rlp_by_digest[keccak256(rlp)] = rlp
    return _resolve(root, rlp_by_digest, cache_type)


def _cache_type_of(node: Node) -> type:
    if isinstance(node, Null):
        return node.cache_type
    cache = getattr(node, "cache", None)
    return NoCache if cache is None else type(cache)


def _resolve(node: Node, rlp_by_digest: Mapping[bytes, bytes], cache_type: type) -> Node:
    if isinstance(node, Extension):
        node.child = _resolve(node.child, rlp_by_digest, cache_type)
        if not isinstance(node.child, (Branch, Digest)):
            raise RlpError("extension node with invalid child")
        return node
    if isinstance(node, Branch):
        for idx, child in enumerate(list(node.children)):
            if child is not None:
                node.children.insert(idx, _resolve(child, rlp_by_digest, cache_type))
        return node
    if isinstance(node, Digest):
        encoded = rlp_by_digest.get(node.digest)
        if encoded is None:
            return node
        resolved = _decode(bytes(encoded), cache_type)
        if isinstance(resolved, Digest):
            return node
        _set_cache(resolved, RlpNode.from_digest(node.digest))
        return _resolve(resolved, rlp_by_digest, cache_type)
    return node


def resolve_digests(node: Node, rlp_by_digest: Mapping[bytes, bytes]) -> Node:
    """Replace digest nodes found in ``rlp_by_digest`` and return the resulting node."""
    return _resolve(node, rlp_by_digest, _cache_type_of(node))