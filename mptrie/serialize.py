"""Serialization of tries as their deduplicated list of RLP-encoded nodes.

Storing the RLP nodes means the data is fully checked when it is read back,
and nodes already carry their encoding when hashes are computed.
"""

from __future__ import annotations

from typing import Iterable, List

from .codec import from_rlp, rlp_nodes
from .node import Node
from .rlp import RlpError, decode_bytes, decode_raw, encode_bytes, encode_list, split_list

__all__ = ["deserialize", "from_bytes", "serialize", "to_bytes"]


def serialize(node: Node) -> List[bytes]:
    """Return the trie's RLP nodes, root first, without duplicates."""
    return list(dict.fromkeys(rlp_nodes(node)))


def deserialize(nodes: Iterable[bytes], cached: bool = False) -> Node:
    """Rebuild a trie from the output of :func:`serialize`."""
    return from_rlp(nodes, cached)


def to_bytes(node: Node) -> bytes:
    """Encode the trie as an RLP list of its RLP nodes."""
    return encode_list(encode_bytes(item) for item in serialize(node))


def from_bytes(data: bytes, cached: bool = False) -> Node:
    """Decode a trie written by :func:`to_bytes`."""
    is_list, payload = decode_raw(data)
    if not is_list:
        raise RlpError("expected a list of nodes")
    return deserialize((decode_bytes(item) for item in split_list(payload)), cached)