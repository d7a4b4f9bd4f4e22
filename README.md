# mptrie

A sparse Ethereum Merkle Patricia Trie (MPT) for Python.

You can build a trie from key/value pairs or from the RLP-encoded nodes of a
proof, with the root node first. Subtries that the proof does not reveal are
kept as digest nodes. The package computes root hashes, serializes and
restores tries, prunes them down to a set of keys, and resolves the "orphan"
nodes that a removal can leave behind.

## Installation

```
pip install mptrie
```

To run the test suite:

```
pip install "mptrie[test]"
pytest
```

## Modules

- `mptrie.nibbles`: nibble helpers (`unpack`, `split_common_prefix`,
  `strip_prefix`, `strip_suffix`, `format_nibbles`) and the compact
  hex-prefix path encoding (`encode_path`, `decode_path`).
- `mptrie.rlp`: minimal RLP primitives (`encode_bytes`, `encode_list_header`,
  `encode_list`, `decode_raw`, `decode_bytes`, `split_list`), plus
  `keccak256` and `RlpError`.
- `mptrie.node`: the node types `Null`, `Leaf`, `Extension`, `Branch` and
  `Digest`, with `get`, `insert`, `remove` and `size`. Branch children live
  in a `Children` container. Each node carries a `Cache` or a `NoCache`
  memo for its RLP reference.
- `mptrie.codec`: hashing and encoding (`node_hash`, `rlp_encoded`,
  `memoize`, `rlp_nodes`, `RlpNode`), decoding (`decode_node`, `from_rlp`),
  digest resolution (`resolve_digests`) and `EMPTY_ROOT_HASH`.
- `mptrie.serialize`: round-trips a trie through its deduplicated list of
  RLP nodes (`serialize`, `deserialize`) or through a single RLP byte string
  (`to_bytes`, `from_bytes`).
- `mptrie.prune`: `SortedKeysCursor` and `prune_to_keys`. `prune_to_keys`
  replaces every subtrie that none of the given keys can reach with its
  digest.
- `mptrie.orphan`: `resolve_orphan` and its helpers `diverging`,
  `contains_prefix` and `is_branch_with_digest`.

## Keys and nodes

Node methods take keys as nibble sequences: `bytes` objects with one value
from 0 to 15 per byte. Use `nibbles.unpack` to turn a byte key into nibbles.

Operations that can change the kind of a node return the node that takes its
place, so always keep the result:

- `insert(key, value)` returns the new node. An empty value raises
  `ValueError`.
- `remove(key)` returns `(node, removed)`.

## Example

```python
from mptrie.node import Null
from mptrie.nibbles import unpack
from mptrie.codec import node_hash, from_rlp
from mptrie.serialize import serialize, to_bytes, from_bytes

trie = Null()
trie = trie.insert(unpack(b"\x01\x02"), b"hello")
trie = trie.insert(unpack(b"\x01\x03"), b"world")

assert trie.get(unpack(b"\x01\x02")) == b"hello"
root = node_hash(trie)

restored = from_bytes(to_bytes(trie), cached=True)
assert node_hash(restored) == root

# The same nodes, loaded as a proof would be.
assert node_hash(from_rlp(serialize(trie))) == root

trie, removed = trie.remove(unpack(b"\x01\x03"))
assert removed
```

`cached=True` gives nodes a `Cache`, so `memoize` and later hashing can
reuse each node's RLP reference. Equality between nodes ignores the memo.

## Errors

- `UnresolvedNodeError` (a subclass of `MptError`) is raised when an
  operation reaches a part of the trie that is only known as a digest.
- `MptError` is raised for invalid operations, such as storing a value at a
  branch position.
- `RlpError` (a subclass of `ValueError`) is raised for malformed or
  non-canonical RLP, and for RLP that does not describe a valid node.

## Orphans

Removing a key from a sparse trie can leave a branch with a single child that
is only known by its digest. Such a branch cannot be collapsed, and `remove`
raises `UnresolvedNodeError`. Pass the RLP nodes of the trie *after* the
removal (root first) to `resolve_orphan` first, then remove:

```python
from mptrie.orphan import resolve_orphan, UnresolvableError

trie = resolve_orphan(trie, key, post_removal_proof)
trie, removed = trie.remove(key)
```

`key` is a nibble sequence and must be present in the trie, or `KeyError` is
raised. A proof that does not show that the key is absent raises
`InvalidProofError`. If the proof alone is not enough, `UnresolvableError` is
raised. Its `prefix` attribute holds the nibble path that has to be resolved
some other way. A proof that cannot be decoded raises `OrphanError`, the base
class of both.

## What it does not do

The package works on tries and their RLP nodes only. It does not build proofs
from a key/value set, fetch proofs or state from a node, or store tries
anywhere. It has no command-line program.