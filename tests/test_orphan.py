import copy

import pytest

from mptrie.codec import from_rlp, node_hash, rlp_encoded
from mptrie.nibbles import strip_prefix, unpack
from mptrie.node import Branch, Extension, Leaf, Null, UnresolvedNodeError
from mptrie.orphan import (
    InvalidProofError,
    OrphanError,
    UnresolvableError,
    contains_prefix,
    diverging,
    is_branch_with_digest,
    resolve_orphan,
)

ZERO = bytes(32)


def _build(keys):
    root = Null()
    for key in keys:
        root = root.insert(unpack(key), ZERO)
    return root


def _proof(keys, key):
    """RLP nodes along the path of ``key``, root first, as in an EIP-1186 proof."""
    node = _build(keys)
    path = unpack(key)
    out = []
    while not isinstance(node, Null):
        out.append(rlp_encoded(node))
        if isinstance(node, Extension):
            tail = strip_prefix(path, node.prefix)
            if tail is None:
                break
            node, path = node.child, tail
        elif isinstance(node, Branch):
            if not path or node.children.get(path[0]) is None:
                break
            node, path = node.children.get(path[0]), path[1:]
        else:
            break
    return out


def _check_resolvable(keys):
    key = keys[0]
    nibbles = unpack(key)
    trie = from_rlp(_proof(keys, key))
    assert trie.get(nibbles) == ZERO
    with pytest.raises(UnresolvedNodeError):
        copy.deepcopy(trie).remove(nibbles)

    trie = resolve_orphan(trie, nibbles, _proof(keys[1:], key))
    trie, removed = trie.remove(nibbles)
    assert removed
    assert node_hash(trie) == node_hash(_build(keys[1:]))


def test_leaf_orphan():
    _check_resolvable([b"\x00", b"\x11"])


def test_extension_orphan():
    _check_resolvable([b"\x00", b"\x10\x00", b"\x10\x01"])


def test_unresolvable_orphan():
    keys = [b"\x00", b"\x10", b"\x11"]
    key = keys[0]
    nibbles = unpack(key)
    trie = from_rlp(_proof(keys, key))
    assert trie.get(nibbles) == ZERO
    with pytest.raises(UnresolvedNodeError):
        copy.deepcopy(trie).remove(nibbles)

    with pytest.raises(UnresolvableError) as info:
        resolve_orphan(trie, nibbles, _proof(keys[1:], key))
    assert info.value.prefix == b"\x01"


def test_missing_key_is_rejected():
    keys = [b"\x00", b"\x11"]
    trie = from_rlp(_proof(keys, b"\x00"))
    with pytest.raises(KeyError):
        resolve_orphan(trie, unpack(b"\x02"), [])


def test_proof_still_containing_key_changes_nothing():
    keys = [b"\x00", b"\x11"]
    proof = _proof(keys, b"\x00")
    trie = from_rlp(proof)
    result = resolve_orphan(trie, unpack(b"\x00"), proof)
    assert result == from_rlp(proof)


def test_proof_ending_in_digest_is_invalid():
    keys = [b"\x00", b"\x11"]
    trie = from_rlp(_proof(keys, b"\x00"))
    with pytest.raises(InvalidProofError):
        resolve_orphan(trie, unpack(b"\x00"), _proof(keys, b"\x11"))


def test_malformed_proof_is_reported():
    keys = [b"\x00", b"\x11"]
    trie = from_rlp(_proof(keys, b"\x00"))
    with pytest.raises(OrphanError) as info:
        resolve_orphan(trie, unpack(b"\x00"), [b"\xff"])
    assert not isinstance(info.value, (InvalidProofError, UnresolvableError))


def test_diverging():
    trie = _build([b"\x00", b"\x11"])
    assert diverging(trie, unpack(b"\x00")) is None
    reached, unmatched = diverging(trie, b"\x00\x01")
    assert isinstance(reached, Leaf)
    assert unmatched == b"\x01"
    reached, unmatched = diverging(trie, b"\x05\x00")
    assert isinstance(reached, Null)
    assert unmatched == b"\x00"


def test_contains_prefix():
    keys = [b"\x00", b"\x11"]
    full = _build(keys)
    assert contains_prefix(full, b"\x00")
    assert not contains_prefix(full, b"\x00\x00\x01")
    sparse = from_rlp(_proof(keys, b"\x00"))
    assert not contains_prefix(sparse, b"\x01")


def test_is_branch_with_digest():
    keys = [b"\x00", b"\x11"]
    sparse = from_rlp(_proof(keys, b"\x00"))
    assert is_branch_with_digest(sparse, b"", 1)
    assert not is_branch_with_digest(sparse, b"", 0)
    assert not is_branch_with_digest(_build(keys), b"", 1)