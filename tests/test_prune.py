import copy

import pytest

from mptrie.codec import EMPTY_ROOT_HASH, from_rlp, memoize, node_hash
from mptrie.nibbles import unpack
from mptrie.node import Digest, Null, UnresolvedNodeError
from mptrie.prune import SortedKeysCursor, prune_to_keys
from mptrie.rlp import keccak256
from mptrie.serialize import serialize


def _keys(count):
    return sorted(unpack(keccak256(i.to_bytes(8, "big"))) for i in range(count))


def _build(keys):
    root = Null()
    for i, key in enumerate(keys):
        root = root.insert(key, b"value-%d" % i)
    return root


def test_cursor_peek_and_seek():
    cursor = SortedKeysCursor([b"\x01", b"\x01\x02", b"\x03"])
    assert cursor.peek() == b"\x01"
    cursor.seek(b"\x01\x01")
    assert cursor.peek() == b"\x01\x02"
    cursor.seek(b"\x04")
    assert cursor.peek() is None


def test_cursor_peek_with_prefix():
    cursor = SortedKeysCursor([b"\x01\x02", b"\x03\x04"])
    assert cursor.peek_with_prefix(b"\x00") is None
    assert cursor.peek_with_prefix(b"\x01") == b"\x01\x02"
    assert cursor.peek_with_prefix(b"\x01") == b"\x01\x02"
    assert cursor.peek_with_prefix(b"\x02") is None
    assert cursor.peek_with_prefix(b"\x03") == b"\x03\x04"


@pytest.mark.parametrize("keys", [[b"\x02", b"\x01"], [b"\x01", b"\x01"]])
def test_cursor_rejects_unsorted_keys(keys):
    with pytest.raises(ValueError):
        SortedKeysCursor(keys)


def test_prune_keeps_hash_and_selected_keys():
    keys = _keys(32)
    trie = _build(keys)
    original = copy.deepcopy(trie)
    kept = keys[3:6]

    pruned = prune_to_keys(trie, kept)

    assert node_hash(pruned) == node_hash(original)
    for key in kept:
        assert pruned.get(key) == original.get(key)
    assert pruned.size() < original.size()


def test_pruned_keys_are_unresolved():
    keys = _keys(16)
    pruned = prune_to_keys(_build(keys), [keys[0]])
    for key in keys[1:]:
        with pytest.raises(UnresolvedNodeError):
            pruned.get(key)


def test_prune_to_all_keys_keeps_everything():
    keys = _keys(20)
    trie = _build(keys)
    size = trie.size()
    pruned = prune_to_keys(trie, keys)
    assert pruned.size() == size
    for i, key in enumerate(keys):
        assert pruned.get(key) == b"value-%d" % i


def test_prune_to_no_keys_gives_root_digest():
    trie = _build(_keys(10))
    expected = node_hash(trie)
    pruned = prune_to_keys(trie, [])
    assert pruned == Digest(expected)
    assert pruned.size() == 0


def test_prune_empty_trie():
    assert prune_to_keys(Null(), []) == Digest(EMPTY_ROOT_HASH)


def test_prune_memoized_trie():
    keys = _keys(24)
    trie = _build(keys)
    expected = node_hash(trie)
    memoize(trie)
    pruned = prune_to_keys(trie, keys[10:12])
    assert node_hash(pruned) == expected


def test_pruned_trie_round_trips_through_rlp():
    keys = _keys(24)
    pruned = prune_to_keys(_build(keys), keys[::7])
    restored = from_rlp(serialize(pruned))
    assert restored == pruned
    assert node_hash(restored) == node_hash(pruned)