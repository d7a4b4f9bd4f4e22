"""In-memory Merkle Patricia trie nodes and their structural operations.

Keys handed to the node methods are nibble sequences (see ``mptrie.nibbles``).
Operations that may change the kind of a node return the node that takes its
place, so callers keep the result: ``root = root.insert(key, value)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from .nibbles import format_nibbles, split_common_prefix, strip_prefix

NIBBLE_COUNT = 16


class MptError(RuntimeError):
    """Raised when an operation would leave the trie in an invalid state."""


class UnresolvedNodeError(MptError):
    """Raised when an operation needs a node that is only known by its digest."""


class NoCache:
    """Memoization strategy that never retains an encoding."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value = None

    def clear(self) -> None:
        """Reset the slot to empty."""
        self._value = None

    def get(self):
        """Return the stored encoding; nothing is ever retained, so ``None``."""
        return self._value

    def set(self, rlp_node) -> None:
        """Discard ``rlp_node``, leaving the slot empty."""
        self._value = None

    def __repr__(self) -> str:
        return "NoCache()"


class Cache:
    """Memoization strategy that keeps the node's RLP reference."""

    __slots__ = ("_value",)

    def __init__(self, value=None) -> None:
        self._value = value

    def clear(self) -> None:
        """Forget the stored encoding."""
        self._value = None

    def get(self):
        """Return the stored encoding, or ``None``."""
        return self._value

    def set(self, rlp_node) -> None:
        """Store ``rlp_node``."""
        self._value = rlp_node

    def __repr__(self) -> str:
        return f"Cache({self._value!r})"


class Children:
    """The sixteen child slots of a branch; a slot never holds a ``Null`` node."""

    __slots__ = ("_slots",)

    def __init__(self, pairs: Iterable[Tuple[int, "Node"]] = ()) -> None:
        self._slots: List[Optional[Node]] = [None] * NIBBLE_COUNT
        for idx, child in pairs:
            self.insert(idx, child)

    def get(self, idx: int) -> Optional["Node"]:
        """Return the child at nibble ``idx``, or ``None`` if the slot is empty."""
        return self._slots[idx]

    def insert(self, idx: int, child: "Node") -> None:
        """Place ``child`` at nibble ``idx``."""
        if isinstance(child, Null):
            raise ValueError("a branch child must not be a null node")
        self._slots[idx] = child

    def _replace(self, idx: int, child: "Node") -> None:
        self._slots[idx] = None if isinstance(child, Null) else child

    def take_single_child(self) -> Optional[Tuple[int, "Node"]]:
        """Remove and return ``(idx, child)`` if exactly one slot is occupied."""
        occupied = [idx for idx, child in enumerate(self._slots) if child is not None]
        if len(occupied) != 1:
            return None
        idx = occupied[0]
        child = self._slots[idx]
        self._slots[idx] = None
        return idx, child

    def __len__(self) -> int:
        return sum(child is not None for child in self._slots)

    def __iter__(self) -> Iterator[Optional["Node"]]:
        return iter(self._slots)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Children):
            return NotImplemented
        return self._slots == other._slots

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(
            f"{idx:x}: {child!r}" for idx, child in enumerate(self._slots) if child is not None
        )
        return f"Children({{{items}}})"


class Node(ABC):
    """A node of a Merkle Patricia trie. Equality ignores memoized encodings."""

    def insert(self, key: bytes, value: bytes) -> "Node":
        """Insert ``value`` under ``key`` and return the node replacing this one."""
        value = bytes(value)
        if not value:
            raise ValueError("value must not be empty")
        return self._insert(bytes(key), value)

    @abstractmethod
    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value stored under ``key``, or ``None``."""

    @abstractmethod
    def _insert(self, key: bytes, value: bytes) -> "Node":
        """Insert a non-empty value; return the replacing node."""

    @abstractmethod
    def remove(self, key: bytes) -> Tuple["Node", bool]:
        """Remove ``key``; return the replacing node and whether anything was removed."""

    @abstractmethod
    def size(self) -> int:
        """Return the number of full (non-null, non-digest) nodes in the sub-trie."""


def _fresh(cache) -> object:
    return type(cache)()


@dataclass(repr=False)
class Null(Node):
    """The empty trie."""

    cache_type: type = field(default=NoCache, compare=False)

    def get(self, key: bytes) -> Optional[bytes]:
        return None

    def _insert(self, key: bytes, value: bytes) -> Node:
        return Leaf(key, value, self.cache_type())

    def remove(self, key: bytes) -> Tuple[Node, bool]:
        return self, False

    def size(self) -> int:
        return 0

    def __repr__(self) -> str:
        return "Null()"


@dataclass(repr=False)
class Leaf(Node):
    """A node holding the remaining key path and a value."""

    prefix: bytes
    value: bytes
    cache: object = field(default_factory=NoCache, compare=False)

    def __post_init__(self) -> None:
        self.prefix = bytes(self.prefix)
        self.value = bytes(self.value)

    def get(self, key: bytes) -> Optional[bytes]:
        return self.value if self.prefix == bytes(key) else None

    def _insert(self, key: bytes, value: bytes) -> Node:
        common, key_rem, prefix_rem = split_common_prefix(key, self.prefix)
        if len(common) == len(self.prefix) and len(common) == len(key):
            self.value = value
            self.cache.clear()
            return self
        if len(common) == len(self.prefix) or len(common) == len(key):
            raise MptError("MPT: Value in branch")

        new = self.cache
        children = Children()
        children.insert(prefix_rem[0], Leaf(prefix_rem[1:], self.value, _fresh(new)))
        children.insert(key_rem[0], Leaf(key_rem[1:], value, _fresh(new)))
        branch = Branch(children, _fresh(new))
        if not common:
            return branch
        return Extension(common, branch, _fresh(new))

    def remove(self, key: bytes) -> Tuple[Node, bool]:
        if self.prefix == bytes(key):
            return Null(type(self.cache)), True
        return self, False

    def size(self) -> int:
        return 1

    def __repr__(self) -> str:
        return f"Leaf({format_nibbles(self.prefix)}, 0x{self.value.hex()})"


@dataclass(repr=False)
class Extension(Node):
    """A node sharing a path prefix in front of a single branch child."""

    prefix: bytes
    child: Node
    cache: object = field(default_factory=NoCache, compare=False)

    def __post_init__(self) -> None:
        self.prefix = bytes(self.prefix)

    def get(self, key: bytes) -> Optional[bytes]:
        tail = strip_prefix(key, self.prefix)
        return None if tail is None else self.child.get(tail)

    def _insert(self, key: bytes, value: bytes) -> Node:
        common, key_rem, prefix_rem = split_common_prefix(key, self.prefix)
        if len(common) == len(self.prefix):
            self.child = self.child._insert(key_rem, value)
            self.cache.clear()
            return self
        if len(common) == len(key):
            raise MptError("MPT: Value in branch")

        new = self.cache
        children = Children()
        if len(prefix_rem) == 1:
            children.insert(prefix_rem[0], self.child)
        else:
            children.insert(prefix_rem[0], Extension(prefix_rem[1:], self.child, _fresh(new)))
        children.insert(key_rem[0], Leaf(key_rem[1:], value, _fresh(new)))
        branch = Branch(children, _fresh(new))
        if not common:
            return branch
        return Extension(common, branch, _fresh(new))

    def remove(self, key: bytes) -> Tuple[Node, bool]:
        tail = strip_prefix(key, self.prefix)
        if tail is None:
            return self, False
        child, removed = self.child.remove(tail)
        if not removed:
            return self, False
        self.child = child
        self.cache.clear()

        new = self.cache
        if isinstance(child, Null):
            return Null(type(new)), True
        if isinstance(child, Leaf):
            return Leaf(self.prefix + child.prefix, child.value, _fresh(new)), True
        if isinstance(child, Extension):
            return Extension(self.prefix + child.prefix, child.child, _fresh(new)), True
        if isinstance(child, Branch):
            return self, True
        raise MptError("MPT: extension child became a digest during removal")

    def size(self) -> int:
        return 1 + self.child.size()

    def __repr__(self) -> str:
        return f"Extension({format_nibbles(self.prefix)}, {self.child!r})"


@dataclass(repr=False)
class Branch(Node):
    """A sixteen-way node; in this trie variant a branch never holds a value."""

    children: Children = field(default_factory=Children)
    cache: object = field(default_factory=NoCache, compare=False)

    def get(self, key: bytes) -> Optional[bytes]:
        key = bytes(key)
        if not key:
            return None
        child = self.children.get(key[0])
        return None if child is None else child.get(key[1:])

    def _insert(self, key: bytes, value: bytes) -> Node:
        if not key:
            raise MptError("MPT: Value in branch")
        nib, tail = key[0], key[1:]
        child = self.children.get(nib)
        if child is None:
            self.children.insert(nib, Leaf(tail, value, _fresh(self.cache)))
        else:
            self.children.insert(nib, child._insert(tail, value))
        self.cache.clear()
        return self

    def remove(self, key: bytes) -> Tuple[Node, bool]:
        key = bytes(key)
        if not key:
            return self, False
        nib = key[0]
        child = self.children.get(nib)
        if child is None:
            return self, False
        replacement, removed = child.remove(key[1:])
        if not removed:
            return self, False
        self.children._replace(nib, replacement)
        self.cache.clear()

        single = self.children.take_single_child()
        if single is None:
            return self, True
        nib, only = single
        new = self.cache
        if isinstance(only, Leaf):
            return Leaf(bytes([nib]) + only.prefix, only.value, _fresh(new)), True
        if isinstance(only, Extension):
            return Extension(bytes([nib]) + only.prefix, only.child, _fresh(new)), True
        if isinstance(only, Branch):
            return Extension(bytes([nib]), only, _fresh(new)), True
        raise UnresolvedNodeError("MPT: Unresolved node access (remove)")

    def size(self) -> int:
        return 1 + sum(child.size() for child in self.children if child is not None)

    def __repr__(self) -> str:
        return f"Branch({self.children!r})"


@dataclass(repr=False)
class Digest(Node):
    """A sub-trie known only by its Keccak-256 hash."""

    digest: bytes

    def __post_init__(self) -> None:
        self.digest = bytes(self.digest)
        if len(self.digest) != 32:
            raise ValueError("digest must be 32 bytes long")

    def get(self, key: bytes) -> Optional[bytes]:
        raise UnresolvedNodeError("MPT: Unresolved node access (get)")

    def _insert(self, key: bytes, value: bytes) -> Node:
        raise UnresolvedNodeError("MPT: Unresolved node access (insert)")

    def remove(self, key: bytes) -> Tuple[Node, bool]:
        raise UnresolvedNodeError("MPT: Unresolved node access (remove2)")

    def size(self) -> int:
        return 0

    def __repr__(self) -> str:
        return f"Digest(0x{self.digest.hex()})"