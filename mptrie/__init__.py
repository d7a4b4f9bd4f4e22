"""Sparse Ethereum Merkle Patricia Trie with RLP encoding, pruning and orphan resolution."""

__version__ = "0.1.0"

__all__ = ["codec", "nibbles", "node", "orphan", "prune", "rlp", "serialize"]