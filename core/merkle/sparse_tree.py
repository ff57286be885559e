"""
Module 03 - Sparse Tree Builder
Reconstruct the non-empty internal nodes of a fixed-depth tree from its leaves.

A 2^depth tree is never materialized. Each level keeps a dict from node
index to value, populated only for nodes with at least one inserted
descendant. A missing entry at (level, index) means zero[level].

Two ways to obtain node values:
- rebuild_sparse_tree: bottom-up over the ancestors of inserted leaves,
  O(n * depth) work, result reused across queries.
- SubtreeResolver: map-free traversal for one-off proofs. It descends only
  into subtrees that contain inserted leaves and memoizes within the
  resolver, so recursion depth is bounded by depth.
"""
from __future__ import annotations

import bisect
import logging
import time
from typing import Iterator, Mapping

from core.crypto.hashing import FieldHasher
from core.merkle.zero_hashes import ZeroHashTable


logger = logging.getLogger(__name__)


class SparseNodeMaps:
    """
    Per-level node storage where absence means the zero hash.

    Level 0 is the leaf set; level depth holds the root at index 0.
    """

    def __init__(self, zero_table: ZeroHashTable) -> None:
        self.zero_table = zero_table
        self.depth = zero_table.depth
        self.levels: list[dict[int, int]] = [dict() for _ in range(self.depth + 1)]

    def get(self, level: int, index: int) -> int:
        """Node value at (level, index), falling back to zero[level]."""
        return self.levels[level].get(index, self.zero_table[level])

    def set(self, level: int, index: int, value: int) -> None:
        self.levels[level][index] = value

    def discard(self, level: int, index: int) -> None:
        """Drop a stored node so it reads as zero[level] again."""
        self.levels[level].pop(index, None)

    def contains(self, level: int, index: int) -> bool:
        return index in self.levels[level]

    @property
    def leaves(self) -> dict[int, int]:
        """The leaf set (level 0 map)."""
        return self.levels[0]

    @property
    def root(self) -> int:
        return self.get(self.depth, 0)

    def node_count(self) -> int:
        """Number of stored nodes across all levels."""
        return sum(len(level) for level in self.levels)

    def iter_leaves(self) -> Iterator[tuple[int, int]]:
        """Yield (index, value) pairs in index order."""
        for index in sorted(self.levels[0]):
            yield index, self.levels[0][index]


def rebuild_sparse_tree(
    leaf_set: Mapping[int, int],
    zero_table: ZeroHashTable,
    hasher: FieldHasher,
) -> SparseNodeMaps:
    """
    Build every non-empty node from a leaf set, bottom-up.

    For each level l in 1..depth, the parents of all present children at
    l-1 are computed. A missing child is zero[l-1]; when both children are
    the zero value the parent is stored as zero[l] without hashing.

    An empty leaf set yields empty maps at every level (root = zero[depth]).

    Args:
        leaf_set: Mapping leaf index -> leaf value
        zero_table: Zero-hash table of the tree depth
        hasher: Hash backend

    Returns:
        Populated SparseNodeMaps
    """
    start = time.monotonic()
    nodes = SparseNodeMaps(zero_table)
    nodes.levels[0] = dict(leaf_set)

    for level in range(1, nodes.depth + 1):
        child_level = nodes.levels[level - 1]
        child_zero = zero_table[level - 1]
        parent_level = nodes.levels[level]

        parent_indices = {child_index >> 1 for child_index in child_level}
        for parent_index in sorted(parent_indices):
            left = child_level.get(2 * parent_index, child_zero)
            right = child_level.get(2 * parent_index + 1, child_zero)
            if left == child_zero and right == child_zero:
                parent_level[parent_index] = zero_table[level]
            else:
                parent_level[parent_index] = hasher.hash(left, right)

    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(
        f"Rebuilt sparse tree: {len(nodes.leaves)} leaves, "
        f"{nodes.node_count()} nodes in {elapsed_ms:.0f}ms"
    )
    return nodes


class SubtreeResolver:
    """
    Compute individual node values without building node maps.

    A subtree rooted at (level, index) covers leaf indices
    [index << level, (index + 1) << level). If no inserted leaf falls in
    that range the node is zero[level]; otherwise it is the hash of its two
    children. Results are memoized for the lifetime of the resolver.
    """

    def __init__(
        self,
        leaf_set: Mapping[int, int],
        zero_table: ZeroHashTable,
        hasher: FieldHasher,
    ) -> None:
        self._leaves = dict(leaf_set)
        self._sorted_indices = sorted(self._leaves)
        self.zero_table = zero_table
        self.hasher = hasher
        self._memo: dict[tuple[int, int], int] = {}

    def _subtree_is_empty(self, level: int, index: int) -> bool:
        lo = index << level
        hi = (index + 1) << level
        pos = bisect.bisect_left(self._sorted_indices, lo)
        return pos >= len(self._sorted_indices) or self._sorted_indices[pos] >= hi

    def node_at(self, level: int, index: int) -> int:
        """Value of the node at (level, index)."""
        if level == 0:
            return self._leaves.get(index, self.zero_table[0])
        if self._subtree_is_empty(level, index):
            return self.zero_table[level]

        key = (level, index)
        cached = self._memo.get(key)
        if cached is not None:
            return cached

        left = self.node_at(level - 1, 2 * index)
        right = self.node_at(level - 1, 2 * index + 1)
        value = self.hasher.hash(left, right)
        self._memo[key] = value
        return value

    @property
    def root(self) -> int:
        return self.node_at(self.zero_table.depth, 0)


__all__ = [
    "SparseNodeMaps",
    "rebuild_sparse_tree",
    "SubtreeResolver",
]
