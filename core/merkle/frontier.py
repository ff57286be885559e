"""
Module 03 - Frontier Insertion Engine
Append-only insertion into a fixed-depth tree in O(depth) hashes.

The frontier ("filled subtrees") keeps, per level, the most recently
completed left child still waiting for a right sibling. Appending a leaf
walks one path to the root:

    for level in range(depth):
        if index is odd:   h = H(filled[level], h)     # right child
        else:              filled[level] = h
                           h = H(h, zero[level])       # left child
        index //= 2

A stale filled[level] is only read on the right-child branch, at which
point it is the current left sibling on the insertion path.

This primitive has no registry awareness: inserting the same value twice
creates two leaves. Duplicate filtering belongs to Accumulator.insert_members.
Not thread-safe; callers serialize mutations.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from core.crypto.hashing import FieldHasher
from core.merkle.zero_hashes import ZeroHashTable
from core.schemas.errors import CapacityExceededException


# Receives (level, index, value) for every ancestor recomputed by an insert
NodeCallback = Callable[[int, int, int], None]


@dataclass(frozen=True)
class BatchResult:
    """Outcome of FrontierInserter.insert_batch."""
    inserted_count: int
    new_root: int


class FrontierInserter:
    """
    Incremental tree state: frontier vector, next free index and root.

    Example:
        >>> hasher = get_hasher("sha256")
        >>> zeros = build_zero_hashes(3, hasher)
        >>> f = FrontierInserter(zeros, hasher)
        >>> f.insert(5)
        0
        >>> f.next_index
        1
    """

    def __init__(
        self,
        zero_table: ZeroHashTable,
        hasher: FieldHasher,
        filled: Optional[Sequence[int]] = None,
        next_index: int = 0,
        root: Optional[int] = None,
    ) -> None:
        self.zero_table = zero_table
        self.hasher = hasher
        self.depth = zero_table.depth
        self.capacity = 1 << self.depth

        if filled is None:
            filled = zero_table.values[: self.depth]
        if len(filled) != self.depth:
            raise ValueError(
                f"Frontier must have {self.depth} entries, got {len(filled)}"
            )
        if next_index < 0 or next_index > self.capacity:
            raise ValueError(
                f"next_index {next_index} outside [0, {self.capacity}]"
            )

        self.filled: list[int] = list(filled)
        self.next_index = next_index
        self.root = zero_table.empty_root if root is None else root

    @property
    def is_full(self) -> bool:
        return self.next_index >= self.capacity

    @property
    def remaining(self) -> int:
        return self.capacity - self.next_index

    def insert(self, leaf_value: int, on_node: Optional[NodeCallback] = None) -> int:
        """
        Append a leaf and update the frontier and root.

        Args:
            leaf_value: Field element to append
            on_node: Optional callback receiving each recomputed ancestor
                     as (level, index, value) for levels 1..depth

        Returns:
            The leaf index assigned to the value

        Raises:
            CapacityExceededException: If the tree already holds 2^depth leaves
        """
        index = self.next_index
        if index >= self.capacity:
            raise CapacityExceededException(
                f"Tree is full ({self.capacity} leaves)",
                capacity=self.capacity,
                requested=index + 1,
            )

        current_hash = leaf_value
        current_index = index

        for level in range(self.depth):
            if current_index & 1:
                current_hash = self.hasher.hash(self.filled[level], current_hash)
            else:
                self.filled[level] = current_hash
                current_hash = self.hasher.hash(current_hash, self.zero_table[level])

            current_index >>= 1
            if on_node is not None:
                on_node(level + 1, current_index, current_hash)

        self.root = current_hash
        self.next_index = index + 1
        return index

    def insert_batch(
        self,
        values: Iterable[int],
        on_node: Optional[NodeCallback] = None,
    ) -> BatchResult:
        """
        Insert values sequentially, in the given order.

        Equivalent to calling insert() for each value; a failure part-way
        leaves the earlier values inserted.
        """
        start = self.next_index
        for value in values:
            self.insert(value, on_node=on_node)
        return BatchResult(inserted_count=self.next_index - start, new_root=self.root)


__all__ = [
    "NodeCallback",
    "BatchResult",
    "FrontierInserter",
]
