"""
Module 03 - Zero-Hash Table
Hashes of the empty subtree at every level of a fixed-depth tree.

zero[0] = 0 (the empty leaf)
zero[i] = H(zero[i-1], zero[i-1])

The table depends only on the hash backend and the depth. It is built once
at process start or taken from a persisted state file without recomputation;
the persisted copy also pins the constants a deployed circuit hard-codes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from core.crypto.hashing import FieldHasher


logger = logging.getLogger(__name__)

EMPTY_LEAF: int = 0


@dataclass(frozen=True)
class ZeroHashTable:
    """
    Immutable sequence of depth + 1 empty-subtree hashes.

    Attributes:
        values: zero[0] .. zero[depth]
    """
    values: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.values) < 2:
            raise ValueError(f"Zero-hash table needs at least 2 entries, got {len(self.values)}")
        if self.values[0] != EMPTY_LEAF:
            raise ValueError(f"zero[0] must be {EMPTY_LEAF}, got {self.values[0]:#x}")

    @property
    def depth(self) -> int:
        return len(self.values) - 1

    @property
    def empty_root(self) -> int:
        """Root of a tree with no leaves."""
        return self.values[-1]

    def __getitem__(self, level: int) -> int:
        return self.values[level]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[int]:
        return iter(self.values)

    @classmethod
    def from_values(cls, values: Sequence[int]) -> "ZeroHashTable":
        return cls(values=tuple(values))

    def matches(self, hasher: FieldHasher) -> bool:
        """Recompute the table with hasher and compare."""
        return build_zero_hashes(self.depth, hasher) == self


def build_zero_hashes(depth: int, hasher: FieldHasher) -> ZeroHashTable:
    """
    Build the zero-hash table for a tree of the given depth.

    Performs exactly depth hash evaluations.

    Raises:
        ValueError: If depth < 1
    """
    if depth < 1:
        raise ValueError(f"Tree depth must be at least 1, got {depth}")

    values = [EMPTY_LEAF]
    for _ in range(depth):
        values.append(hasher.hash(values[-1], values[-1]))

    logger.debug(f"Precomputed {depth + 1} zero hashes with {hasher.name}")
    return ZeroHashTable(values=tuple(values))


__all__ = [
    "EMPTY_LEAF",
    "ZeroHashTable",
    "build_zero_hashes",
]
