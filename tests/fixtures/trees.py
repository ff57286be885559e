"""
Tree fixtures shared by all test modules.

Provides factory functions for:
- Member addresses
- Populated Accumulator instances
- A dense reference root computation to check the sparse code against
"""

from pathlib import Path
from typing import Optional, Sequence

from core.crypto.hashing import FieldHasher, get_hasher
from core.merkle.accumulator import Accumulator


def make_address(value: int) -> str:
    """Address whose leaf value is exactly value."""
    return "0x" + format(value, "040x")


def make_addresses(count: int, start: int = 1) -> list[str]:
    """count distinct addresses with leaf values start, start + 1, ..."""
    return [make_address(start + i) for i in range(count)]


def make_accumulator(
    depth: int = 4,
    addresses: Optional[Sequence[str]] = None,
    strategy: str = "lazy",
    state_path: Optional[Path] = None,
    hasher: Optional[FieldHasher] = None,
) -> Accumulator:
    """
    Create an Accumulator and insert addresses (if any) in order.

    Args:
        depth: Tree depth
        addresses: Members to insert
        strategy: Proof strategy name
        state_path: Persist inserts here when given
        hasher: Hash backend (default sha256)
    """
    acc = Accumulator(
        depth=depth,
        hasher=hasher or get_hasher("sha256"),
        strategy=strategy,
        state_path=state_path,
    )
    if addresses:
        acc.insert_members(addresses)
    return acc


def reference_root(leaf_values: Sequence[int], depth: int, hasher: FieldHasher) -> int:
    """
    Root of a fully materialized tree, leaves left-aligned, the rest zero.

    Only usable for small depths; it hashes all 2^depth - 1 internal nodes.
    """
    level = list(leaf_values) + [0] * ((1 << depth) - len(leaf_values))
    for _ in range(depth):
        level = [hasher.hash(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]
