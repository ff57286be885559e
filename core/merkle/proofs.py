"""
Module 03 - Proof Deriver
Inclusion proofs for a fixed-depth sparse tree.

This module provides:
- ProofRecord: siblings + direction bits + root + leaf + index
- walk_proof: the leaf-to-root walk shared by every strategy
- ProofStrategy: one interface, two implementations
    - LazyProofStrategy: walk per query against the maintained node maps
      (O(depth) lookups, no per-leaf storage)
    - EagerProofStrategy: walk every leaf once and cache the records
      (O(1) queries, O(n * depth) memory)
- derive_proof_from_leaves: one-off proof without node maps
- verify_proof_record: replay a record with the hash combinator

Direction bits: 0 = the node on the path is a left child (sibling on the
right), 1 = it is a right child (sibling on the left).

All strategies produce identical records for the same tree state. A record
is stale as soon as another leaf is inserted; strategies are invalidated by
the owner on every mutation.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from core.crypto.field import field_from_hex, field_to_hex
from core.crypto.hashing import FieldHasher
from core.merkle.sparse_tree import SparseNodeMaps, SubtreeResolver
from core.merkle.zero_hashes import ZeroHashTable
from core.schemas.errors import IndexOutOfRangeException


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProofRecord:
    """
    Inclusion proof for a single leaf.

    Attributes:
        siblings: Sibling values from leaf level up to depth - 1
        directions: Direction bit per level (0 = left child, 1 = right child)
        root: Root the proof was derived against
        leaf: Leaf value being proven
        index: 0-based leaf index
    """
    siblings: tuple[int, ...]
    directions: tuple[int, ...]
    root: int
    leaf: int
    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")
        if len(self.siblings) != len(self.directions):
            raise ValueError(
                f"siblings ({len(self.siblings)}) and directions "
                f"({len(self.directions)}) must have the same length"
            )
        if any(bit not in (0, 1) for bit in self.directions):
            raise ValueError("Direction bits must be 0 or 1")

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_dict(self) -> dict[str, Any]:
        """Hex-encoded form served by the proof endpoint."""
        return {
            "siblings": [field_to_hex(s) for s in self.siblings],
            "indices": list(self.directions),
            "root": field_to_hex(self.root),
            "leaf": field_to_hex(self.leaf),
            "index": self.index,
        }

    def to_noir(self) -> dict[str, Any]:
        """Circuit input form: leaf, index, path, indices, root."""
        return {
            "leaf": field_to_hex(self.leaf),
            "index": self.index,
            "path": [field_to_hex(s) for s in self.siblings],
            "indices": list(self.directions),
            "root": field_to_hex(self.root),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProofRecord":
        """
        Parse either the to_dict() or the to_noir() form.

        Raises:
            ValueError: On missing fields or malformed hex
        """
        siblings = data.get("siblings", data.get("path"))
        if siblings is None:
            raise ValueError("Proof is missing 'siblings'/'path'")
        try:
            return cls(
                siblings=tuple(field_from_hex(s) for s in siblings),
                directions=tuple(int(b) for b in data["indices"]),
                root=field_from_hex(data["root"]),
                leaf=field_from_hex(data["leaf"]),
                index=int(data["index"]),
            )
        except KeyError as e:
            raise ValueError(f"Proof is missing field {e.args[0]!r}") from e


def walk_proof(
    nodes: SparseNodeMaps,
    index: int,
    root: Optional[int] = None,
) -> ProofRecord:
    """
    Walk from a leaf to the root collecting siblings and direction bits.

    At each level the sibling is index ^ 1, read from the level map or
    zero[level] when absent; then index moves to index // 2.
    """
    siblings: list[int] = []
    directions: list[int] = []
    current_index = index

    for level in range(nodes.depth):
        siblings.append(nodes.get(level, current_index ^ 1))
        directions.append(current_index & 1)
        current_index >>= 1

    return ProofRecord(
        siblings=tuple(siblings),
        directions=tuple(directions),
        root=nodes.root if root is None else root,
        leaf=nodes.get(0, index),
        index=index,
    )


def _check_index(index: int, next_index: int) -> None:
    if index < 0 or index >= next_index:
        raise IndexOutOfRangeException(
            f"Leaf index {index} out of range for {next_index} leaves",
            index=index,
            next_index=next_index,
        )


class ProofStrategy(ABC):
    """
    Common interface for proof derivation strategies.

    A strategy reads a SparseNodeMaps instance owned by someone else. The
    owner calls invalidate() after every mutation of those maps.
    """

    name: str = ""

    def __init__(self, nodes: SparseNodeMaps) -> None:
        self.nodes = nodes

    @property
    def next_index(self) -> int:
        return len(self.nodes.leaves)

    @abstractmethod
    def prove_index(self, index: int) -> ProofRecord:
        """
        Proof for the leaf at index.

        Raises:
            IndexOutOfRangeException: If index is not an inserted leaf
        """

    def invalidate(self) -> None:
        """Drop anything derived from the previous tree state."""

    def warm(self) -> None:
        """Do any up-front work for the current tree state."""


class LazyProofStrategy(ProofStrategy):
    """Recompute each proof on demand from the node maps."""

    name = "lazy"

    def prove_index(self, index: int) -> ProofRecord:
        _check_index(index, self.next_index)
        return walk_proof(self.nodes, index)


class EagerProofStrategy(ProofStrategy):
    """
    Precompute a proof for every leaf and serve lookups from the cache.

    The cache is keyed by leaf index (the registry maps member keys to
    indices). It is rebuilt on the first query after an invalidation.
    """

    name = "eager"

    def __init__(self, nodes: SparseNodeMaps) -> None:
        super().__init__(nodes)
        self._cache: dict[int, ProofRecord] | None = None

    @property
    def is_warm(self) -> bool:
        return self._cache is not None

    def refresh(self) -> None:
        """Derive and cache proofs for all leaves against the current root."""
        start = time.monotonic()
        root = self.nodes.root
        self._cache = {
            index: walk_proof(self.nodes, index, root=root)
            for index in self.nodes.leaves
        }
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(f"Precomputed {len(self._cache)} proofs in {elapsed_ms:.0f}ms")

    def invalidate(self) -> None:
        self._cache = None

    def warm(self) -> None:
        self.refresh()

    def prove_index(self, index: int) -> ProofRecord:
        _check_index(index, self.next_index)
        if self._cache is None:
            self.refresh()
        return self._cache[index]


PROOF_STRATEGIES: dict[str, type[ProofStrategy]] = {
    LazyProofStrategy.name: LazyProofStrategy,
    EagerProofStrategy.name: EagerProofStrategy,
}


def make_proof_strategy(name: str, nodes: SparseNodeMaps) -> ProofStrategy:
    """
    Instantiate a proof strategy by name ("lazy" or "eager").

    Raises:
        ValueError: If the name is unknown
    """
    key = (name or "lazy").lower()
    if key not in PROOF_STRATEGIES:
        raise ValueError(
            f"Unknown proof strategy {name!r}; expected one of {sorted(PROOF_STRATEGIES)}"
        )
    return PROOF_STRATEGIES[key](nodes)


def derive_proof_from_leaves(
    leaf_set: Mapping[int, int],
    zero_table: ZeroHashTable,
    hasher: FieldHasher,
    index: int,
    root: Optional[int] = None,
) -> ProofRecord:
    """
    One-off proof export without building node maps.

    Suited to low query volume (e.g. exporting a single proof from a state
    file). Every sibling is computed by a SubtreeResolver.

    Raises:
        IndexOutOfRangeException: If index is not in the leaf set
    """
    if index not in leaf_set:
        raise IndexOutOfRangeException(
            f"Leaf index {index} not in leaf set of {len(leaf_set)} leaves",
            index=index,
            next_index=len(leaf_set),
        )

    resolver = SubtreeResolver(leaf_set, zero_table, hasher)
    siblings: list[int] = []
    directions: list[int] = []
    current_index = index

    for level in range(zero_table.depth):
        siblings.append(resolver.node_at(level, current_index ^ 1))
        directions.append(current_index & 1)
        current_index >>= 1

    return ProofRecord(
        siblings=tuple(siblings),
        directions=tuple(directions),
        root=resolver.root if root is None else root,
        leaf=leaf_set[index],
        index=index,
    )


def compute_root_from_proof(record: ProofRecord, hasher: FieldHasher) -> int:
    """Replay the sibling/direction walk starting from the leaf."""
    current = record.leaf
    for sibling, direction in zip(record.siblings, record.directions):
        if direction == 0:
            current = hasher.hash(current, sibling)
        else:
            current = hasher.hash(sibling, current)
    return current


def verify_proof_record(record: ProofRecord, hasher: FieldHasher) -> bool:
    """
    Verify a proof record out of circuit.

    Checks that the direction bits spell out the leaf index and that the
    replayed walk reproduces record.root.
    """
    expected_bits = [(record.index >> level) & 1 for level in range(record.depth)]
    if list(record.directions) != expected_bits:
        return False
    if record.index >> record.depth:
        return False
    try:
        return compute_root_from_proof(record, hasher) == record.root
    except ValueError:
        # An element outside the field cannot belong to a valid proof
        return False


__all__ = [
    "ProofRecord",
    "walk_proof",
    "ProofStrategy",
    "LazyProofStrategy",
    "EagerProofStrategy",
    "PROOF_STRATEGIES",
    "make_proof_strategy",
    "derive_proof_from_leaves",
    "compute_root_from_proof",
    "verify_proof_record",
]
