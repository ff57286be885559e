"""
Module 05 - Accumulator Service
The single owner of all tree state.

An Accumulator holds the frontier, the sparse node maps (whose level 0 is
the leaf set), the membership registry and the proof strategy. Every
operation runs under one re-entrant lock, so one instance means one writer.

Operations:
- get_root()            -> int              (zero[depth] when empty)
- has_member(key)       -> bool
- get_proof(key)        -> ProofRecord | None
- prove_index(index)    -> ProofRecord      (IndexOutOfRangeException)
- insert_members(keys)  -> InsertResult     (the only mutator)

insert_members filters malformed keys and keys already present (including
repeats inside the batch), checks capacity for the whole remaining batch
before touching the tree, inserts in order and persists the new state when
a state path is configured.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from core.config.runtime import RuntimeConfig
from core.crypto.field import MEMBER_ID_BITS, field_to_hex
from core.crypto.hashing import FieldHasher, get_hasher
from core.merkle.frontier import FrontierInserter
from core.merkle.proofs import ProofRecord, ProofStrategy, make_proof_strategy
from core.merkle.registry import MembershipRegistry
from core.merkle.sparse_tree import SparseNodeMaps, rebuild_sparse_tree
from core.merkle.zero_hashes import ZeroHashTable, build_zero_hashes
from core.schemas.errors import (
    CapacityExceededException,
    CorruptStateException,
    MalformedKeyException,
)
from core.schemas.members import (
    canonical_member_key,
    is_valid_member_key,
    leaf_value_for_key,
)
from core.state.codec import TreeState, load_state, save_state


logger = logging.getLogger(__name__)

DEFAULT_TREE_DEPTH = 21


def _expected_frontier(nodes: SparseNodeMaps, next_index: int) -> list[int]:
    """
    Frontier implied by the node maps after next_index appends.

    filled[l] is the last left child written at level l, i.e. the node at
    ((next_index - 1) >> l) with the low bit cleared; zero[l] when empty.
    """
    if next_index == 0:
        return list(nodes.zero_table.values[: nodes.depth])
    last = next_index - 1
    return [nodes.get(level, (last >> level) & ~1) for level in range(nodes.depth)]


class _InsertJournal:
    """Frontier snapshot plus the previous value of every node a batch writes."""

    def __init__(self, frontier: FrontierInserter, nodes: SparseNodeMaps) -> None:
        self.filled = list(frontier.filled)
        self.next_index = frontier.next_index
        self.root = frontier.root
        self._nodes = nodes
        self._previous: dict[tuple[int, int], Optional[int]] = {}

    def set_node(self, level: int, index: int, value: int) -> None:
        position = (level, index)
        if position not in self._previous:
            self._previous[position] = self._nodes.levels[level].get(index)
        self._nodes.set(level, index, value)

    def rollback(self, frontier: FrontierInserter, nodes: SparseNodeMaps) -> None:
        for (level, index), previous in self._previous.items():
            if previous is None:
                nodes.discard(level, index)
            else:
                nodes.set(level, index, previous)
        frontier.filled = list(self.filled)
        frontier.next_index = self.next_index
        frontier.root = self.root


@dataclass(frozen=True)
class InsertResult:
    """Outcome of Accumulator.insert_members."""
    inserted_count: int
    new_root: int
    total_leaves: int
    duplicate_keys: tuple[str, ...] = field(default_factory=tuple)
    malformed_keys: tuple[str, ...] = field(default_factory=tuple)

    @property
    def skipped_duplicates(self) -> int:
        return len(self.duplicate_keys)

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted_count,
            "newRoot": field_to_hex(self.new_root),
            "totalLeaves": self.total_leaves,
            "skippedDuplicates": self.skipped_duplicates,
            "malformed": len(self.malformed_keys),
        }


class Accumulator:
    """
    Append-only Merkle accumulator over member addresses.

    Example:
        >>> acc = Accumulator(depth=3)
        >>> result = acc.insert_members(["0x" + "11" * 20])
        >>> result.inserted_count
        1
        >>> acc.has_member("0x" + "11" * 20)
        True
    """

    def __init__(
        self,
        depth: int = DEFAULT_TREE_DEPTH,
        hasher: Optional[FieldHasher] = None,
        strategy: str = "lazy",
        state_path: str | Path | None = None,
        zero_table: Optional[ZeroHashTable] = None,
    ) -> None:
        self.hasher = hasher or get_hasher()
        if zero_table is None:
            zero_table = build_zero_hashes(depth, self.hasher)
        elif zero_table.depth != depth:
            raise ValueError(
                f"Zero-hash table depth {zero_table.depth} does not match tree depth {depth}"
            )

        self.zero_table = zero_table
        self.depth = depth
        self.state_path = Path(state_path) if state_path else None

        self._lock = threading.RLock()
        self._nodes = SparseNodeMaps(zero_table)
        self._frontier = FrontierInserter(zero_table, self.hasher)
        self._registry = MembershipRegistry()
        self._strategy: ProofStrategy = make_proof_strategy(strategy, self._nodes)

    # ------------------------------------------------------------------
    # Construction from persisted state
    # ------------------------------------------------------------------

    @classmethod
    def from_state(
        cls,
        state: TreeState,
        hasher: Optional[FieldHasher] = None,
        strategy: str = "lazy",
        state_path: str | Path | None = None,
        strict: bool = True,
        expected_depth: Optional[int] = None,
    ) -> "Accumulator":
        """
        Rebuild an accumulator from decoded state.

        The persisted zero-hash table is reused as is. Node maps are rebuilt
        from the leaves and the resulting root must equal the persisted root.

        Args:
            state: Decoded tree state
            hasher: Hash backend (default sha256)
            strategy: "lazy" or "eager"
            state_path: Where insert_members persists updates
            strict: Also check the zero-hash table against the hasher
            expected_depth: Reject state of any other depth

        Raises:
            CorruptStateException: If the state is internally inconsistent
        """
        hasher = hasher or get_hasher()
        source = str(state_path) if state_path else None

        if expected_depth is not None and state.depth != expected_depth:
            raise CorruptStateException(
                f"State depth {state.depth} does not match configured depth {expected_depth}",
                path=source,
            )
        try:
            zero_table = ZeroHashTable.from_values(state.zero_hashes)
        except ValueError as e:
            raise CorruptStateException(f"Invalid zero-hash table: {e}", path=source) from e
        if strict and not zero_table.matches(hasher):
            raise CorruptStateException(
                f"Zero-hash table was not produced by the {hasher.name} backend",
                path=source,
            )

        acc = cls(
            depth=state.depth,
            hasher=hasher,
            strategy=strategy,
            state_path=state_path,
            zero_table=zero_table,
        )

        oversized = [i for i, v in state.leaves.items() if v >> MEMBER_ID_BITS]
        if oversized:
            raise CorruptStateException(
                f"Leaf {oversized[0]} is wider than {MEMBER_ID_BITS} bits",
                path=source,
            )

        try:
            nodes = rebuild_sparse_tree(state.leaves, zero_table, hasher)
        except ValueError as e:
            raise CorruptStateException(f"Cannot rebuild tree: {e}", path=source) from e
        if nodes.root != state.root:
            raise CorruptStateException(
                f"Root mismatch: persisted {field_to_hex(state.root)}, "
                f"rebuilt {field_to_hex(nodes.root)}",
                path=source,
            )
        if list(state.filled_subtrees) != _expected_frontier(nodes, state.next_index):
            raise CorruptStateException(
                "filledSubtrees does not match the leaf set",
                path=source,
            )
        try:
            registry = MembershipRegistry.from_leaves(state.leaves)
        except ValueError as e:
            raise CorruptStateException(f"Duplicate member in leaf set: {e}", path=source) from e

        acc._nodes = nodes
        acc._registry = registry
        acc._frontier = FrontierInserter(
            zero_table,
            hasher,
            filled=state.filled_subtrees,
            next_index=state.next_index,
            root=state.root,
        )
        acc._strategy = make_proof_strategy(strategy, nodes)
        acc.warm_up()
        logger.info(
            f"Accumulator ready: {len(registry)} members indexed, "
            f"{acc.strategy_name} proofs"
        )
        return acc

    @classmethod
    def load(
        cls,
        path: str | Path,
        hasher: Optional[FieldHasher] = None,
        strategy: str = "lazy",
        strict: bool = True,
        expected_depth: Optional[int] = None,
    ) -> "Accumulator":
        """Load a state file; later inserts are persisted back to the same path."""
        state = load_state(path)
        return cls.from_state(
            state,
            hasher=hasher,
            strategy=strategy,
            state_path=path,
            strict=strict,
            expected_depth=expected_depth,
        )

    def to_state(self) -> TreeState:
        """Snapshot the current state for the codec."""
        with self._lock:
            return TreeState(
                root=self._frontier.root,
                next_index=self._frontier.next_index,
                zero_hashes=list(self.zero_table.values),
                filled_subtrees=list(self._frontier.filled),
                leaves=dict(self._nodes.leaves),
            )

    def save(self, path: str | Path | None = None) -> Path:
        """
        Persist the current state atomically.

        Raises:
            ValueError: If no path is given and none is configured
        """
        target = Path(path) if path else self.state_path
        if target is None:
            raise ValueError("No state path configured")
        with self._lock:
            return save_state(target, self.to_state())

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    @property
    def capacity(self) -> int:
        return self._frontier.capacity

    @property
    def next_index(self) -> int:
        with self._lock:
            return self._frontier.next_index

    def get_root(self) -> int:
        with self._lock:
            return self._frontier.root

    def has_member(self, key: Any) -> bool:
        if not is_valid_member_key(key):
            return False
        with self._lock:
            return self._registry.contains(canonical_member_key(key))

    def lookup_index(self, key: Any) -> Optional[int]:
        """
        Leaf index of a member, or None.

        Raises:
            MalformedKeyException: If key is not a valid address
        """
        canonical = canonical_member_key(key)
        with self._lock:
            return self._registry.lookup(canonical)

    def get_proof(self, key: Any) -> Optional[ProofRecord]:
        """
        Inclusion proof for a member against the current root.

        Returns:
            The proof, or None when the member is not in the tree

        Raises:
            MalformedKeyException: If key is not a valid address
        """
        canonical = canonical_member_key(key)
        with self._lock:
            index = self._registry.lookup(canonical)
            if index is None:
                return None
            return self._strategy.prove_index(index)

    def prove_index(self, index: int) -> ProofRecord:
        """
        Inclusion proof for a leaf index.

        Raises:
            IndexOutOfRangeException: If index >= next_index or negative
        """
        with self._lock:
            return self._strategy.prove_index(index)

    def leaves(self) -> dict[int, int]:
        """Copy of the leaf set."""
        with self._lock:
            return dict(self._nodes.leaves)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "root": field_to_hex(self._frontier.root),
                "leafCount": self._frontier.next_index,
                "maxLeaves": self.capacity,
                "depth": self.depth,
                "hashBackend": self.hasher.name,
                "proofStrategy": self.strategy_name,
            }

    def warm_up(self) -> None:
        """Precompute proofs now when the strategy caches them."""
        with self._lock:
            self._strategy.warm()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert_members(self, keys: Iterable[Any], persist: bool = True) -> InsertResult:
        """
        Insert new members in the given order.

        Malformed keys and keys already present are skipped and reported.
        The capacity check covers the whole filtered batch before any leaf
        is inserted, so a CapacityExceededException leaves state unchanged.
        If persisting the new state fails, the batch is rolled back and the
        error propagates.

        Args:
            keys: Member addresses
            persist: Save to state_path afterwards (when configured)

        Raises:
            TypeError: If keys is a single string instead of an iterable
            CapacityExceededException: If the filtered batch does not fit
            OSError: If the state file cannot be written
        """
        if isinstance(keys, (str, bytes)):
            raise TypeError("insert_members expects an iterable of addresses, not a single string")

        with self._lock:
            malformed: list[str] = []
            duplicates: list[str] = []
            fresh: list[str] = []
            seen: set[str] = set()

            for raw in keys:
                try:
                    key = canonical_member_key(raw)
                except MalformedKeyException:
                    malformed.append(str(raw))
                    continue
                if key in seen or self._registry.contains(key):
                    duplicates.append(key)
                    continue
                seen.add(key)
                fresh.append(key)

            if len(fresh) > self._frontier.remaining:
                raise CapacityExceededException(
                    f"Batch of {len(fresh)} new members exceeds remaining capacity "
                    f"{self._frontier.remaining} of {self.capacity}",
                    capacity=self.capacity,
                    requested=self._frontier.next_index + len(fresh),
                )

            if fresh:
                snapshot = _InsertJournal(self._frontier, self._nodes)
                for key in fresh:
                    leaf = leaf_value_for_key(key)
                    index = self._frontier.insert(leaf, on_node=snapshot.set_node)
                    snapshot.set_node(0, index, leaf)
                    self._registry.register(key, index)

                self._strategy.invalidate()
                if persist and self.state_path is not None:
                    try:
                        self.save()
                    except BaseException:
                        snapshot.rollback(self._frontier, self._nodes)
                        for key in fresh:
                            self._registry.unregister(key)
                        self._strategy.invalidate()
                        logger.error(
                            f"Failed to persist {len(fresh)} new members to {self.state_path}; "
                            f"batch rolled back"
                        )
                        raise
                logger.info(
                    f"Inserted {len(fresh)} members "
                    f"(skipped {len(duplicates)} duplicates, {len(malformed)} malformed), "
                    f"root {field_to_hex(self._frontier.root)}"
                )

            return InsertResult(
                inserted_count=len(fresh),
                new_root=self._frontier.root,
                total_leaves=self._frontier.next_index,
                duplicate_keys=tuple(duplicates),
                malformed_keys=tuple(malformed),
            )


def open_accumulator(
    config: RuntimeConfig,
    strategy: Optional[str] = None,
    create: bool = True,
) -> Accumulator:
    """
    Load the accumulator named by the config, or start an empty one.

    An existing but corrupt state file is always an error; callers refuse to
    serve from a tree that does not match its commitment.

    Args:
        config: Runtime configuration (tree shape, backend, state path)
        strategy: Override config.tree.proof_strategy
        create: Start an empty tree when the state file is missing

    Raises:
        CorruptStateException: If the state file cannot be trusted, or it is
            missing and create is False
    """
    hasher = get_hasher(config.tree.hash_backend)
    strategy = strategy or config.tree.proof_strategy
    state_path = Path(config.storage.state_path)

    if state_path.exists():
        logger.info(f"Loading tree state from {state_path}")
        return Accumulator.load(
            state_path,
            hasher=hasher,
            strategy=strategy,
            strict=config.storage.strict_load,
            expected_depth=config.tree.depth,
        )
    if not create:
        raise CorruptStateException(f"State file not found: {state_path}", path=str(state_path))

    logger.warning(f"No state file at {state_path}; starting with an empty tree")
    return Accumulator(
        depth=config.tree.depth,
        hasher=hasher,
        strategy=strategy,
        state_path=state_path,
    )

__all__ = [
    "DEFAULT_TREE_DEPTH",
    "InsertResult",
    "Accumulator",
    "open_accumulator",
]
