"""
Module 03 - Frontier Insertion Unit Tests
Tests for core/merkle/frontier.py

1. Empty tree root is zero[depth]
2. Incremental roots match a dense reference tree
3. Raw inserts are registry-unaware (duplicates become two leaves)
4. Capacity boundary
5. Restoring a frontier continues identically
"""
import pytest

from core.merkle.frontier import FrontierInserter
from core.merkle.zero_hashes import build_zero_hashes
from core.schemas.errors import CapacityExceededException, ErrorCodes

from fixtures import reference_root


class TestEmptyFrontier:
    """Tests for a freshly created frontier."""

    def test_empty_root_is_zero_depth(self, zero_table_d3, hasher):
        frontier = FrontierInserter(zero_table_d3, hasher)

        assert frontier.root == zero_table_d3[3]
        assert frontier.next_index == 0
        assert frontier.remaining == 8
        assert not frontier.is_full

    def test_initial_frontier_is_zero_prefix(self, zero_table_d3, hasher):
        frontier = FrontierInserter(zero_table_d3, hasher)
        assert frontier.filled == list(zero_table_d3)[:3]

    def test_rejects_wrong_frontier_length(self, zero_table_d3, hasher):
        with pytest.raises(ValueError, match="Frontier must have 3 entries"):
            FrontierInserter(zero_table_d3, hasher, filled=[0, 0])

    def test_rejects_next_index_beyond_capacity(self, zero_table_d3, hasher):
        with pytest.raises(ValueError):
            FrontierInserter(zero_table_d3, hasher, next_index=9)


class TestInsert:
    """Tests for single-leaf appends."""

    def test_returns_sequential_indices(self, zero_table_d3, hasher):
        frontier = FrontierInserter(zero_table_d3, hasher)
        assert [frontier.insert(v) for v in (5, 9, 2)] == [0, 1, 2]
        assert frontier.next_index == 3

    def test_three_leaf_root(self, zero_table_d3, hasher):
        """Root after [5, 9, 2] at depth 3 matches the hand-computed value."""
        frontier = FrontierInserter(zero_table_d3, hasher)
        for value in (5, 9, 2):
            frontier.insert(value)

        h = hasher.hash
        expected = h(h(h(5, 9), h(2, 0)), zero_table_d3[2])
        assert frontier.root == expected

    @pytest.mark.parametrize("count", [1, 2, 3, 5, 8])
    def test_root_matches_dense_reference(self, hasher, count):
        zeros = build_zero_hashes(3, hasher)
        frontier = FrontierInserter(zeros, hasher)
        values = [100 + i for i in range(count)]

        for value in values:
            frontier.insert(value)

        assert frontier.root == reference_root(values, 3, hasher)

    def test_order_sensitive(self, zero_table_d3, hasher):
        a = FrontierInserter(zero_table_d3, hasher)
        b = FrontierInserter(zero_table_d3, hasher)
        for value in (1, 2):
            a.insert(value)
        for value in (2, 1):
            b.insert(value)

        assert a.root != b.root

    def test_duplicate_values_create_two_leaves(self, zero_table_d3, hasher):
        """The raw primitive has no registry: a repeated value is a new leaf."""
        frontier = FrontierInserter(zero_table_d3, hasher)
        frontier.insert(7)
        frontier.insert(7)

        assert frontier.next_index == 2
        assert frontier.root == reference_root([7, 7], 3, hasher)

    def test_on_node_reports_every_ancestor(self, zero_table_d3, hasher):
        seen = []
        frontier = FrontierInserter(zero_table_d3, hasher)
        frontier.insert(5)
        frontier.insert(9, on_node=lambda level, index, value: seen.append((level, index, value)))

        assert [(level, index) for level, index, _ in seen] == [(1, 0), (2, 0), (3, 0)]
        assert seen[0][2] == hasher.hash(5, 9)
        assert seen[-1][2] == frontier.root


class TestBatch:
    """Tests for insert_batch."""

    def test_batch_equals_sequential(self, zero_table_d3, hasher):
        one = FrontierInserter(zero_table_d3, hasher)
        two = FrontierInserter(zero_table_d3, hasher)

        result = one.insert_batch([3, 4, 5])
        for value in (3, 4, 5):
            two.insert(value)

        assert result.inserted_count == 3
        assert result.new_root == two.root == one.root
        assert one.filled == two.filled


class TestCapacity:
    """Tests for the 2^depth leaf limit."""

    def test_last_slot_succeeds_then_full(self, hasher):
        zeros = build_zero_hashes(2, hasher)
        frontier = FrontierInserter(zeros, hasher)

        for value in range(1, 5):
            frontier.insert(value)

        assert frontier.is_full
        assert frontier.root == reference_root([1, 2, 3, 4], 2, hasher)

    def test_insert_when_full_raises_and_keeps_state(self, hasher):
        zeros = build_zero_hashes(2, hasher)
        frontier = FrontierInserter(zeros, hasher)
        frontier.insert_batch([1, 2, 3, 4])
        root, filled = frontier.root, list(frontier.filled)

        with pytest.raises(CapacityExceededException) as exc_info:
            frontier.insert(5)

        assert exc_info.value.code == ErrorCodes.CAPACITY_EXCEEDED
        assert exc_info.value.details["capacity"] == 4
        assert frontier.root == root
        assert frontier.filled == filled
        assert frontier.next_index == 4


class TestRestore:
    """Tests for resuming from a persisted frontier."""

    def test_restored_frontier_continues_identically(self, zero_table_d3, hasher):
        original = FrontierInserter(zero_table_d3, hasher)
        original.insert_batch([11, 12, 13])

        restored = FrontierInserter(
            zero_table_d3,
            hasher,
            filled=original.filled,
            next_index=original.next_index,
            root=original.root,
        )
        original.insert(14)
        restored.insert(14)

        assert restored.root == original.root
        assert restored.filled == original.filled
