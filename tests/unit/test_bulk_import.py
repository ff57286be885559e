"""
Module 05 - Bulk Import Unit Tests
Tests for core/merkle/bulk_import.py
"""
import pytest

from core.merkle.bulk_import import bulk_import, iter_addresses_from_file
from core.schemas.errors import CapacityExceededException

from fixtures import make_accumulator, make_address, make_addresses


class TestIterAddresses:
    """Tests for reading address list files."""

    def test_plain_list(self, tmp_path):
        path = tmp_path / "list.txt"
        path.write_text("\n".join(make_addresses(3)) + "\n")

        assert list(iter_addresses_from_file(path)) == make_addresses(3)

    def test_csv_with_header_and_blanks(self, tmp_path):
        path = tmp_path / "list.csv"
        path.write_text(
            "address,amount\n"
            f"{make_address(1)},10\n"
            "\n"
            f"  {make_address(2)} , 20\n"
            "# comment\n"
        )

        assert list(iter_addresses_from_file(path)) == [make_address(1), make_address(2)]

    def test_malformed_0x_lines_are_passed_through(self, tmp_path):
        path = tmp_path / "list.txt"
        path.write_text("0x1234\n")

        assert list(iter_addresses_from_file(path)) == ["0x1234"]


class TestBulkImport:
    """Tests for chunked insertion."""

    def test_same_root_as_single_batch(self):
        keys = make_addresses(25)
        reference = make_accumulator(depth=5, addresses=keys)
        acc = make_accumulator(depth=5)

        report = bulk_import(acc, keys, chunk_size=4)

        assert report.inserted == 25
        assert report.root == reference.get_root() == acc.get_root()

    def test_counts_duplicates_and_malformed(self):
        acc = make_accumulator(depth=4)
        keys = [make_address(1), make_address(1), "0xzz", make_address(2)]

        report = bulk_import(acc, keys, chunk_size=2)

        assert report.inserted == 2
        assert report.skipped_duplicates == 1
        assert report.malformed == 1

    def test_does_not_persist(self, state_file):
        acc = make_accumulator(depth=4, state_path=state_file)
        bulk_import(acc, make_addresses(3))
        assert not state_file.exists()

    def test_progress_callback_per_chunk(self):
        acc = make_accumulator(depth=4)
        calls = []

        bulk_import(acc, make_addresses(5), chunk_size=2, on_progress=lambda n, t: calls.append(n))

        assert calls == [2, 4, 5]

    def test_rate(self):
        report = bulk_import(make_accumulator(depth=4), make_addresses(3))
        assert report.rate >= 0.0

    def test_capacity_keeps_earlier_chunks(self):
        acc = make_accumulator(depth=2)

        with pytest.raises(CapacityExceededException):
            bulk_import(acc, make_addresses(6), chunk_size=3)

        assert acc.next_index == 3

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError, match="chunk_size"):
            bulk_import(make_accumulator(depth=2), [], chunk_size=0)
