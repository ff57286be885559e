"""
Module 01 - Member Keys and Registry Unit Tests
Tests for core/schemas/members.py and core/merkle/registry.py
"""
import pytest

from core.merkle.registry import MembershipRegistry
from core.schemas.errors import ErrorCodes, MalformedKeyException
from core.schemas.members import (
    canonical_member_key,
    is_valid_member_key,
    leaf_value_for_key,
    member_key_for_leaf,
)

ADDRESS = "0x" + "aB" * 20


class TestMemberKeys:
    """Tests for address validation and canonicalization."""

    def test_valid_address(self):
        assert is_valid_member_key(ADDRESS)

    @pytest.mark.parametrize(
        "raw",
        [
            "0x" + "a" * 39,
            "0x" + "a" * 41,
            "a" * 40,
            "0x" + "g" * 40,
            "",
            None,
            123,
        ],
    )
    def test_invalid_addresses(self, raw):
        assert not is_valid_member_key(raw)

    def test_canonical_is_lowercase_and_trimmed(self):
        assert canonical_member_key(f"  {ADDRESS}\n") == ADDRESS.lower()

    def test_canonical_rejects_malformed(self):
        with pytest.raises(MalformedKeyException) as exc_info:
            canonical_member_key("0x1234")

        assert exc_info.value.code == ErrorCodes.MALFORMED_KEY
        assert exc_info.value.details["raw_key"] == "0x1234"

    def test_leaf_value_round_trip(self):
        key = canonical_member_key(ADDRESS)
        value = leaf_value_for_key(key)

        assert value == int(ADDRESS, 16)
        assert member_key_for_leaf(value) == key

    def test_member_key_for_small_leaf_is_padded(self):
        assert member_key_for_leaf(5) == "0x" + "0" * 39 + "5"


class TestMembershipRegistry:
    """Tests for the key -> index map."""

    def test_register_and_lookup(self):
        registry = MembershipRegistry()
        registry.register("0xaa", 0)

        assert registry.lookup("0xaa") == 0
        assert registry.contains("0xaa")
        assert "0xaa" in registry
        assert len(registry) == 1

    def test_missing_key(self):
        registry = MembershipRegistry()
        assert registry.lookup("0xaa") is None
        assert "0xaa" not in registry

    def test_register_twice_raises(self):
        registry = MembershipRegistry()
        registry.register("0xaa", 0)

        with pytest.raises(ValueError, match="already registered"):
            registry.register("0xaa", 1)

    def test_from_leaves(self):
        registry = MembershipRegistry.from_leaves({0: 5, 1: 9})

        assert registry.lookup(member_key_for_leaf(5)) == 0
        assert registry.lookup(member_key_for_leaf(9)) == 1
        assert list(registry) == [member_key_for_leaf(5), member_key_for_leaf(9)]

    def test_from_leaves_rejects_duplicate_members(self):
        with pytest.raises(ValueError):
            MembershipRegistry.from_leaves({0: 5, 1: 5})
