"""
Module 03 - Membership Registry
Reverse index from canonical member key to leaf index.

Invariant: one key maps to at most one index. Registering a key twice is a
caller error; the batch insert filters duplicates before it gets here.
"""
from __future__ import annotations

from typing import Iterator, Mapping, Optional

from core.schemas.members import member_key_for_leaf


class MembershipRegistry:
    """Mapping member key -> leaf index."""

    def __init__(self) -> None:
        self._index_by_key: dict[str, int] = {}

    def register(self, key: str, index: int) -> None:
        """
        Record that key occupies leaf index.

        Raises:
            ValueError: If key is already registered
        """
        existing = self._index_by_key.get(key)
        if existing is not None:
            raise ValueError(f"Member {key} already registered at index {existing}")
        self._index_by_key[key] = index

    def unregister(self, key: str) -> None:
        self._index_by_key.pop(key, None)

    def lookup(self, key: str) -> Optional[int]:
        return self._index_by_key.get(key)

    def contains(self, key: str) -> bool:
        return key in self._index_by_key

    def __contains__(self, key: object) -> bool:
        return key in self._index_by_key

    def __len__(self) -> int:
        return len(self._index_by_key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._index_by_key)

    @classmethod
    def from_leaves(cls, leaf_set: Mapping[int, int]) -> "MembershipRegistry":
        """
        Rebuild the registry from a leaf set.

        Raises:
            ValueError: If two leaves carry the same member key
        """
        registry = cls()
        for index in sorted(leaf_set):
            registry.register(member_key_for_leaf(leaf_set[index]), index)
        return registry


__all__ = ["MembershipRegistry"]
