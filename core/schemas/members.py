"""
Module 01 - Schemas
File: members.py

Purpose: Canonical member identifiers and their leaf values.

A member is a 20-byte address written as "0x" + 40 hex characters.
The canonical key is the lowercase form; the leaf value is the address
read as an unsigned integer (zero-extended into the field).
"""

import re
from typing import Any

from core.schemas.errors import MalformedKeyException

# 0x followed by 40 hex chars = 20 bytes
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_member_key(raw: Any) -> bool:
    """Check whether raw is a well-formed address string."""
    return isinstance(raw, str) and ADDRESS_PATTERN.match(raw.strip()) is not None


def canonical_member_key(raw: Any) -> str:
    """
    Validate and normalize a member identifier.

    Surrounding whitespace is stripped; hex digits are lowercased.

    Raises:
        MalformedKeyException: If raw is not "0x" + 40 hex characters
    """
    if not is_valid_member_key(raw):
        raise MalformedKeyException(
            f"Invalid address format: {str(raw)[:50]!r}",
            raw_key=raw,
        )
    return raw.strip().lower()


def leaf_value_for_key(key: str) -> int:
    """Leaf value of a canonical member key."""
    return int(key, 16)


def member_key_for_leaf(value: int) -> str:
    """Canonical member key for a leaf value (zero padded to 40 hex chars)."""
    return "0x" + format(value, "040x")


__all__ = [
    "ADDRESS_PATTERN",
    "is_valid_member_key",
    "canonical_member_key",
    "leaf_value_for_key",
    "member_key_for_leaf",
]
