"""
Module 01 - Schemas
File: __init__.py

Purpose: Export the error taxonomy and member-key rules.
This is the main entry point for other modules to import schema definitions.
"""

# Error models and exceptions
from .errors import (
    ErrorCodes,
    AccumulatorError,
    AccumulatorException,
    CapacityExceededException,
    IndexOutOfRangeException,
    MalformedKeyException,
    CorruptStateException,
)

# Member identifiers
from .members import (
    ADDRESS_PATTERN,
    is_valid_member_key,
    canonical_member_key,
    leaf_value_for_key,
    member_key_for_leaf,
)

__all__ = [
    # Errors
    "ErrorCodes",
    "AccumulatorError",
    "AccumulatorException",
    "CapacityExceededException",
    "IndexOutOfRangeException",
    "MalformedKeyException",
    "CorruptStateException",
    # Members
    "ADDRESS_PATTERN",
    "is_valid_member_key",
    "canonical_member_key",
    "leaf_value_for_key",
    "member_key_for_leaf",
]
