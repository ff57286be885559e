"""
Module 02 - Field Elements
Prime-field element helpers shared by every tree component.

Owner: Protocol/Crypto Engineer
Module ID: M02

Field elements are plain Python ints in [0, p). This module provides:
- Field moduli for the supported hash backends
- Range validation
- The fixed textual encoding used by the state file and proof exports
  ("0x" + lowercase hex, no zero padding)
"""
from __future__ import annotations


# BN254 scalar field (the native field of circom/Noir circuits)
BN254_SCALAR_FIELD: int = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001

# Leaves are zero-extended 160-bit member identifiers
MEMBER_ID_BITS: int = 160


def require_field_element(value: int, modulus: int) -> int:
    """
    Validate that value is a canonical element of the field.

    Raises:
        TypeError: If value is not an int (bool is rejected too)
        ValueError: If value is outside [0, modulus)
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"Field element must be an int, got {type(value).__name__}")
    if value < 0 or value >= modulus:
        raise ValueError(f"Value {value:#x} is not an element of the field (modulus {modulus:#x})")
    return value


def field_to_hex(value: int) -> str:
    """
    Encode a field element as "0x" + lowercase hex without padding.

    Example:
        >>> field_to_hex(255)
        '0xff'
        >>> field_to_hex(0)
        '0x0'
    """
    if value < 0:
        raise ValueError(f"Cannot encode negative value {value}")
    return "0x" + format(value, "x")


def field_from_hex(hex_string: str) -> int:
    """
    Decode a "0x"-prefixed hex string into an int.

    Any case and any amount of zero padding is accepted.

    Raises:
        ValueError: If the prefix is missing or the digits are not hex
    """
    if not isinstance(hex_string, str) or not hex_string.startswith(("0x", "0X")):
        raise ValueError(f"Hex string must start with '0x' prefix, got: {str(hex_string)[:12]!r}")
    digits = hex_string[2:]
    if not digits:
        raise ValueError("Hex string has no digits after 0x prefix")
    try:
        return int(digits, 16)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {hex_string[:20]!r}") from e


def to_bytes32(value: int) -> bytes:
    """Big-endian 32-byte encoding of a field element."""
    return value.to_bytes(32, "big")


__all__ = [
    "BN254_SCALAR_FIELD",
    "MEMBER_ID_BITS",
    "require_field_element",
    "field_to_hex",
    "field_from_hex",
    "to_bytes32",
]
