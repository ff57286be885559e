"""
Core cryptographic utilities.

Module 02 provides field elements and the field hash combinator.
"""
from .field import (
    BN254_SCALAR_FIELD,
    MEMBER_ID_BITS,
    require_field_element,
    field_to_hex,
    field_from_hex,
    to_bytes32,
)
from .hashing import (
    sha256,
    FieldHasher,
    Sha256FieldHasher,
    PoseidonFieldHasher,
    HASH_BACKENDS,
    DEFAULT_HASH_BACKEND,
    get_hasher,
)

__all__ = [
    "BN254_SCALAR_FIELD",
    "MEMBER_ID_BITS",
    "require_field_element",
    "field_to_hex",
    "field_from_hex",
    "to_bytes32",
    "sha256",
    "FieldHasher",
    "Sha256FieldHasher",
    "PoseidonFieldHasher",
    "HASH_BACKENDS",
    "DEFAULT_HASH_BACKEND",
    "get_hasher",
]
