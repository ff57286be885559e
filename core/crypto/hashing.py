"""
Module 02 - Field Hash Combinator
Two-to-one compression functions over a prime field.

Owner: Protocol/Crypto Engineer
Module ID: M02

Every tree computation (zero hashes, frontier inserts, sparse rebuilds,
proof replay) is expressed through a FieldHasher. Backends:

- "sha256" (default): H(l, r) = int(sha256(be32(l) || be32(r))) mod p
  over the BN254 scalar field.
- "poseidon": circomlib-compatible Poseidon (t = 3) over the BN254 scalar
  field, provided by the light-poseidon package (install the "poseidon"
  extra). Roots and proofs match circomlibjs builders and BN254 circuits.

Determinism Notes:
- Backends are pure functions of their two inputs
- Inputs outside the field are rejected, never reduced silently
- A state file built with one backend cannot be served with another;
  strict loading detects this through the zero-hash table
"""
from __future__ import annotations

import hashlib
import threading
from abc import ABC, abstractmethod

from core.crypto.field import (
    BN254_SCALAR_FIELD,
    require_field_element,
    to_bytes32,
)


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


class FieldHasher(ABC):
    """
    Collision-resistant two-to-one compression over a prime field.

    Subclasses set ``name`` and ``modulus`` and implement ``_compress``.
    ``hash`` validates both inputs before compressing.
    """

    name: str = ""
    modulus: int = 0

    def hash(self, left: int, right: int) -> int:
        """
        Compress two field elements into one.

        Raises:
            ValueError: If either input is outside the field
        """
        require_field_element(left, self.modulus)
        require_field_element(right, self.modulus)
        return self._compress(left, right)

    @abstractmethod
    def _compress(self, left: int, right: int) -> int:
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class Sha256FieldHasher(FieldHasher):
    """SHA-256 of the 64-byte concatenation, reduced into the BN254 scalar field."""

    name = "sha256"
    modulus = BN254_SCALAR_FIELD

    def _compress(self, left: int, right: int) -> int:
        digest = sha256(to_bytes32(left) + to_bytes32(right))
        return int.from_bytes(digest, "big") % self.modulus


class PoseidonFieldHasher(FieldHasher):
    """
    Circom Poseidon of two BN254 elements (light-poseidon).

    The native hasher keeps mutable sponge state, so calls are serialized.
    """

    name = "poseidon"
    modulus = BN254_SCALAR_FIELD

    def __init__(self) -> None:
        try:
            from light_poseidon_python import Hasher
        except ImportError as e:
            raise RuntimeError(
                "The poseidon hash backend requires the light-poseidon package "
                "(pip install 'allowlist-accumulator[poseidon]')"
            ) from e
        self._hasher = Hasher(2)
        self._lock = threading.Lock()

    def _compress(self, left: int, right: int) -> int:
        with self._lock:
            digest = self._hasher.hash_bytes_be([to_bytes32(left), to_bytes32(right)])
        return int(digest, 16)


HASH_BACKENDS: dict[str, type[FieldHasher]] = {
    Sha256FieldHasher.name: Sha256FieldHasher,
    PoseidonFieldHasher.name: PoseidonFieldHasher,
}

DEFAULT_HASH_BACKEND = Sha256FieldHasher.name


def get_hasher(name: str = DEFAULT_HASH_BACKEND) -> FieldHasher:
    """
    Instantiate a hash backend by name.

    Raises:
        ValueError: If the backend name is unknown
    """
    key = (name or DEFAULT_HASH_BACKEND).lower()
    if key not in HASH_BACKENDS:
        raise ValueError(
            f"Unknown hash backend {name!r}; expected one of {sorted(HASH_BACKENDS)}"
        )
    return HASH_BACKENDS[key]()


__all__ = [
    "sha256",
    "FieldHasher",
    "Sha256FieldHasher",
    "PoseidonFieldHasher",
    "HASH_BACKENDS",
    "DEFAULT_HASH_BACKEND",
    "get_hasher",
]
