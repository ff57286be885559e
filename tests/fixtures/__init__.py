"""
Test fixtures package for the accumulator tests.

This package provides factory functions for creating test objects:
- trees.py: addresses, populated accumulators, dense reference roots

Usage:
    from fixtures import make_accumulator, make_addresses

    def test_something():
        acc = make_accumulator(depth=3, addresses=make_addresses(3))
"""

from .trees import (
    make_address,
    make_addresses,
    make_accumulator,
    reference_root,
)

__all__ = [
    "make_address",
    "make_addresses",
    "make_accumulator",
    "reference_root",
]
