"""
Module 10 - Allowlist CLI

Command-line interface for the allowlist accumulator.

Usage:
    python -m allowlist_cli build addresses.csv --out tree_state.json
    python -m allowlist_cli prove 0x... --noir
    python -m allowlist_cli verify proof.json
    python -m allowlist_cli serve
"""

__version__ = "0.1.0"
