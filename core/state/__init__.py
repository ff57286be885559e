"""
Module 04 - Tree State Persistence

Usage:
    from core.state import load_state, save_state

    state = load_state("tree_state.json")
    save_state("tree_state.json", state)
"""
from .codec import (
    TreeState,
    TreeStateFile,
    encode_state,
    decode_state,
    save_state,
    load_state,
)

__all__ = [
    "TreeState",
    "TreeStateFile",
    "encode_state",
    "decode_state",
    "save_state",
    "load_state",
]
