"""
Module 03 - Fixed-Depth Merkle Accumulator
Append-only sparse Merkle tree with inclusion proofs for ZK circuits.

Owner: Protocol/Crypto Engineer
Module ID: M03

This module provides:
- ZeroHashTable / build_zero_hashes: empty-subtree hashes per level
- FrontierInserter: O(depth) appends
- SparseNodeMaps / rebuild_sparse_tree / SubtreeResolver: sparse node storage
- ProofRecord and the lazy / eager proof strategies
- MembershipRegistry: member key -> leaf index
- Accumulator: the owned aggregate exposing the engine operations

Commitment Rules:
1. Leaf: the 160-bit address as a field element (zero-extended)
2. Parent: H(left, right) with the configured field hasher
3. Empty subtree at level l: zero[l], zero[0] = 0
4. Empty tree: root = zero[depth]
5. Leaves are appended in insertion order; order is part of the root

Usage:
    from core.merkle import Accumulator, verify_proof_record

    acc = Accumulator(depth=21)
    acc.insert_members(["0x1111111111111111111111111111111111111111"])
    proof = acc.get_proof("0x1111111111111111111111111111111111111111")
    assert verify_proof_record(proof, acc.hasher)
"""
from .zero_hashes import (
    EMPTY_LEAF,
    ZeroHashTable,
    build_zero_hashes,
)
from .frontier import (
    BatchResult,
    FrontierInserter,
)
from .sparse_tree import (
    SparseNodeMaps,
    rebuild_sparse_tree,
    SubtreeResolver,
)
from .proofs import (
    ProofRecord,
    walk_proof,
    ProofStrategy,
    LazyProofStrategy,
    EagerProofStrategy,
    make_proof_strategy,
    derive_proof_from_leaves,
    compute_root_from_proof,
    verify_proof_record,
)
from .registry import MembershipRegistry
from .accumulator import (
    DEFAULT_TREE_DEPTH,
    InsertResult,
    Accumulator,
    open_accumulator,
)


__all__ = [
    # Zero hashes
    "EMPTY_LEAF",
    "ZeroHashTable",
    "build_zero_hashes",
    # Insertion
    "BatchResult",
    "FrontierInserter",
    # Sparse storage
    "SparseNodeMaps",
    "rebuild_sparse_tree",
    "SubtreeResolver",
    # Proofs
    "ProofRecord",
    "walk_proof",
    "ProofStrategy",
    "LazyProofStrategy",
    "EagerProofStrategy",
    "make_proof_strategy",
    "derive_proof_from_leaves",
    "compute_root_from_proof",
    "verify_proof_record",
    # Registry and service
    "MembershipRegistry",
    "DEFAULT_TREE_DEPTH",
    "InsertResult",
    "Accumulator",
    "open_accumulator",
]
