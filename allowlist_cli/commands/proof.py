"""
Module 10 - CLI Proof Commands

Export and check inclusion proofs:
- prove:  proof for one address (lazy, eager or recursive derivation)
- verify: replay a proof JSON file with the hash combinator

Usage:
    allowlist prove 0x... [--strategy lazy|eager|recursive] [--noir] [--out proof.json]
    allowlist verify proof.json [--root 0x...] [--against-state]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

from core.config.runtime import RuntimeConfig
from core.crypto.field import field_from_hex, field_to_hex
from core.crypto.hashing import get_hasher
from core.merkle.accumulator import open_accumulator
from core.merkle.proofs import (
    ProofRecord,
    compute_root_from_proof,
    derive_proof_from_leaves,
    verify_proof_record,
)
from core.merkle.registry import MembershipRegistry
from core.merkle.zero_hashes import ZeroHashTable
from core.schemas.errors import AccumulatorError, CorruptStateException, ErrorCodes
from core.schemas.members import canonical_member_key
from core.state.codec import load_state


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def _prove_recursive(config: RuntimeConfig, key: str) -> ProofRecord | None:
    """Derive a proof straight from the state file without node maps."""
    state = load_state(config.storage.state_path)
    hasher = get_hasher(config.tree.hash_backend)
    index = MembershipRegistry.from_leaves(state.leaves).lookup(key)
    if index is None:
        return None

    proof = derive_proof_from_leaves(
        state.leaves,
        ZeroHashTable.from_values(state.zero_hashes),
        hasher,
        index,
    )
    if proof.root != state.root:
        raise CorruptStateException(
            f"Root mismatch: persisted {field_to_hex(state.root)}, "
            f"derived {field_to_hex(proof.root)}",
            path=str(config.storage.state_path),
        )
    return proof


def prove_cmd(args: Namespace) -> int:
    """
    Print (or write) the inclusion proof for an address.

    Returns:
        0 on success, 2 if the address is not in the tree
    """
    config: RuntimeConfig = args.cli_config
    key = canonical_member_key(args.address)

    if args.strategy == "recursive":
        proof = _prove_recursive(config, key)
    else:
        acc = open_accumulator(config, strategy=args.strategy, create=False)
        proof = acc.get_proof(key)

    if proof is None:
        print(f"Address not found in the allowlist: {key}", file=sys.stderr)
        return EXIT_VERIFICATION_FAILED

    payload = proof.to_noir() if args.noir else proof.to_dict()
    text = json.dumps(payload, indent=2)

    if args.out:
        Path(args.out).write_text(text + "\n")
        print(f"Wrote proof for leaf {proof.index} to {args.out}")
    else:
        print(text)
    return EXIT_SUCCESS


def _load_proof(path: Path) -> ProofRecord:
    with open(path) as f:
        data: Any = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Proof file must contain a JSON object")
    return ProofRecord.from_dict(data)


def verify_cmd(args: Namespace) -> int:
    """
    Replay a proof and compare the result with the expected root.

    The expected root is --root when given, the current state root with
    --against-state, and otherwise the root recorded in the proof itself.

    Returns:
        0 if the proof verifies, 2 if it does not
    """
    config: RuntimeConfig = args.cli_config
    proof_path = Path(args.proof)
    if not proof_path.exists():
        print(f"Error: Proof file not found: {proof_path}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        proof = _load_proof(proof_path)
    except ValueError as e:
        print(f"Error: Invalid proof file: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    hasher = get_hasher(config.tree.hash_backend)
    expected_root = proof.root
    if args.root:
        expected_root = field_from_hex(args.root)
    elif args.against_state:
        expected_root = open_accumulator(config, create=False).get_root()

    ok = verify_proof_record(proof, hasher) and proof.root == expected_root
    result = {
        "ok": ok,
        "index": proof.index,
        "leaf": field_to_hex(proof.leaf),
        "expected_root": field_to_hex(expected_root),
    }
    try:
        result["computed_root"] = field_to_hex(compute_root_from_proof(proof, hasher))
    except ValueError:
        result["computed_root"] = None
    if not ok:
        result["error"] = AccumulatorError(
            code=ErrorCodes.PROOF_INVALID,
            message="Proof does not reproduce the expected root",
            details={"index": proof.index},
        ).model_dump()

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        status = "VALID" if ok else "INVALID"
        print(f"Proof for leaf {proof.index}: {status}")
        print(f"  expected root: {result['expected_root']}")
        print(f"  computed root: {result['computed_root']}")

    return EXIT_SUCCESS if ok else EXIT_VERIFICATION_FAILED
