"""
Module 09 - Proof Routes

Public read endpoints: current root, membership and inclusion proofs.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_accumulator
from api.errors import InvalidAddressError, MemberNotFoundError
from api.models.responses import MemberResponse, ProofResponse, RootResponse
from core.crypto.field import field_to_hex
from core.merkle.accumulator import Accumulator
from core.schemas.members import is_valid_member_key


logger = logging.getLogger(__name__)

router = APIRouter(tags=["proofs"])


@router.get("/root", response_model=RootResponse)
async def get_root(acc: Accumulator = Depends(get_accumulator)) -> RootResponse:
    """Current Merkle root."""
    return RootResponse(root=field_to_hex(acc.get_root()))


@router.get("/proof/{address}", response_model=ProofResponse)
async def get_proof(address: str, acc: Accumulator = Depends(get_accumulator)) -> ProofResponse:
    """
    Inclusion proof for an address against the current root.

    Errors:
        400 INVALID_ADDRESS: address is not 0x + 40 hex digits
        404 MEMBER_NOT_FOUND: address is not in the tree
    """
    if not is_valid_member_key(address):
        raise InvalidAddressError(address)

    proof = acc.get_proof(address)
    if proof is None:
        raise MemberNotFoundError(address)

    logger.debug(f"Served proof for leaf {proof.index}")
    return ProofResponse(**proof.to_dict())


@router.get("/members/{address}", response_model=MemberResponse)
async def check_member(address: str, acc: Accumulator = Depends(get_accumulator)) -> MemberResponse:
    """Whether an address is in the tree (malformed addresses are not)."""
    return MemberResponse(address=address, member=acc.has_member(address))
