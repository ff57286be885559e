"""
Module 09 - Owner Routes

Owner-only endpoints guarded by the X-API-Key header.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_accumulator, require_owner
from api.errors import CapacityExceededError, InvalidRequestError
from api.models.requests import AddAddressesRequest
from api.models.responses import AddAddressesResponse, StatsResponse
from core.crypto.field import field_to_hex
from core.merkle.accumulator import Accumulator
from core.schemas.errors import CapacityExceededException
from core.schemas.members import is_valid_member_key


logger = logging.getLogger(__name__)

router = APIRouter(tags=["owner"], dependencies=[Depends(require_owner)])

# Number of offending entries echoed back in a 400 response
MAX_REPORTED = 10


@router.post("/addresses", response_model=AddAddressesResponse, response_model_by_alias=True)
async def add_addresses(
    request: AddAddressesRequest,
    acc: Accumulator = Depends(get_accumulator),
) -> AddAddressesResponse:
    """
    Append new addresses in the order given.

    The whole request is rejected if any entry is malformed. Addresses
    already in the tree are skipped and counted.

    Errors:
        400 INVALID_REQUEST: malformed entries, or nothing new to insert
        409 CAPACITY_EXCEEDED: the new addresses do not fit
    """
    invalid = [a for a in request.addresses if not is_valid_member_key(a)]
    if invalid:
        raise InvalidRequestError(
            "Invalid address format",
            details={"invalidAddresses": [str(a) for a in invalid[:MAX_REPORTED]]},
        )

    logger.info(f"Adding up to {len(request.addresses)} addresses")
    try:
        result = acc.insert_members(request.addresses)
    except CapacityExceededException as e:
        raise CapacityExceededError(e.message, details=e.details) from e

    if result.inserted_count == 0:
        raise InvalidRequestError(
            "No new addresses to add",
            details={"duplicateAddresses": list(result.duplicate_keys[:MAX_REPORTED])},
        )

    return AddAddressesResponse(
        success=True,
        inserted=result.inserted_count,
        new_root=field_to_hex(result.new_root),
        total_leaves=result.total_leaves,
        skipped_duplicates=result.skipped_duplicates,
    )


@router.get("/stats", response_model=StatsResponse, response_model_by_alias=True)
async def get_stats(acc: Accumulator = Depends(get_accumulator)) -> StatsResponse:
    """Root, leaf count and capacity."""
    stats = acc.stats()
    return StatsResponse(
        root=stats["root"],
        leaf_count=stats["leafCount"],
        max_leaves=stats["maxLeaves"],
    )
