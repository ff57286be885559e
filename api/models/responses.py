"""
Module 09 - API Response Models

Pydantic models for API response serialization.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "allowlist-accumulator-api"
    version: str = "v1"


class RootResponse(BaseModel):
    """Response for GET /root endpoint."""

    root: str = Field(..., description="Current Merkle root as 0x-prefixed hex")


class ProofResponse(BaseModel):
    """Response for GET /proof/{address} endpoint."""

    siblings: list[str] = Field(..., description="Sibling hashes, leaf level first")
    indices: list[int] = Field(..., description="Direction bits; 1 means the node is a right child")
    root: str = Field(..., description="Root the proof verifies against")
    leaf: str = Field(..., description="Leaf value as hex")
    index: int = Field(..., ge=0, description="Leaf position")


class MemberResponse(BaseModel):
    """Response for GET /members/{address} endpoint."""

    address: str
    member: bool


class AddAddressesResponse(BaseModel):
    """Response for POST /addresses endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    inserted: int = Field(..., ge=0)
    new_root: str = Field(..., alias="newRoot")
    total_leaves: int = Field(..., ge=0, alias="totalLeaves")
    skipped_duplicates: int = Field(default=0, ge=0, alias="skippedDuplicates")


class StatsResponse(BaseModel):
    """Response for GET /stats endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    root: str
    leaf_count: int = Field(..., ge=0, alias="leafCount")
    max_leaves: int = Field(..., ge=1, alias="maxLeaves")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")
