"""API request and response models."""

from api.models.requests import AddAddressesRequest
from api.models.responses import (
    HealthResponse,
    RootResponse,
    ProofResponse,
    MemberResponse,
    AddAddressesResponse,
    StatsResponse,
    ErrorDetail,
    ErrorResponse,
)

__all__ = [
    "AddAddressesRequest",
    "HealthResponse",
    "RootResponse",
    "ProofResponse",
    "MemberResponse",
    "AddAddressesResponse",
    "StatsResponse",
    "ErrorDetail",
    "ErrorResponse",
]
