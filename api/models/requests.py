"""
Module 09 - API Request Models

Pydantic models for API request validation.
"""

from typing import Any

from pydantic import BaseModel, Field


class AddAddressesRequest(BaseModel):
    """Request body for POST /addresses endpoint."""

    addresses: list[Any] = Field(
        ...,
        description="Addresses to append, in insertion order",
    )
