"""
Module 01 - Schemas
File: errors.py

Purpose: Standard error taxonomy for the accumulator engine.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.

Severity:
- CAPACITY_EXCEEDED and CORRUPT_STATE are fatal to the operation attempted
  (a batch insert aborts, a process refuses to start).
- MEMBER_NOT_FOUND, INDEX_OUT_OF_RANGE and MALFORMED_KEY are ordinary
  negative results reported to the caller.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the engine."""

    # Tree mutation
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"

    # Queries
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"

    # Input validation
    MALFORMED_KEY = "MALFORMED_KEY"

    # Persistence
    CORRUPT_STATE = "CORRUPT_STATE"

    # Proof replay
    PROOF_INVALID = "PROOF_INVALID"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class AccumulatorError(BaseModel):
    """
    Base error model for structured error communication.

    Reports a failure as data, e.g. an invalid proof in CLI JSON output.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.CAPACITY_EXCEEDED],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class AccumulatorException(Exception):
    """
    Base exception for all accumulator errors.

    Carries a stable code and structured details.
    """

    def __init__(
        self,
        message: str,
        code: str = "ACCUMULATOR_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CapacityExceededException(AccumulatorException):
    """Raised when an insertion would exceed the 2^depth leaf capacity."""

    def __init__(
        self,
        message: str,
        capacity: int | None = None,
        requested: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if capacity is not None:
            full_details["capacity"] = capacity
        if requested is not None:
            full_details["requested"] = requested
        super().__init__(
            message=message,
            code=ErrorCodes.CAPACITY_EXCEEDED,
            details=full_details,
            retryable=False,
        )


class IndexOutOfRangeException(AccumulatorException):
    """Raised when a leaf index at or beyond next_index is requested."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        next_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if index is not None:
            full_details["index"] = index
        if next_index is not None:
            full_details["next_index"] = next_index
        super().__init__(
            message=message,
            code=ErrorCodes.INDEX_OUT_OF_RANGE,
            details=full_details,
            retryable=False,
        )


class MalformedKeyException(AccumulatorException):
    """Raised when a member identifier fails canonical-format validation."""

    def __init__(
        self,
        message: str,
        raw_key: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if raw_key is not None:
            full_details["raw_key"] = str(raw_key)[:80]
        super().__init__(
            message=message,
            code=ErrorCodes.MALFORMED_KEY,
            details=full_details,
            retryable=False,
        )


class CorruptStateException(AccumulatorException):
    """Raised when a persisted state file is missing, unparseable or inconsistent."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if path:
            full_details["path"] = path
        super().__init__(
            message=message,
            code=ErrorCodes.CORRUPT_STATE,
            details=full_details,
            retryable=False,
        )
