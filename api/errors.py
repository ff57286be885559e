"""
Module 09 - API Error Handling

Standardized error handling for the API.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorResponse, ErrorDetail
from core.schemas.errors import AccumulatorException, ErrorCodes


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


class InvalidAddressError(APIError):
    """Path or body address does not match 0x + 40 hex digits."""

    def __init__(self, address: str):
        super().__init__(
            code="INVALID_ADDRESS",
            message="Invalid Ethereum address format",
            status_code=400,
            details={"address": address},
        )


class MemberNotFoundError(APIError):
    """Address is not in the tree."""

    def __init__(self, address: str):
        super().__init__(
            code=ErrorCodes.MEMBER_NOT_FOUND,
            message="Address not found in the allowlist",
            status_code=404,
            details={"address": address},
        )


class UnauthorizedError(APIError):
    """Owner-only endpoint called without a valid API key."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class CapacityExceededError(APIError):
    """The tree cannot take the requested batch."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCodes.CAPACITY_EXCEEDED,
            message=message,
            status_code=409,
            details=details,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def accumulator_error_handler(request: Request, exc: AccumulatorException) -> JSONResponse:
    """Handle engine exceptions that escaped a route."""
    status_code = 409 if exc.code == ErrorCodes.CAPACITY_EXCEEDED else 400
    if exc.code == ErrorCodes.CORRUPT_STATE:
        status_code = 500
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(code=exc.code, message=exc.message, details=exc.details),
        ).model_dump(),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
