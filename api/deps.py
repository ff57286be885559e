"""
Module 09 - API Dependencies

Dependency injection for the API.
Provides the per-app accumulator, the runtime config and the owner check.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Header, Request

from api.errors import UnauthorizedError
from core.config.runtime import RuntimeConfig
from core.merkle.accumulator import Accumulator, open_accumulator

logger = logging.getLogger(__name__)


def load_runtime_config() -> RuntimeConfig:
    """Load RuntimeConfig from the config search path, then overlay environment variables.

    Search order for config file:
      1. ./allowlist.json
      2. ./.allowlist.json
      3. ~/.config/allowlist/config.json

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    return RuntimeConfig.load()


def get_accumulator(request: Request) -> Accumulator:
    """The accumulator owned by this app instance."""
    return request.app.state.accumulator


def get_config(request: Request) -> RuntimeConfig:
    """The runtime config this app instance was created with."""
    return request.app.state.config


def require_owner(
    request: Request,
    x_api_key: Optional[str] = Header(default=None),
) -> None:
    """
    Owner-only guard for mutating and administrative endpoints.

    Raises:
        UnauthorizedError: If X-API-Key is missing or wrong, or no owner key is configured
    """
    expected = get_config(request).api.owner_api_key
    if not expected or x_api_key is None:
        raise UnauthorizedError()
    if not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        raise UnauthorizedError()


__all__ = [
    "load_runtime_config",
    "open_accumulator",
    "get_accumulator",
    "get_config",
    "require_owner",
]
