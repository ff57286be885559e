"""
Module 09 - FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --reload

    # Or through the CLI
    allowlist serve --port 3001
"""

import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.deps import load_runtime_config, open_accumulator
from api.errors import (
    APIError,
    InvalidRequestError,
    accumulator_error_handler,
    api_error_handler,
    generic_error_handler,
)
from api.routes import health, proofs, members
from core.config.runtime import RuntimeConfig
from core.merkle.accumulator import Accumulator
from core.schemas.errors import AccumulatorException


logger = logging.getLogger(__name__)


# Configure logging: respects ALLOWLIST_LOG_LEVEL env var and allowlist.json log_level
def _resolve_log_level() -> int:
    """Resolve log level from env var or allowlist.json, defaulting to INFO."""
    raw = os.getenv("ALLOWLIST_LOG_LEVEL")
    if raw is None:
        cfg_path = Path.cwd() / "allowlist.json"
        if cfg_path.exists():
            try:
                with open(cfg_path) as f:
                    raw = json.load(f).get("log_level")
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable {cfg_path}: {e}")
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body validation failures as 400 INVALID_REQUEST."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return await api_error_handler(
        request,
        InvalidRequestError("Invalid request body", details={"errors": errors}),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the tree once per process unless one was injected."""
    if getattr(app.state, "accumulator", None) is None:
        app.state.accumulator = open_accumulator(app.state.config)
    acc: Accumulator = app.state.accumulator
    logger.info(
        f"Serving {acc.next_index} leaves, root {acc.stats()['root']} "
        f"({acc.strategy_name} proofs)"
    )
    if not app.state.config.api.owner_api_key:
        logger.warning("No owner API key configured; owner endpoints will reject every request")
    yield


def create_app(
    accumulator: Optional[Accumulator] = None,
    config: Optional[RuntimeConfig] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        accumulator: Tree to serve; loaded from config.storage on startup when None
        config: Runtime config; loaded from file and environment when None
    """
    config = config or load_runtime_config()

    app = FastAPI(
        title="Allowlist Accumulator API",
        description="""
HTTP API serving Merkle inclusion proofs for an address allowlist.

## Endpoints

- **GET /root** - Current Merkle root
- **GET /proof/{address}** - Inclusion proof (siblings, indices, root, leaf, index)
- **GET /members/{address}** - Membership check
- **POST /addresses** - Append addresses (requires `X-API-Key`)
- **GET /stats** - Root, leaf count and capacity (requires `X-API-Key`)
- **GET /health** - Health check
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.accumulator = accumulator

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(AccumulatorException, accumulator_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(proofs.router)
    app.include_router(members.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    _config = app.state.config
    uvicorn.run(app, host=_config.api.host, port=_config.api.port)
