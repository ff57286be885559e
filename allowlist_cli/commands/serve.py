"""
Module 10 - CLI Serve Command

Run the HTTP API with uvicorn.

Usage:
    allowlist serve [--host 127.0.0.1] [--port 3001]
"""

from __future__ import annotations

import logging
from argparse import Namespace

from core.config.runtime import RuntimeConfig
from core.merkle.accumulator import open_accumulator


logger = logging.getLogger(__name__)


def serve_cmd(args: Namespace) -> int:
    """Serve the tree named by the config until interrupted."""
    import uvicorn

    from api.app import create_app

    config: RuntimeConfig = args.cli_config
    host = args.host or config.api.host
    port = args.port or config.api.port

    # Open the tree before binding so a corrupt state file fails fast
    accumulator = open_accumulator(config)

    app = create_app(accumulator=accumulator, config=config)
    logger.info(f"Serving on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())
    return 0
