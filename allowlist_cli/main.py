"""
Module 10 - CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m allowlist_cli build <addresses.csv> [--out PATH] [--depth N] [--force]
    python -m allowlist_cli root
    python -m allowlist_cli prove <address> [--strategy lazy|eager|recursive] [--noir]
    python -m allowlist_cli verify <proof.json> [--root HEX] [--against-state]
    python -m allowlist_cli add <address>... [--file PATH]
    python -m allowlist_cli stats [--json]
    python -m allowlist_cli serve [--host HOST] [--port PORT]
    python -m allowlist_cli config --init

Environment Variables:
    ALLOWLIST_TREE_DEPTH        Tree depth (default: 21)
    ALLOWLIST_HASH_BACKEND      Hash backend: sha256 or poseidon
    ALLOWLIST_PROOF_STRATEGY    Proof strategy: lazy or eager
    ALLOWLIST_STATE_PATH        State file (default: tree_state.json)
    ALLOWLIST_OWNER_API_KEY     Key for owner-only API endpoints
    ALLOWLIST_LOG_LEVEL         Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from allowlist_cli import __version__
from allowlist_cli.commands import tree, proof, serve
from core.config.runtime import RuntimeConfig, get_default_config_template
from core.schemas.errors import AccumulatorException


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="allowlist",
        description="Allowlist Accumulator CLI - Build Merkle trees, export and verify inclusion proofs.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./allowlist.json or ~/.config/allowlist/config.json)",
    )
    parser.add_argument(
        "--state",
        type=str,
        default=None,
        help="Tree state file (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- build command ---
    build_parser = subparsers.add_parser(
        "build",
        help="Build a tree from an address list",
        description="Bulk-import addresses (one per line, lines not starting with 0x are ignored) into a fresh state file.",
    )
    build_parser.add_argument("input", type=str, help="CSV or text file with addresses")
    build_parser.add_argument(
        "--out", "-o",
        type=str,
        default=None,
        help="Output state file (default: from config)",
    )
    build_parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Tree depth (default: from config or 21)",
    )
    build_parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Addresses per insert batch (default: 10000)",
    )
    build_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing state file",
    )
    build_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    build_parser.set_defaults(func=tree.build_cmd)

    # --- root command ---
    root_parser = subparsers.add_parser("root", help="Print the current Merkle root")
    root_parser.set_defaults(func=tree.root_cmd)

    # --- prove command ---
    prove_parser = subparsers.add_parser(
        "prove",
        help="Export an inclusion proof",
        description="Derive the inclusion proof for an address from the state file.",
    )
    prove_parser.add_argument("address", type=str, help="Address (0x + 40 hex digits)")
    prove_parser.add_argument(
        "--strategy",
        type=str,
        choices=["lazy", "eager", "recursive"],
        default="lazy",
        help="Derivation: node maps (lazy), full cache (eager) or map-free (recursive)",
    )
    prove_parser.add_argument(
        "--noir",
        action="store_true",
        default=False,
        help="Emit circuit inputs (leaf, index, path, indices, root)",
    )
    prove_parser.add_argument("--out", "-o", type=str, default=None, help="Write the proof to a file")
    prove_parser.set_defaults(func=proof.prove_cmd)

    # --- verify command ---
    verify_parser = subparsers.add_parser(
        "verify",
        help="Verify a proof file out of circuit",
        description="Replay a proof with the hash combinator and compare roots.",
    )
    verify_parser.add_argument("proof", type=str, help="Proof JSON (prove output, either form)")
    verify_parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Expected root (default: the root recorded in the proof)",
    )
    verify_parser.add_argument(
        "--against-state",
        action="store_true",
        default=False,
        help="Compare against the current root of the state file",
    )
    verify_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    verify_parser.set_defaults(func=proof.verify_cmd)

    # --- add command ---
    add_parser = subparsers.add_parser(
        "add",
        help="Append addresses to the tree",
        description="Insert new addresses in order; addresses already present are skipped.",
    )
    add_parser.add_argument("addresses", nargs="*", help="Addresses to add")
    add_parser.add_argument("--file", "-f", type=str, default=None, help="Read addresses from a file")
    add_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    add_parser.set_defaults(func=tree.add_cmd)

    # --- stats command ---
    stats_parser = subparsers.add_parser("stats", help="Show tree statistics")
    stats_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    stats_parser.set_defaults(func=tree.stats_cmd)

    # --- serve command ---
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API",
        description="Serve proofs over HTTP (FastAPI + uvicorn).",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind host (default: from config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: from config)")
    serve_parser.set_defaults(func=serve.serve_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="allowlist.json",
        help="Path for config file (default: allowlist.json)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (ALLOWLIST_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        print(json.dumps(args.cli_config.to_dict(), indent=2))
        return EXIT_SUCCESS

    # Default: show help
    print("Usage: allowlist config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed / not found)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = RuntimeConfig.load(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.state:
        config.storage.state_path = args.state

    # Setup logging
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=config.log_file)

    # Attach config to args for commands to use
    args.cli_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except AccumulatorException as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if args.log_level == "DEBUG":
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
