"""
Module 10 - CLI Tree Commands

Build and maintain the tree state file:
- build: bulk-import an address list into a fresh state file
- root:  print the current root
- add:   append addresses to an existing tree
- stats: print root, leaf count and capacity

Usage:
    allowlist build addresses.csv [--out tree_state.json] [--depth 21] [--force]
    allowlist root
    allowlist add 0x... 0x... [--file more.csv]
    allowlist stats [--json]
"""

from __future__ import annotations

import json
import logging
import sys
from argparse import Namespace
from pathlib import Path

from core.config.runtime import RuntimeConfig
from core.crypto.field import field_to_hex
from core.crypto.hashing import get_hasher
from core.merkle.accumulator import Accumulator, open_accumulator
from core.merkle.bulk_import import (
    DEFAULT_CHUNK_SIZE,
    bulk_import,
    iter_addresses_from_file,
)
from core.schemas.members import is_valid_member_key


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1


def build_cmd(args: Namespace) -> int:
    """
    Build a fresh tree from an address file and write its state.

    Returns:
        Exit code
    """
    config: RuntimeConfig = args.cli_config
    input_path = Path(args.input)
    out_path = Path(args.out or config.storage.state_path)
    depth = args.depth or config.tree.depth

    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    if out_path.exists() and not args.force:
        print(
            f"Error: {out_path} already exists (use --force to overwrite)",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    logger.info(f"Building depth-{depth} tree from {input_path}")
    acc = Accumulator(
        depth=depth,
        hasher=get_hasher(config.tree.hash_backend),
        state_path=out_path,
    )
    report = bulk_import(
        acc,
        iter_addresses_from_file(input_path),
        chunk_size=args.chunk_size or DEFAULT_CHUNK_SIZE,
    )
    acc.save()

    summary = {
        "state_path": str(out_path),
        "root": field_to_hex(report.root),
        "inserted": report.inserted,
        "skippedDuplicates": report.skipped_duplicates,
        "malformed": report.malformed,
        "elapsed_s": round(report.elapsed_s, 3),
    }
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"Inserted {report.inserted:,} addresses into {out_path}")
        if report.skipped_duplicates:
            print(f"Skipped {report.skipped_duplicates:,} duplicates")
        if report.malformed:
            print(f"Skipped {report.malformed:,} malformed lines")
        print(f"Root: {summary['root']}")
    return EXIT_SUCCESS


def root_cmd(args: Namespace) -> int:
    """Print the current root (the empty root when there is no state yet)."""
    acc = open_accumulator(args.cli_config)
    print(field_to_hex(acc.get_root()))
    return EXIT_SUCCESS


def add_cmd(args: Namespace) -> int:
    """
    Append addresses to the tree and persist it.

    All-or-nothing on malformed input: if any address is malformed nothing
    is inserted.
    """
    addresses: list[str] = list(args.addresses or [])
    if args.file:
        addresses.extend(iter_addresses_from_file(args.file))

    if not addresses:
        print("Error: No addresses given", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    invalid = [a for a in addresses if not is_valid_member_key(a)]
    if invalid:
        print(f"Error: {len(invalid)} malformed addresses, e.g. {invalid[0]!r}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    acc = open_accumulator(args.cli_config)
    result = acc.insert_members(addresses)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.inserted_count == 0:
        print(f"No new addresses ({result.skipped_duplicates} already present)")
    else:
        print(f"Inserted {result.inserted_count} addresses ({result.total_leaves} total)")
        if result.skipped_duplicates:
            print(f"Skipped {result.skipped_duplicates} duplicates")
        print(f"Root: {field_to_hex(result.new_root)}")
    return EXIT_SUCCESS


def stats_cmd(args: Namespace) -> int:
    """Print tree statistics."""
    stats = open_accumulator(args.cli_config).stats()
    if args.json:
        print(json.dumps(stats, indent=2))
    else:
        print(f"Root:        {stats['root']}")
        print(f"Leaves:      {stats['leafCount']:,} / {stats['maxLeaves']:,}")
        print(f"Depth:       {stats['depth']}")
        print(f"Hash:        {stats['hashBackend']}")
        print(f"Proofs:      {stats['proofStrategy']}")
    return EXIT_SUCCESS
