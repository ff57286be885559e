"""
Module 05 - Bulk Import
Build a tree from an address list file.

The input is plain text or CSV with one address per line. Lines that do not
start with "0x" (headers, blanks, comments) are ignored. Addresses are
inserted in file order through Accumulator.insert_members, in chunks, and
progress is reported every N inserts or every few seconds.

An import is not preemptible; on abort, restart from scratch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from core.merkle.accumulator import Accumulator


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10_000
DEFAULT_PROGRESS_INTERVAL_S = 2.0

# Receives (inserted_so_far, elapsed_seconds)
ProgressCallback = Callable[[int, float], None]


@dataclass
class ImportReport:
    """Totals for one bulk import."""
    inserted: int = 0
    skipped_duplicates: int = 0
    malformed: int = 0
    elapsed_s: float = 0.0
    root: int = 0

    @property
    def rate(self) -> float:
        """Inserts per second."""
        return self.inserted / self.elapsed_s if self.elapsed_s > 0 else 0.0


def iter_addresses_from_file(path: str | Path) -> Iterator[str]:
    """Yield trimmed lines starting with 0x, in file order."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            candidate = line.strip().split(",")[0].strip()
            if candidate.startswith("0x"):
                yield candidate


def _chunks(items: Iterable[str], size: int) -> Iterator[list[str]]:
    chunk: list[str] = []
    for item in items:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def bulk_import(
    accumulator: Accumulator,
    addresses: Iterable[str],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress_interval_s: float = DEFAULT_PROGRESS_INTERVAL_S,
    on_progress: Optional[ProgressCallback] = None,
) -> ImportReport:
    """
    Insert addresses in order, reporting progress.

    State is not persisted per chunk; call accumulator.save() afterwards.

    Raises:
        CapacityExceededException: If a chunk does not fit; earlier chunks
            stay inserted
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    report = ImportReport()
    start = time.monotonic()
    last_log = start

    for chunk in _chunks(addresses, chunk_size):
        result = accumulator.insert_members(chunk, persist=False)
        report.inserted += result.inserted_count
        report.skipped_duplicates += result.skipped_duplicates
        report.malformed += len(result.malformed_keys)

        now = time.monotonic()
        elapsed = now - start
        if len(chunk) >= chunk_size or now - last_log >= progress_interval_s:
            rate = report.inserted / elapsed if elapsed > 0 else 0.0
            logger.info(
                f"Inserted {report.inserted:,} addresses ({elapsed:.1f}s, {rate:.0f}/s)"
            )
            last_log = now
        if on_progress is not None:
            on_progress(report.inserted, elapsed)

    report.elapsed_s = time.monotonic() - start
    report.root = accumulator.get_root()
    logger.info(f"Inserted {report.inserted:,} addresses in {report.elapsed_s:.2f}s")
    if report.malformed:
        logger.warning(f"Skipped {report.malformed} malformed addresses")
    return report


__all__ = [
    "ImportReport",
    "ProgressCallback",
    "iter_addresses_from_file",
    "bulk_import",
]
