"""
Module 04 - State Codec
File: codec.py

Purpose: Serialize and deserialize tree state to the state file.

File format (JSON, 2-space indent, fixed field order):
    {
      "root": "0x...",
      "nextIndex": 3,
      "zeroHashes": ["0x0", ...],         # depth + 1 entries
      "filledSubtrees": ["0x...", ...],   # depth entries (depth + 1 accepted)
      "leaves": [[0, "0x..."], ...]       # (index, value) pairs by index
    }

Field elements are "0x" + lowercase hex without padding. Node maps are
never persisted: the leaves plus frontier and zero tables are enough to
reconstruct everything.

Files whose frontier also carries the constant top entry zero[depth]
(depth + 1 entries, the layout circomlibjs-based builders write) are
accepted on decode; the extra entry is dropped and never written back.

The codec is a pure serialization boundary and never touches live state.
Any failure to read or validate a file is a CorruptStateException; there is
no partial recovery.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.crypto.field import field_from_hex, field_to_hex
from core.schemas.errors import CorruptStateException


logger = logging.getLogger(__name__)

JSON_INDENT = 2


@dataclass
class TreeState:
    """
    Decoded tree state with field elements as ints.

    Attributes:
        root: Current root
        next_index: Number of inserted leaves
        zero_hashes: zero[0] .. zero[depth]
        filled_subtrees: Frontier vector (depth entries)
        leaves: Leaf index -> leaf value
    """
    root: int
    next_index: int
    zero_hashes: list[int]
    filled_subtrees: list[int]
    leaves: dict[int, int] = field(default_factory=dict)

    @property
    def depth(self) -> int:
        return len(self.zero_hashes) - 1


def _check_hex(value: str) -> str:
    field_from_hex(value)
    return value


class TreeStateFile(BaseModel):
    """On-disk schema of the state file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    root: str = Field(..., description="Root as 0x hex")
    next_index: int = Field(..., alias="nextIndex", ge=0)
    zero_hashes: list[str] = Field(..., alias="zeroHashes", min_length=2)
    filled_subtrees: list[str] = Field(..., alias="filledSubtrees", min_length=1)
    leaves: list[tuple[int, str]] = Field(default_factory=list)

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: str) -> str:
        return _check_hex(v)

    @field_validator("zero_hashes", "filled_subtrees")
    @classmethod
    def validate_hex_list(cls, v: list[str]) -> list[str]:
        return [_check_hex(item) for item in v]

    @field_validator("leaves")
    @classmethod
    def validate_leaves(cls, v: list[tuple[int, str]]) -> list[tuple[int, str]]:
        for index, value in v:
            if index < 0:
                raise ValueError(f"Leaf index must be non-negative, got {index}")
            _check_hex(value)
        return v


def state_to_file_model(state: TreeState) -> TreeStateFile:
    return TreeStateFile(
        root=field_to_hex(state.root),
        next_index=state.next_index,
        zero_hashes=[field_to_hex(z) for z in state.zero_hashes],
        filled_subtrees=[field_to_hex(f) for f in state.filled_subtrees],
        leaves=[(index, field_to_hex(state.leaves[index])) for index in sorted(state.leaves)],
    )


def encode_state(state: TreeState) -> str:
    """Serialize tree state to the state file text."""
    model = state_to_file_model(state)
    return json.dumps(model.model_dump(by_alias=True), indent=JSON_INDENT)


def _frontier_entries(model: TreeStateFile, source: str | None) -> list[int]:
    """Frontier as depth ints, trimming a trailing zero[depth] entry."""
    depth = len(model.zero_hashes) - 1
    filled = [field_from_hex(f) for f in model.filled_subtrees]
    if len(filled) == depth + 1 and filled[depth] == field_from_hex(model.zero_hashes[depth]):
        return filled[:depth]
    if len(filled) != depth:
        raise CorruptStateException(
            f"filledSubtrees has {len(filled)} entries, expected {depth} "
            f"for zeroHashes of depth {depth}",
            path=source,
        )
    return filled


def _validate_consistency(model: TreeStateFile, source: str | None) -> None:
    depth = len(model.zero_hashes) - 1
    capacity = 1 << depth
    if model.next_index > capacity:
        raise CorruptStateException(
            f"nextIndex {model.next_index} exceeds capacity {capacity}",
            path=source,
        )
    if model.next_index != len(model.leaves):
        raise CorruptStateException(
            f"Leaf count mismatch: nextIndex={model.next_index}, leaves={len(model.leaves)}",
            path=source,
        )
    indices = {index for index, _ in model.leaves}
    if len(indices) != len(model.leaves):
        raise CorruptStateException("Duplicate leaf indices", path=source)
    if indices and max(indices) >= model.next_index:
        raise CorruptStateException(
            f"Leaf index {max(indices)} beyond nextIndex {model.next_index}",
            path=source,
        )


def decode_state(text: str, source: str | None = None) -> TreeState:
    """
    Parse and validate state file text.

    Args:
        text: File contents
        source: Optional path, used in error details

    Raises:
        CorruptStateException: If the text is not a valid, consistent state
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptStateException(f"State file is not valid JSON: {e}", path=source) from e

    try:
        model = TreeStateFile.model_validate(data)
    except ValidationError as e:
        raise CorruptStateException(
            f"State file failed schema validation: {e.error_count()} error(s)",
            path=source,
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e

    filled = _frontier_entries(model, source)
    _validate_consistency(model, source)

    return TreeState(
        root=field_from_hex(model.root),
        next_index=model.next_index,
        zero_hashes=[field_from_hex(z) for z in model.zero_hashes],
        filled_subtrees=filled,
        leaves={index: field_from_hex(value) for index, value in model.leaves},
    )


def save_state(path: str | Path, state: TreeState) -> Path:
    """
    Write state atomically: temp file in the target directory, then rename.

    Readers never observe a half-written file.

    Returns:
        The written path
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    content = encode_state(state)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        os.chmod(tmp_name, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info(f"Saved tree state to {target} ({state.next_index} leaves)")
    return target


def load_state(path: str | Path) -> TreeState:
    """
    Read and validate a state file.

    Raises:
        CorruptStateException: If the file is missing, unreadable or invalid
    """
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise CorruptStateException(f"State file not found: {source}", path=str(source)) from e
    except OSError as e:
        raise CorruptStateException(f"Cannot read state file {source}: {e}", path=str(source)) from e

    state = decode_state(text, source=str(source))
    logger.info(f"Loaded tree state from {source}: {state.next_index} leaves, depth {state.depth}")
    return state


__all__ = [
    "TreeState",
    "TreeStateFile",
    "encode_state",
    "decode_state",
    "save_state",
    "load_state",
]
