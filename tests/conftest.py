"""
Pytest configuration and shared fixtures for the accumulator tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_trees = importlib.import_module("fixtures.trees")

# Extract factory functions
make_address = _trees.make_address
make_addresses = _trees.make_addresses
make_accumulator = _trees.make_accumulator
reference_root = _trees.reference_root


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def hasher():
    """Provide the default sha256 field hasher."""
    from core.crypto.hashing import get_hasher
    return get_hasher("sha256")


@pytest.fixture
def zero_table_d3(hasher):
    """Provide the depth-3 zero-hash table."""
    from core.merkle.zero_hashes import build_zero_hashes
    return build_zero_hashes(3, hasher)


@pytest.fixture
def small_accumulator():
    """Provide a depth-4 accumulator holding five members."""
    return make_accumulator(depth=4, addresses=make_addresses(5))


@pytest.fixture
def state_file(tmp_path):
    """Provide a path for a state file inside a temp directory."""
    return tmp_path / "tree_state.json"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every ALLOWLIST_* variable from the environment."""
    import os
    for name in list(os.environ):
        if name.startswith("ALLOWLIST_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# =============================================================================
# Test Helpers (available to all tests via fixtures)
# =============================================================================

@pytest.fixture
def assert_proof_replays():
    """Helper to assert a proof verifies and reproduces an expected root."""
    def _assert(proof, hasher, expected_root: int):
        from core.merkle.proofs import compute_root_from_proof, verify_proof_record
        assert verify_proof_record(proof, hasher), f"Proof for leaf {proof.index} failed to verify"
        assert compute_root_from_proof(proof, hasher) == expected_root
    return _assert
