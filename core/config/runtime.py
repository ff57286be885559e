"""
Runtime Configuration

Central configuration for the tree engine, state storage and the HTTP API.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Environment variable prefix
ENV_PREFIX = "ALLOWLIST_"

# Config file search order (first existing wins)
CONFIG_SEARCH_PATHS = (
    Path("allowlist.json"),
    Path(".allowlist.json"),
    Path("~/.config/allowlist/config.json"),
)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TreeConfig:
    """Shape of the tree and how proofs are served."""
    depth: int = 21
    hash_backend: str = "sha256"
    proof_strategy: str = "lazy"

    def __post_init__(self):
        if self.depth < 1:
            raise ValueError(f"Tree depth must be at least 1, got {self.depth}")
        if self.proof_strategy not in ("lazy", "eager"):
            raise ValueError(
                f"proof_strategy must be 'lazy' or 'eager', got {self.proof_strategy!r}"
            )


@dataclass
class StorageConfig:
    """Where tree state lives."""
    state_path: str = "tree_state.json"
    strict_load: bool = True


@dataclass
class ApiConfig:
    """HTTP API settings."""
    host: str = "127.0.0.1"
    port: int = 3001
    owner_api_key: Optional[str] = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration.

    Can be loaded from:
    - Environment variables
    - YAML or JSON file
    - Programmatic construction
    """
    tree: TreeConfig = field(default_factory=TreeConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - ALLOWLIST_TREE_DEPTH: Tree depth
        - ALLOWLIST_HASH_BACKEND: sha256 or poseidon
        - ALLOWLIST_PROOF_STRATEGY: lazy or eager
        - ALLOWLIST_STATE_PATH: State file path
        - ALLOWLIST_STRICT_LOAD: Check zero hashes against the backend (true/false)
        - ALLOWLIST_HOST / ALLOWLIST_PORT: API bind address
        - ALLOWLIST_OWNER_API_KEY: Key required by owner-only endpoints
        - ALLOWLIST_LOG_LEVEL / ALLOWLIST_LOG_FILE: Logging
        """
        overrides: dict[str, Any] = {}

        if os.getenv(f"{ENV_PREFIX}TREE_DEPTH"):
            overrides.setdefault("tree", {})["depth"] = int(os.getenv(f"{ENV_PREFIX}TREE_DEPTH"))
        if os.getenv(f"{ENV_PREFIX}HASH_BACKEND"):
            overrides.setdefault("tree", {})["hash_backend"] = os.getenv(f"{ENV_PREFIX}HASH_BACKEND")
        if os.getenv(f"{ENV_PREFIX}PROOF_STRATEGY"):
            overrides.setdefault("tree", {})["proof_strategy"] = os.getenv(f"{ENV_PREFIX}PROOF_STRATEGY")

        if os.getenv(f"{ENV_PREFIX}STATE_PATH"):
            overrides.setdefault("storage", {})["state_path"] = os.getenv(f"{ENV_PREFIX}STATE_PATH")
        if os.getenv(f"{ENV_PREFIX}STRICT_LOAD"):
            overrides.setdefault("storage", {})["strict_load"] = _env_bool(
                os.getenv(f"{ENV_PREFIX}STRICT_LOAD", "true")
            )

        if os.getenv(f"{ENV_PREFIX}HOST"):
            overrides.setdefault("api", {})["host"] = os.getenv(f"{ENV_PREFIX}HOST")
        if os.getenv(f"{ENV_PREFIX}PORT"):
            overrides.setdefault("api", {})["port"] = int(os.getenv(f"{ENV_PREFIX}PORT"))
        if os.getenv(f"{ENV_PREFIX}OWNER_API_KEY"):
            overrides.setdefault("api", {})["owner_api_key"] = os.getenv(f"{ENV_PREFIX}OWNER_API_KEY")

        if os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
            overrides["log_level"] = os.getenv(f"{ENV_PREFIX}LOG_LEVEL")
        if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
            overrides["log_file"] = os.getenv(f"{ENV_PREFIX}LOG_FILE")

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = json.load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_file(cls, path: str | Path) -> "RuntimeConfig":
        """Load from YAML (.yaml/.yml) or JSON (anything else)."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path)
        return cls.from_json(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        tree_data = data.get("tree", {}) or {}
        storage_data = data.get("storage", {}) or {}
        api_data = data.get("api", {}) or {}

        tree = TreeConfig(**tree_data) if tree_data else TreeConfig()
        storage = StorageConfig(**storage_data) if storage_data else StorageConfig()
        api = ApiConfig(**api_data) if api_data else ApiConfig()

        return cls(
            tree=tree,
            storage=storage,
            api=api,
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )

    @classmethod
    def load(cls, path: str | Path | None = None) -> "RuntimeConfig":
        """
        Load from an explicit file or the first file on the search path,
        then overlay environment variables.

        Environment variables ALWAYS override config file values.
        """
        config: RuntimeConfig | None = None

        if path is not None:
            config = cls.from_file(path)
        else:
            for candidate in CONFIG_SEARCH_PATHS:
                candidate = candidate.expanduser()
                if candidate.exists():
                    logger.info(f"Loaded config from {candidate}")
                    config = cls.from_file(candidate)
                    break

        if config is None:
            config = cls()

        return config.with_env_overrides()

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)

        for section in ("tree", "storage", "api"):
            if section in overrides:
                target = getattr(new_config, section)
                for key, value in overrides[section].items():
                    setattr(target, key, value)

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]
        if "log_file" in overrides:
            new_config.log_file = overrides["log_file"]

        # re-run section validation after overrides
        new_config.tree.__post_init__()
        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary (secrets masked)."""
        return {
            "tree": {
                "depth": self.tree.depth,
                "hash_backend": self.tree.hash_backend,
                "proof_strategy": self.tree.proof_strategy,
            },
            "storage": {
                "state_path": self.storage.state_path,
                "strict_load": self.storage.strict_load,
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port,
                "owner_api_key": "***" if self.api.owner_api_key else None,
                "cors_origins": list(self.api.cors_origins),
            },
            "log_level": self.log_level,
            "log_file": self.log_file,
        }


def get_default_config_template() -> str:
    """Get a template configuration file."""
    return """{
  "tree": {
    "depth": 21,
    "hash_backend": "sha256",
    "proof_strategy": "lazy"
  },
  "storage": {
    "state_path": "tree_state.json",
    "strict_load": true
  },
  "api": {
    "host": "127.0.0.1",
    "port": 3001,
    "owner_api_key": "change-me-in-production",
    "cors_origins": ["*"]
  },
  "log_level": "INFO",
  "log_file": null
}
"""


# Global default configuration
_default_config: Optional[RuntimeConfig] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.load()
    return _default_config


def set_default_config(config: Optional[RuntimeConfig]) -> None:
    """Set (or with None, reset) the default runtime configuration."""
    global _default_config
    _default_config = config
