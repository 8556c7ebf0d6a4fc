"""Configuration management for hydrant.

Sections:
- engine: concurrency of top-level hydration forms
- storage: default SQLite database and fetch chunking
- registry: modules to scan for resolvers

Config resolution order (highest priority first):
1. Programmatic (HydrantConfig constructed in code, installed with configure())
2. Environment variables (HYDRANT_DB_PATH, HYDRANT_MAX_WORKERS, etc.)
3. Config file (~/.config/hydrant/config.json, managed by `hydrant config`)
4. Hardcoded defaults
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "hydrant"
CONFIG_FILE = CONFIG_DIR / "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str) -> bool:
    """Parse an env-var style boolean.

    Raises:
        ValueError: If the string is not a recognized boolean.
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean: {value!r}")


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class EngineConfig:
    """Hydration engine settings.

    - concurrent_keys: resolve independent top-level forms on a thread pool
    - max_workers: thread pool size when concurrent_keys is on
    """

    concurrent_keys: bool = False
    max_workers: int = 4


@dataclass
class StorageConfig:
    """Default query backend settings."""

    db_path: str = "./storage/hydrant.db"
    fetch_chunk_size: int = 500  # ids per IN (...) statement


@dataclass
class RegistryConfig:
    """Modules scanned for @hydrates / @batched_hydrates resolvers."""

    discover: list[str] = field(default_factory=list)


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class HydrantConfig:
    """Top-level hydrant configuration.

    Examples:
        # Package use, no files needed
        configure(HydrantConfig(engine=EngineConfig(concurrent_keys=True)))

        # CLI use, loads from ~/.config/hydrant/config.json
        config = HydrantConfig.load()
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)

    @classmethod
    def load(cls) -> "HydrantConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: config file
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError, TypeError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: env var overrides
        if val := os.environ.get("HYDRANT_CONCURRENT_KEYS"):
            try:
                config.engine.concurrent_keys = parse_bool(val)
            except ValueError:
                logger.warning("Invalid HYDRANT_CONCURRENT_KEYS=%r, ignoring", val)
        if val := os.environ.get("HYDRANT_MAX_WORKERS"):
            try:
                config.engine.max_workers = _positive_int(val)
            except ValueError:
                logger.warning("Invalid HYDRANT_MAX_WORKERS=%r, ignoring", val)
        if val := os.environ.get("HYDRANT_DB_PATH"):
            config.storage.db_path = val
        if val := os.environ.get("HYDRANT_FETCH_CHUNK_SIZE"):
            try:
                config.storage.fetch_chunk_size = _positive_int(val)
            except ValueError:
                logger.warning("Invalid HYDRANT_FETCH_CHUNK_SIZE=%r, ignoring", val)
        if val := os.environ.get("HYDRANT_DISCOVER"):
            config.registry.discover = [m.strip() for m in val.split(",") if m.strip()]

        return config

    def save(self) -> None:
        """Save config to ~/.config/hydrant/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "engine": asdict(self.engine),
            "storage": asdict(self.storage),
            "registry": asdict(self.registry),
        }

    @property
    def db_path_resolved(self) -> Path:
        """Resolve database path, creating its parent directory."""
        path = Path(self.storage.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def _positive_int(value: Any) -> int:
    number = int(value)
    if number < 1:
        raise ValueError(f"Expected a positive integer, got {value!r}")
    return number


# =============================================================================
# Config dict application
# =============================================================================


def _apply_dict(config: HydrantConfig, data: dict) -> None:
    """Apply a dict of values onto a HydrantConfig."""
    if "engine" in data and isinstance(data["engine"], dict):
        for k, v in data["engine"].items():
            if k == "concurrent_keys":
                config.engine.concurrent_keys = (
                    parse_bool(v) if isinstance(v, str) else bool(v)
                )
            elif k == "max_workers":
                config.engine.max_workers = _positive_int(v)
    if "storage" in data and isinstance(data["storage"], dict):
        for k, v in data["storage"].items():
            if k == "db_path":
                config.storage.db_path = str(v)
            elif k == "fetch_chunk_size":
                config.storage.fetch_chunk_size = _positive_int(v)
    if "registry" in data and isinstance(data["registry"], dict):
        discover = data["registry"].get("discover")
        if isinstance(discover, list):
            config.registry.discover = [str(m) for m in discover]


# =============================================================================
# Global config singleton
# =============================================================================

_config: HydrantConfig | None = None


def get_config() -> HydrantConfig:
    """Get the global HydrantConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = HydrantConfig.load()
    return _config


def configure(config: HydrantConfig) -> None:
    """Set the global HydrantConfig programmatically.

    Use this when hydrant is used as a package:
        from hydrant.config import configure, HydrantConfig, StorageConfig
        configure(HydrantConfig(storage=StorageConfig(db_path="app.db")))
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
