"""Shared fixtures: isolate config, registry and backend per test."""

import logging

import pytest

import hydrant.cli.commands.config_cmd as config_cmd
import hydrant.config as config_module
from hydrant.config import reset_config
from hydrant.core.models import Target
from hydrant.hydration import ResolverRegistry, reset_registry
from hydrant.storage import InMemoryStore, reset_backend


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point the config file at tmp_path and drop all process-wide state."""
    config_dir = tmp_path / "config"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", config_file)
    for var in (
        "HYDRANT_CONCURRENT_KEYS",
        "HYDRANT_MAX_WORKERS",
        "HYDRANT_DB_PATH",
        "HYDRANT_FETCH_CHUNK_SIZE",
        "HYDRANT_DISCOVER",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HYDRANT_DB_PATH", str(tmp_path / "storage" / "hydrant.db"))

    reset_config()
    reset_registry()
    reset_backend()
    yield
    reset_backend()
    reset_registry()
    reset_config()
    logging.getLogger("hydrant").setLevel(logging.NOTSET)


@pytest.fixture
def registry():
    return ResolverRegistry()


@pytest.fixture
def users():
    return Target(name="users")


@pytest.fixture
def store():
    return InMemoryStore(
        {
            "users": [
                {"id": 1, "name": "Cam"},
                {"id": 2, "name": "Rasta"},
                {"id": 3, "name": "Lucky"},
            ],
            "venues": [
                {"id": 10, "name": "Tempest", "category_id": 100},
                {"id": 11, "name": "Ho's Tavern", "category_id": 101},
            ],
            "categories": [
                {"id": 100, "name": "bar"},
                {"id": 101, "name": "dive-bar"},
            ],
        }
    )
