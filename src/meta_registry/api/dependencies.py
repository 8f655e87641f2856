"""FastAPI dependencies."""

from functools import lru_cache
from pathlib import Path

from ..config.parser import RegistryConfig, load_config
from ..storage.service_registry import ServiceRegistry
from ..storage.sqlite import SQLiteStorage


@lru_cache()
def get_config() -> RegistryConfig:
    """Dependency to get the effective configuration."""
    config, _ = load_config(Path.cwd())
    return config


@lru_cache()
def get_service_registry() -> ServiceRegistry:
    """Dependency to get service registry."""
    config = get_config()
    db = SQLiteStorage(config.storage.db_path)
    return ServiceRegistry(
        db,
        allow_field_rename=config.compatibility.allow_field_rename,
    )
