"""Configuration parser with Pydantic validation."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

CONFIG_DIR = ".meta-registry"
ENV_PREFIX = "META_REGISTRY_"


class StorageSettings(BaseModel):
    """Storage configuration."""

    db_path: str = "meta_registry.db"


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_output: bool = True


class CompatibilitySettings(BaseModel):
    """Revision compatibility rules."""

    allow_field_rename: bool = False


class ServerSettings(BaseModel):
    """API server settings."""

    host: str = "0.0.0.0"
    port: int = 9070


class ConfigSource:
    """Configuration source tracking."""

    def __init__(self, name: str, data: Dict[str, Any]):
        self.name = name
        self.data = data


class RegistryConfig(BaseModel):
    """Main registry configuration."""

    version: str = "1.0"
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    compatibility: CompatibilitySettings = Field(default_factory=CompatibilitySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


def _parse_env_vars() -> Dict[str, Any]:
    """Parse META_REGISTRY_* environment variables."""
    env_config = {}

    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            # Remove prefix and convert to lowercase with underscores
            config_key = key[len(ENV_PREFIX):].lower()

            # Handle nested keys with double underscores
            if "__" in config_key:
                parts = config_key.split("__")
                if len(parts) == 2:
                    section, field = parts
                    env_config.setdefault(section, {})[field] = _parse_env_value(value)
            else:
                env_config[config_key] = _parse_env_value(value)

    return env_config


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    try:
        return int(value)
    except ValueError:
        pass

    return value


def _merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple config dictionaries with later ones taking precedence."""
    result = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """Deep merge source into target."""
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


def load_config(root: Path, cli_overrides: Optional[Dict[str, Any]] = None) -> Tuple[RegistryConfig, List[ConfigSource]]:
    """Load configuration with inheritance: defaults < config.yaml < env vars < CLI args."""
    sources = []

    # 1. Built-in defaults
    defaults = RegistryConfig().model_dump()
    sources.append(ConfigSource("defaults", defaults))

    # 2. Config file
    config_path = Path(root) / CONFIG_DIR / "config.yaml"
    file_config = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            file_config = yaml.safe_load(f) or {}
        sources.append(ConfigSource("config.yaml", file_config))

    # 3. Environment variables
    env_config = _parse_env_vars()
    if env_config:
        sources.append(ConfigSource("environment", env_config))

    # 4. CLI overrides
    cli_config = cli_overrides or {}
    if cli_config:
        sources.append(ConfigSource("cli", cli_config))

    merged_config = _merge_configs(defaults, file_config, env_config, cli_config)

    return RegistryConfig(**merged_config), sources
