"""Configuration module."""

from .parser import ConfigSource, RegistryConfig, load_config

__all__ = ["ConfigSource", "RegistryConfig", "load_config"]
