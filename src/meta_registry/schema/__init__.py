"""Contract document loading."""

from .loader import load_deployment, parse_deployment

__all__ = ["load_deployment", "parse_deployment"]
