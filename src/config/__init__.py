"""Configuration helpers and default YAML specs."""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
