"""Application configuration."""

from equb.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
