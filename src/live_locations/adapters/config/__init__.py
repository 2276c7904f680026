"""Configuration adapters."""

from live_locations.adapters.config.app_config import AppConfig

__all__ = ["AppConfig"]
