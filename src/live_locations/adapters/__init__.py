"""Adapters layer - configuration and the web front end."""

from live_locations.adapters.config import AppConfig

__all__ = ["AppConfig"]
