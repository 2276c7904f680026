"""Ports (interfaces) for the ports-and-adapters architecture."""

from live_locations.domain.ports.display_adapter import DisplayAdapter
from live_locations.domain.ports.location_sharing import LocationSharingService

__all__ = [
    "DisplayAdapter",
    "LocationSharingService",
]
