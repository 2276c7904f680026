"""Map LiveView."""

from .map import MapLiveView, create_map_live_view

__all__ = ["MapLiveView", "create_map_live_view"]
