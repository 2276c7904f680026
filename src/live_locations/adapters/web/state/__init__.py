"""State for the map LiveView."""

from live_locations.adapters.web.state.map_state import MapState

__all__ = ["MapState"]
