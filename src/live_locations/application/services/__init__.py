"""Application services for live location sharing."""

from live_locations.application.services.broadcast_coordinator import BroadcastCoordinator
from live_locations.application.services.connection_registry import ConnectionRegistry
from live_locations.application.services.liveness_timer_manager import LivenessTimerManager
from live_locations.application.services.location_sharing_service import LocationSharingService
from live_locations.application.services.session_correlator import SessionCorrelator

__all__ = [
    "BroadcastCoordinator",
    "ConnectionRegistry",
    "LivenessTimerManager",
    "LocationSharingService",
    "SessionCorrelator",
]
