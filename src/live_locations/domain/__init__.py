"""Domain layer - presence models, contracts and ports."""

from live_locations.domain.models import (
    LocationFix,
    OnlineState,
    OutboundMessage,
    Participant,
    ParticipantAttributes,
)
from live_locations.domain.ports import DisplayAdapter, LocationSharingService

__all__ = [
    "DisplayAdapter",
    "LocationFix",
    "LocationSharingService",
    "OnlineState",
    "OutboundMessage",
    "Participant",
    "ParticipantAttributes",
]
