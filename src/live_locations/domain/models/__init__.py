"""Domain models for live location sharing."""

from live_locations.domain.models.client_info import ClientInfo
from live_locations.domain.models.liveness import LivenessSettings, LivenessState, OfflinePolicy
from live_locations.domain.models.location_fix import LocationFix
from live_locations.domain.models.outbound_message import Audience, OutboundMessage
from live_locations.domain.models.participant import (
    OnlineState,
    Participant,
    session_tag_for,
    to_epoch_ms,
)
from live_locations.domain.models.participant_attributes import ParticipantAttributes
from live_locations.domain.models.roster_summary import RosterSummary

__all__ = [
    "Audience",
    "ClientInfo",
    "LivenessSettings",
    "LivenessState",
    "LocationFix",
    "OfflinePolicy",
    "OnlineState",
    "OutboundMessage",
    "Participant",
    "ParticipantAttributes",
    "RosterSummary",
    "session_tag_for",
    "to_epoch_ms",
]
