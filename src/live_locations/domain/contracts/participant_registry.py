"""Participant registry contract (protocol)."""

from typing import Protocol

from live_locations.domain.models.location_fix import LocationFix
from live_locations.domain.models.participant import Participant
from live_locations.domain.models.participant_attributes import ParticipantAttributes


class ParticipantRegistryProtocol(Protocol):
    """Protocol for the store that owns participant records."""

    def __contains__(self, connection_id: object) -> bool: ...

    def __len__(self) -> int: ...

    def on_connect(self, connection_id: str, attributes: ParticipantAttributes) -> Participant:
        """Create the record for a newly accepted connection.

        Raises:
            DuplicateConnectionError: If the connection id is already present.
        """
        ...

    def on_location_update(self, connection_id: str, fix: LocationFix) -> Participant | None:
        """Store a new fix and mark the participant online.

        Returns:
            The updated participant, or None if the connection is unknown.
        """
        ...

    def on_heartbeat(self, connection_id: str) -> Participant | None:
        """Refresh activity and mark the participant online."""
        ...

    def mark_offline(self, connection_id: str) -> Participant | None:
        """Mark the participant offline, keeping the record."""
        ...

    def remove(self, connection_id: str) -> bool:
        """Delete the record. Returns False if it was already gone."""
        ...

    def get(self, connection_id: str) -> Participant | None:
        """Look up a participant without changing it."""
        ...

    def snapshot(self) -> list[Participant]:
        """All participants in insertion order."""
        ...
