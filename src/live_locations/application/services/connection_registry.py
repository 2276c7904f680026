"""Connection registry: the owner of every participant record."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from live_locations.domain.contracts.participant_registry import ParticipantRegistryProtocol
from live_locations.domain.errors import DuplicateConnectionError
from live_locations.domain.models import OnlineState, Participant

if TYPE_CHECKING:
    from collections.abc import Iterator

    from live_locations.domain.contracts import Clock
    from live_locations.domain.models import LocationFix, ParticipantAttributes

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


class ConnectionRegistry(ParticipantRegistryProtocol):
    """Maps connection ids to participant records.

    Records are kept in insertion order so that snapshots are deterministic.
    Lookups for unknown ids return None rather than raising: a message that
    arrives after its connection was removed is an expected race.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        """Initialize an empty registry.

        Args:
            clock: Callable returning the current UTC time.
        """
        self._clock = clock
        self._participants: dict[str, Participant] = {}

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._participants.values()))

    def on_connect(self, connection_id: str, attributes: ParticipantAttributes) -> Participant:
        """Create the record for a newly accepted connection.

        Args:
            connection_id: Transport-provided connection identifier.
            attributes: Identity and cosmetic attributes for the participant.

        Returns:
            The new participant, online and without a location.

        Raises:
            DuplicateConnectionError: If the connection id is already present.
        """
        if connection_id in self._participants:
            raise DuplicateConnectionError(connection_id)

        now = self._clock()
        participant = Participant(
            connection_id=connection_id,
            stable_user_id=attributes.stable_user_id,
            display_name=attributes.display_name,
            color=attributes.color,
            device_class=attributes.device_class,
            connected_at=now,
            last_activity_at=now,
        )
        self._participants[connection_id] = participant
        logger.info(
            f"Registered participant {connection_id} ({participant.display_name}, "
            f"{participant.device_class}). Participants: {len(self._participants)}"
        )
        return participant

    def on_location_update(self, connection_id: str, fix: LocationFix) -> Participant | None:
        """Store a new fix; the latest arrival wins regardless of fix timestamps.

        Returns:
            The updated participant, or None if the connection is unknown.
        """
        participant = self._participants.get(connection_id)
        if participant is None:
            return None
        participant.location = fix
        participant.touch(self._clock())
        participant.online_state = OnlineState.ONLINE
        return participant

    def on_heartbeat(self, connection_id: str) -> Participant | None:
        """Refresh activity and force the participant online, keeping its location."""
        participant = self._participants.get(connection_id)
        if participant is None:
            return None
        participant.touch(self._clock())
        participant.online_state = OnlineState.ONLINE
        return participant

    def mark_offline(self, connection_id: str) -> Participant | None:
        """Mark the participant offline and record the moment; the record stays."""
        participant = self._participants.get(connection_id)
        if participant is None:
            return None
        participant.online_state = OnlineState.OFFLINE
        participant.touch(self._clock())
        return participant

    def attach_session(
        self, connection_id: str, session_token: str, stable_user_id: str | None = None
    ) -> Participant | None:
        """Record the session a participant belongs to.

        Args:
            connection_id: The participant's connection.
            session_token: The correlated session token.
            stable_user_id: Optional user id carried over from a superseded
                participant of the same session.
        """
        participant = self._participants.get(connection_id)
        if participant is None:
            return None
        participant.session_token = session_token
        if stable_user_id:
            participant.stable_user_id = stable_user_id
        return participant

    def remove(self, connection_id: str) -> bool:
        """Delete a record. Removing an absent id returns False."""
        participant = self._participants.pop(connection_id, None)
        if participant is None:
            return False
        logger.info(
            f"Removed participant {connection_id} ({participant.display_name}). "
            f"Participants: {len(self._participants)}"
        )
        return True

    def get(self, connection_id: str) -> Participant | None:
        return self._participants.get(connection_id)

    def snapshot(self) -> list[Participant]:
        """All participants in insertion order."""
        return list(self._participants.values())

    def located(self) -> list[Participant]:
        """Participants that have reported at least one fix, in insertion order."""
        return [p for p in self._participants.values() if p.location is not None]

    def clear(self) -> None:
        self._participants.clear()
