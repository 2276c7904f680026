"""Location sharing service port."""

from typing import Any, Protocol

from live_locations.domain.models.participant import Participant
from live_locations.domain.models.participant_attributes import ParticipantAttributes
from live_locations.domain.models.roster_summary import RosterSummary


class LocationSharingService(Protocol):
    """Port for the presence core as seen by the web layer.

    Every coroutine is processed in arrival order against one shared state.
    """

    async def start(self) -> None:
        """Begin processing events and start the sweep timer."""
        ...

    async def stop(self) -> None:
        """Stop processing, cancel all timers and drop all state."""
        ...

    async def connect(self, connection_id: str, attributes: ParticipantAttributes) -> Participant:
        """Register a newly accepted connection and announce it.

        Raises:
            DuplicateConnectionError: If the connection id is already registered.
        """
        ...

    async def register_session(self, connection_id: str, session_token: str | None) -> str | None:
        """Correlate a connection with a client session token.

        Returns:
            The assigned session token, or None if the connection is gone.
        """
        ...

    async def update_location(self, connection_id: str, payload: Any) -> Participant | None:
        """Apply a location update from a raw client payload.

        Returns:
            The updated participant, or None if the payload was malformed or the
            connection is gone.
        """
        ...

    async def heartbeat(self, connection_id: str) -> Participant | None:
        """Refresh a participant's liveness."""
        ...

    async def leave(self, connection_id: str) -> bool:
        """Remove a participant immediately after a clean leave."""
        ...

    async def disconnect(
        self, connection_id: str, reason: str = "transport-closed"
    ) -> Participant | None:
        """Hand a dropped connection to the liveness state machine.

        Returns:
            The participant if it was marked offline, otherwise None.
        """
        ...

    def roster_summary(self) -> RosterSummary:
        """Aggregate counts and roster entries for read-only endpoints."""
        ...
