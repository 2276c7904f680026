"""Session correlation for clients with several open tabs."""

import logging
import secrets

from live_locations.domain.contracts.session_correlator import SessionCorrelatorProtocol

logger = logging.getLogger(__name__)


class SessionCorrelator(SessionCorrelatorProtocol):
    """Maps a client-chosen session token to the connections sharing it."""

    def __init__(self) -> None:
        """Initialize the correlator."""
        # Token -> connection ids, in registration order
        self._sessions: dict[str, list[str]] = {}
        self._connection_sessions: dict[str, str] = {}

    def register(self, connection_id: str, session_token: str | None = None) -> str:
        """Attach a connection to a session.

        A blank or missing token mints a new one. Registering a connection that
        already belongs to another session moves it.

        Args:
            connection_id: The connection to attach.
            session_token: Token the client persisted from an earlier visit.

        Returns:
            The session token the connection now belongs to.
        """
        token = session_token.strip() if session_token else ""
        if not token:
            token = secrets.token_urlsafe(16)
            logger.debug(f"Minted session token for connection {connection_id}")

        current = self._connection_sessions.get(connection_id)
        if current is not None and current != token:
            self.unregister(connection_id)

        connections = self._sessions.setdefault(token, [])
        if connection_id not in connections:
            connections.append(connection_id)
        self._connection_sessions[connection_id] = token

        logger.info(
            f"Session join: connection {connection_id}, "
            f"{len(connections)} connection(s) in session, {len(self._sessions)} session(s)"
        )
        return token

    def unregister(self, connection_id: str) -> None:
        """Detach a connection, dropping its session once it is empty. Idempotent."""
        token = self._connection_sessions.pop(connection_id, None)
        if token is None:
            return
        connections = self._sessions.get(token)
        if connections is None:
            return
        if connection_id in connections:
            connections.remove(connection_id)
        if not connections:
            del self._sessions[token]

    def connections_for(self, session_token: str) -> list[str]:
        return list(self._sessions.get(session_token, []))

    def session_of(self, connection_id: str) -> str | None:
        return self._connection_sessions.get(connection_id)

    def session_count(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()
        self._connection_sessions.clear()
