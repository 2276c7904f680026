"""Session correlator contract (protocol)."""

from typing import Protocol


class SessionCorrelatorProtocol(Protocol):
    """Protocol for grouping connections that share a client session token."""

    def register(self, connection_id: str, session_token: str | None = None) -> str:
        """Attach a connection to a session, minting a token when none is given.

        Returns:
            The session token the connection now belongs to.
        """
        ...

    def unregister(self, connection_id: str) -> None:
        """Detach a connection; drops the session once it has no connections."""
        ...

    def connections_for(self, session_token: str) -> list[str]:
        """Connection ids currently attached to a session."""
        ...

    def session_of(self, connection_id: str) -> str | None:
        """The session token a connection belongs to, if any."""
        ...
