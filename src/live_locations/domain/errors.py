"""Domain errors for live location sharing."""


class LocationSharingError(Exception):
    """Base class for errors raised by the presence core."""


class DuplicateConnectionError(LocationSharingError):
    """A connection id was registered twice.

    This points at a bug in the transport layer: connection ids are unique
    for the lifetime of a connection.
    """

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Connection {connection_id!r} is already registered")
        self.connection_id = connection_id
