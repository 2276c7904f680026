"""Protocol for delivering outbound messages to clients."""

from typing import Protocol

from live_locations.domain.models.outbound_message import OutboundMessage


class MessagePublisherProtocol(Protocol):
    """Protocol for fanning outbound messages out to connected clients."""

    async def publish(self, messages: list[OutboundMessage]) -> None:
        """Deliver messages in order.

        Implementations log delivery failures instead of raising them.

        Args:
            messages: Messages to deliver, each carrying its own audience.
        """
        ...
