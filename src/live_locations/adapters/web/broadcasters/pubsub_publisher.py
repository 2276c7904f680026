"""Publisher delivering outbound presence messages via pyview PubSub."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pyview import is_connected
from pyview.live_socket import pub_sub_hub
from pyview.vendor.flet.pubsub import PubSub

from live_locations.domain.contracts.message_publisher import MessagePublisherProtocol
from live_locations.domain.models import Audience

if TYPE_CHECKING:
    from pyview import LiveViewSocket

    from live_locations.domain.models import OutboundMessage

logger = logging.getLogger(__name__)

BROADCAST_TOPIC = "locations:broadcast"


def connection_topic(connection_id: str) -> str:
    """Topic that only the socket owning ``connection_id`` subscribes to."""
    return f"locations:connection:{connection_id}"


def topic_for(message: OutboundMessage) -> str:
    if message.audience is Audience.CONNECTION and message.target:
        return connection_topic(message.target)
    return BROADCAST_TOPIC


def envelope_for(message: OutboundMessage) -> dict[str, Any]:
    """The dict handed to subscribers' ``handle_info``."""
    return {"event": message.event, "payload": message.payload, "exclude": message.exclude}


class PubSubMessagePublisher(MessagePublisherProtocol):
    """Publishes outbound messages on pyview PubSub topics.

    Broadcasts go to one shared topic; unicasts go to the target connection's
    private topic.
    """

    async def subscribe(self, socket: LiveViewSocket, connection_id: str) -> bool:
        """Subscribe a connected socket to the shared and its private topic.

        Returns:
            True if the socket is now subscribed to both topics.
        """
        if not is_connected(socket):
            return False
        try:
            await socket.subscribe(BROADCAST_TOPIC)
            await socket.subscribe(connection_topic(connection_id))
        except Exception as e:
            logger.warning(f"Failed to subscribe socket to location topics: {e}", exc_info=True)
            return False
        return True

    async def publish(self, messages: list[OutboundMessage]) -> None:
        """Send each message to its topic, in order."""
        for message in messages:
            topic = topic_for(message)
            try:
                pubsub = PubSub(pub_sub_hub, topic)
                await pubsub.send_all_on_topic_async(topic, envelope_for(message))
                logger.debug(f"Published '{message.event}' to topic: {topic}")
            except Exception as e:
                logger.error(f"Failed to publish '{message.event}' to {topic}: {e}", exc_info=True)
