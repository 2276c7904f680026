"""Broadcasters for web adapter."""

from live_locations.adapters.web.broadcasters.pubsub_publisher import (
    BROADCAST_TOPIC,
    PubSubMessagePublisher,
    connection_topic,
)

__all__ = ["BROADCAST_TOPIC", "PubSubMessagePublisher", "connection_topic"]
