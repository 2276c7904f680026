"""Map LiveView: one socket per browser tab sharing its location."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any

from pyview import LiveView, LiveViewSocket, is_connected
from pyview.events import InfoEvent
from pyview.template.live_template import LiveRender, LiveTemplate
from pyview.vendor import ibis

from live_locations.adapters.config import AppConfig
from live_locations.adapters.web.broadcasters import PubSubMessagePublisher
from live_locations.adapters.web.client_info import get_client_info_from_socket
from live_locations.adapters.web.identity import new_participant_attributes
from live_locations.adapters.web.state import MapState
from live_locations.domain.errors import DuplicateConnectionError
from live_locations.domain.models import session_tag_for
from live_locations.domain.ports import (
    LocationSharingService,  # noqa: TC001 - Runtime dependency: methods called at runtime
)

logger = logging.getLogger(__name__)

LOCATION_EVENTS = ("send-location", "location-update")
USERS_LIST_UPDATED = "users-list-updated"

_TEMPLATE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "map.html")


class MapLiveView(LiveView[MapState]):
    """LiveView translating socket lifecycle and client events into presence calls.

    Marker updates reach the browser as pushed events handled by the
    ``LocationMap`` hook; the roster panel is rendered server-side.
    """

    def __init__(
        self,
        service: LocationSharingService,
        publisher: PubSubMessagePublisher,
        config: AppConfig,
    ) -> None:
        """Initialize the LiveView.

        Args:
            service: The presence core.
            publisher: Publisher whose topics this view subscribes sockets to.
            config: Application configuration.
        """
        super().__init__()
        if not isinstance(config, AppConfig):
            raise TypeError("config must be an AppConfig instance")
        if not callable(getattr(service, "connect", None)):
            raise TypeError("service must implement LocationSharingService protocol")

        self.service = service
        self.publisher = publisher
        self.config = config

    def _apply_roster(self, socket: LiveViewSocket[MapState], payload: dict[str, Any]) -> None:
        """Update the server-rendered roster from a roster payload."""
        participants = payload.get("participants")
        if not isinstance(participants, list):
            logger.warning(f"Unexpected roster payload: {payload}")
            return
        socket.context.roster = participants
        socket.context.online_count = int(payload.get("onlineCount", 0))
        socket.context.offline_count = int(payload.get("offlineCount", 0))

    async def mount(self, socket: LiveViewSocket[MapState], _session: dict) -> None:
        """Mount the LiveView; connected sockets join as participants."""
        socket.context = MapState()
        summary = self.service.roster_summary()
        socket.context.roster = summary.participants
        socket.context.online_count = summary.online_count
        socket.context.offline_count = summary.offline_count

        if not is_connected(socket):
            return

        connection_id = uuid.uuid4().hex
        client_info = get_client_info_from_socket(socket)
        attributes = new_participant_attributes(connection_id, client_info.user_agent)

        # Subscribe first so the newcomer receives its own snapshot.
        if not await self.publisher.subscribe(socket, connection_id):
            logger.warning(f"Connection {connection_id} mounted without location subscriptions")

        try:
            participant = await self.service.connect(connection_id, attributes)
        except DuplicateConnectionError:
            return

        socket.context.connection_id = connection_id
        socket.context.display_name = participant.display_name
        socket.context.color = participant.color
        socket.context.device_class = participant.device_class
        logger.info(
            f"Connection {connection_id} joined as '{participant.display_name}' "
            f"from ip={client_info.ip}, agent={client_info.user_agent}"
        )

    async def handle_event(
        self, event: str, payload: Any, socket: LiveViewSocket[MapState]
    ) -> None:
        """Dispatch events pushed by the browser hook."""
        connection_id = socket.context.connection_id
        if not connection_id:
            logger.debug(f"Ignoring '{event}' from a socket that never joined")
            return

        if event == "register-session":
            token = payload.get("sessionToken") if isinstance(payload, dict) else None
            assigned = await self.service.register_session(
                connection_id, token if isinstance(token, str) else None
            )
            socket.context.session_tag = session_tag_for(assigned)
        elif event in LOCATION_EVENTS:
            await self.service.update_location(connection_id, payload)
        elif event == "heartbeat":
            await self.service.heartbeat(connection_id)
        elif event == "user-leaving":
            await self.service.leave(connection_id)
        else:
            logger.warning(f"Unknown event '{event}' from connection {connection_id}")

    async def disconnect(self, socket: LiveViewSocket[MapState]) -> None:
        """Hand the dropped connection to the liveness state machine."""
        connection_id = socket.context.connection_id if socket.context else ""
        if not connection_id:
            return
        try:
            await self.service.disconnect(connection_id, reason="transport-closed")
        except RuntimeError as e:
            logger.warning(f"Could not process disconnect of {connection_id}: {e}")

    async def handle_info(self, event: str | InfoEvent, socket: LiveViewSocket[MapState]) -> None:
        """Forward published presence messages to the browser."""
        if not isinstance(event, InfoEvent):
            logger.error(
                f"Unexpected event type in handle_info: {type(event)}, expected InfoEvent"
            )
            return

        envelope = event.payload
        if not isinstance(envelope, dict) or "event" not in envelope:
            logger.warning(f"Unexpected payload on topic '{event.name}': {envelope}")
            return
        if envelope.get("exclude") and envelope["exclude"] == socket.context.connection_id:
            return

        name = envelope["event"]
        payload = envelope.get("payload") or {}
        if name == USERS_LIST_UPDATED:
            self._apply_roster(socket, payload)

        if is_connected(socket):
            await socket.push_event(name, payload)

    def _build_template_assigns(self, state: MapState) -> dict[str, Any]:
        """Template variables; every value is a string, number or list."""
        roster = [
            {
                "display_name": str(entry.get("displayName", "")),
                "color": str(entry.get("color", "#000000")),
                "device_class": str(entry.get("deviceClass", "unknown")),
                "online_state": str(entry.get("onlineState", "offline")),
                "is_self": "true" if entry.get("connectionId") == state.connection_id else "false",
                "is_own_tab": (
                    "true"
                    if state.session_tag
                    and entry.get("sessionTag") == state.session_tag
                    and entry.get("connectionId") != state.connection_id
                    else "false"
                ),
            }
            for entry in state.roster
        ]
        return {
            "title": str(self.config.title),
            "connection_id": str(state.connection_id),
            "display_name": str(state.display_name or "Connecting..."),
            "color": str(state.color),
            "roster": roster,
            "total_count": str(len(roster)),
            "online_count": str(state.online_count),
            "offline_count": str(state.offline_count),
            "update_interval_ms": str(self.config.client_update_interval_seconds * 1000),
            "heartbeat_interval_ms": str(self.config.heartbeat_interval_seconds * 1000),
            "tile_url": str(self.config.map_tile_url),
            "attribution": str(self.config.map_attribution),
            "default_zoom": str(self.config.default_zoom),
        }

    async def render(self, assigns: MapState, meta: Any) -> Any:
        """Render the map page."""
        state = assigns if isinstance(assigns, MapState) else MapState()
        try:
            with open(_TEMPLATE_PATH, encoding="utf-8") as f:
                template = ibis.Template(f.read())
            return LiveRender(LiveTemplate(template), self._build_template_assigns(state), meta)
        except Exception as e:
            logger.error(f"Error rendering template: {e}", exc_info=True)
            error_template = ibis.Template("<div>Error rendering map: {{ error }}</div>")
            return LiveRender(LiveTemplate(error_template), {"error": str(e)}, meta)


def create_map_live_view(
    service: LocationSharingService,
    publisher: PubSubMessagePublisher,
    config: AppConfig,
) -> type[MapLiveView]:
    """Create a MapLiveView class bound to the given collaborators.

    PyView's add_live_view expects a class, not an instance, so the
    collaborators are captured in a closure.
    """
    captured_service = service
    captured_publisher = publisher
    captured_config = config

    class ConfiguredMapLiveView(MapLiveView):
        """Map LiveView wired to this process's presence core."""

        def __init__(self) -> None:
            super().__init__(captured_service, captured_publisher, captured_config)

    return ConfiguredMapLiveView
