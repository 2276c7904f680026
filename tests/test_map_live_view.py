"""Tests for MapLiveView event handling and rendering."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pyview.events import InfoEvent
from pyview.vendor import ibis

from live_locations.adapters.config import AppConfig
from live_locations.adapters.web.state import MapState
from live_locations.adapters.web.views.map import map as map_module
from live_locations.adapters.web.views.map import MapLiveView, create_map_live_view
from live_locations.domain.errors import DuplicateConnectionError
from live_locations.domain.models import Participant, RosterSummary, session_tag_for

MODULE = "live_locations.adapters.web.views.map.map"


def _empty_summary() -> RosterSummary:
    return RosterSummary(
        total_count=0,
        online_count=0,
        offline_count=0,
        located_count=0,
        session_count=0,
        participants=[],
    )


def _create_test_view() -> tuple[MapLiveView, MagicMock, MagicMock]:
    """Create a view backed by mocked service and publisher."""
    service = MagicMock()
    service.roster_summary.return_value = _empty_summary()
    for name in ("connect", "register_session", "update_location", "heartbeat", "leave", "disconnect"):
        setattr(service, name, AsyncMock())
    publisher = MagicMock()
    publisher.subscribe = AsyncMock(return_value=True)
    config = AppConfig.for_testing()
    return MapLiveView(service, publisher, config), service, publisher


def _participant(connection_id: str) -> MagicMock:
    participant = MagicMock(spec=Participant)
    participant.connection_id = connection_id
    participant.display_name = "Calm Fox 7"
    participant.color = "#3cb44b"
    participant.device_class = "desktop"
    return participant


def _joined_socket(connection_id: str = "me") -> MagicMock:
    socket = MagicMock()
    socket.context = MapState(connection_id=connection_id)
    socket.push_event = AsyncMock()
    return socket


def test_view_requires_app_config() -> None:
    with pytest.raises(TypeError, match="AppConfig"):
        MapLiveView(MagicMock(), MagicMock(), config=object())


@pytest.mark.asyncio
async def test_mount_when_connected_joins_as_participant() -> None:
    """Given a connected socket, when mounting, then it subscribes and connects a participant."""
    view, service, publisher = _create_test_view()
    service.connect.return_value = _participant("ignored")
    socket = MagicMock()
    socket.scope = {"client": ("192.0.2.1", 80), "headers": [(b"user-agent", b"Mozilla/5.0 (iPad)")]}

    with patch(f"{MODULE}.is_connected", return_value=True):
        await view.mount(socket, {})

    connection_id = socket.context.connection_id
    assert connection_id
    publisher.subscribe.assert_awaited_once_with(socket, connection_id)
    service.connect.assert_awaited_once()
    args = service.connect.await_args.args
    assert args[0] == connection_id
    assert args[1].device_class == "tablet"
    assert socket.context.display_name == "Calm Fox 7"


@pytest.mark.asyncio
async def test_mount_when_not_connected_only_renders_roster() -> None:
    view, service, publisher = _create_test_view()
    socket = MagicMock()

    with patch(f"{MODULE}.is_connected", return_value=False):
        await view.mount(socket, {})

    assert socket.context.connection_id == ""
    publisher.subscribe.assert_not_awaited()
    service.connect.assert_not_awaited()


@pytest.mark.asyncio
async def test_mount_with_duplicate_connection_leaves_socket_unjoined() -> None:
    view, service, _ = _create_test_view()
    service.connect.side_effect = DuplicateConnectionError("x")
    socket = MagicMock()

    with patch(f"{MODULE}.is_connected", return_value=True):
        await view.mount(socket, {})

    assert socket.context.connection_id == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("event", ["send-location", "location-update"])
async def test_location_events_forward_raw_payload(event) -> None:
    """Given a location event, when handled, then the raw payload reaches the service."""
    view, service, _ = _create_test_view()
    socket = _joined_socket()
    payload = {"latitude": 48.1, "longitude": 11.5}

    await view.handle_event(event, payload, socket)

    service.update_location.assert_awaited_once_with("me", payload)


@pytest.mark.asyncio
async def test_register_session_sets_tag() -> None:
    view, service, _ = _create_test_view()
    service.register_session.return_value = "tok"
    socket = _joined_socket()

    await view.handle_event("register-session", {"sessionToken": "tok"}, socket)

    service.register_session.assert_awaited_once_with("me", "tok")
    assert socket.context.session_tag == session_tag_for("tok")


@pytest.mark.asyncio
async def test_register_session_ignores_non_string_token() -> None:
    view, service, _ = _create_test_view()
    service.register_session.return_value = "minted"
    socket = _joined_socket()

    await view.handle_event("register-session", {"sessionToken": 42}, socket)

    service.register_session.assert_awaited_once_with("me", None)


@pytest.mark.asyncio
async def test_heartbeat_and_leave_events() -> None:
    view, service, _ = _create_test_view()
    socket = _joined_socket()

    await view.handle_event("heartbeat", {}, socket)
    await view.handle_event("user-leaving", {}, socket)
    await view.handle_event("dance", {}, socket)

    service.heartbeat.assert_awaited_once_with("me")
    service.leave.assert_awaited_once_with("me")


@pytest.mark.asyncio
async def test_events_from_unjoined_socket_are_ignored() -> None:
    view, service, _ = _create_test_view()
    socket = _joined_socket(connection_id="")

    await view.handle_event("heartbeat", {}, socket)

    service.heartbeat.assert_not_awaited()


@pytest.mark.asyncio
async def test_disconnect_hands_off_to_service() -> None:
    """Given a joined socket, when it closes, then the service starts the grace period."""
    view, service, _ = _create_test_view()

    await view.disconnect(_joined_socket())

    service.disconnect.assert_awaited_once_with("me", reason="transport-closed")


@pytest.mark.asyncio
async def test_disconnect_after_shutdown_is_logged_not_raised() -> None:
    view, service, _ = _create_test_view()
    service.disconnect.side_effect = RuntimeError("Location sharing service is not running")

    await view.disconnect(_joined_socket())


@pytest.mark.asyncio
async def test_handle_info_pushes_event_to_client() -> None:
    """Given a published message, when received, then it is pushed to the browser."""
    view, _, _ = _create_test_view()
    socket = _joined_socket()
    envelope = {"event": "receive-location", "payload": {"connectionId": "x"}, "exclude": None}

    with patch(f"{MODULE}.is_connected", return_value=True):
        await view.handle_info(InfoEvent("locations:broadcast", envelope), socket)

    socket.push_event.assert_awaited_once_with("receive-location", {"connectionId": "x"})


@pytest.mark.asyncio
async def test_handle_info_skips_excluded_connection() -> None:
    view, _, _ = _create_test_view()
    socket = _joined_socket()
    envelope = {"event": "receive-location", "payload": {}, "exclude": "me"}

    with patch(f"{MODULE}.is_connected", return_value=True):
        await view.handle_info(InfoEvent("locations:broadcast", envelope), socket)

    socket.push_event.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_info_updates_roster() -> None:
    """Given a roster message, when received, then the rendered roster and counts change."""
    view, _, _ = _create_test_view()
    socket = _joined_socket()
    roster = {
        "participants": [{"connectionId": "me", "displayName": "Calm Fox 7"}],
        "totalCount": 1,
        "onlineCount": 1,
        "offlineCount": 0,
    }

    with patch(f"{MODULE}.is_connected", return_value=True):
        await view.handle_info(
            InfoEvent("locations:broadcast", {"event": "users-list-updated", "payload": roster}),
            socket,
        )

    assert socket.context.roster == roster["participants"]
    assert socket.context.online_count == 1


@pytest.mark.asyncio
async def test_handle_info_ignores_unexpected_payload() -> None:
    view, _, _ = _create_test_view()
    socket = _joined_socket()

    await view.handle_info(InfoEvent("locations:broadcast", "not-a-dict"), socket)

    socket.push_event.assert_not_awaited()


def test_template_renders_roster() -> None:
    """Given assigns with two participants, when rendering the template, then both are listed."""
    view, _, _ = _create_test_view()
    state = MapState(
        connection_id="me",
        display_name="Calm Fox 7",
        session_tag="tag1",
        roster=[
            {"connectionId": "me", "displayName": "Calm Fox 7", "onlineState": "online", "sessionTag": "tag1"},
            {"connectionId": "tab2", "displayName": "Calm Fox 7", "onlineState": "offline", "sessionTag": "tag1"},
        ],
        online_count=1,
        offline_count=1,
    )
    template_path = os.path.join(os.path.dirname(map_module.__file__), "map.html")
    with open(template_path, encoding="utf-8") as f:
        template = ibis.Template(f.read())

    html = template.render(view._build_template_assigns(state))

    assert 'phx-hook="LocationMap"' in html
    assert 'data-connection-id="me"' in html
    assert html.count('class="participant') == 2
    assert "other tab" in html
    assert "1 online" in html


def test_create_map_live_view_binds_collaborators() -> None:
    service = MagicMock()
    publisher = MagicMock()
    config = AppConfig.for_testing(title="Team Map")

    view_class = create_map_live_view(service, publisher, config)
    view = view_class()

    assert issubclass(view_class, MapLiveView)
    assert view.service is service
    assert view.publisher is publisher
    assert view.config.title == "Team Map"
