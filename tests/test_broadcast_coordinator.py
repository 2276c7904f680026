"""Tests for BroadcastCoordinator."""

from live_locations.application.services import BroadcastCoordinator, ConnectionRegistry
from live_locations.application.services.broadcast_coordinator import (
    ALL_USERS_LOCATIONS,
    ERROR,
    HEARTBEAT_ACK,
    RECEIVE_LOCATION,
    SESSION_REGISTERED,
    USER_DISCONNECTED,
    USER_REGISTERED,
    USER_STATUS_CHANGED,
    USERS_LIST_UPDATED,
    roster_payload,
)
from live_locations.domain.models import Audience, LocationFix, session_tag_for


def build_registry(clock, attributes):
    registry = ConnectionRegistry(clock)
    registry.on_connect("a", attributes(name="Calm Fox 1", user_id="user_a"))
    registry.on_connect("b", attributes(name="Brisk Owl 2", user_id="user_b"))
    registry.on_location_update("a", LocationFix(latitude=48.0, longitude=11.0))
    return registry


def test_on_connected_sends_snapshot_to_newcomer_and_roster_to_all(clock, attributes) -> None:
    """Given a newcomer, when announced, then it gets identity and located peers privately."""
    registry = build_registry(clock, attributes)
    newcomer = registry.get("b")

    messages = BroadcastCoordinator().on_connected(newcomer, registry.snapshot())

    assert [m.event for m in messages] == [USER_REGISTERED, ALL_USERS_LOCATIONS, USERS_LIST_UPDATED]
    registered, snapshot, roster = messages
    assert registered.audience is Audience.CONNECTION and registered.target == "b"
    assert registered.payload["displayName"] == "Brisk Owl 2"
    assert snapshot.target == "b"
    assert [p["connectionId"] for p in snapshot.payload["participants"]] == ["a"]
    assert roster.audience is Audience.ALL
    assert roster.payload["totalCount"] == 2


def test_location_update_echoes_to_origin_by_default(clock, attributes) -> None:
    registry = build_registry(clock, attributes)

    (message,) = BroadcastCoordinator().on_location_updated(registry.get("a"))

    assert message.event == RECEIVE_LOCATION
    assert message.audience is Audience.ALL
    assert message.exclude is None
    assert message.payload["latitude"] == 48.0
    assert message.payload["displayName"] == "Calm Fox 1"


def test_location_update_can_skip_origin(clock, attributes) -> None:
    """Given echo disabled, when a location is broadcast, then the sender is excluded."""
    registry = build_registry(clock, attributes)

    (message,) = BroadcastCoordinator(echo_location_to_origin=False).on_location_updated(
        registry.get("a")
    )

    assert message.exclude == "a"


def test_heartbeat_acknowledges_without_broadcast(clock, attributes) -> None:
    """Given a routine heartbeat, when handled, then only the sender gets an ack."""
    registry = build_registry(clock, attributes)

    messages = BroadcastCoordinator().on_heartbeat(registry.get("a"), False, clock.now)

    assert [m.event for m in messages] == [HEARTBEAT_ACK]
    assert messages[0].target == "a"
    assert messages[0].payload["serverTime"] == int(clock.now.timestamp() * 1000)


def test_heartbeat_after_reactivation_rebroadcasts_record(clock, attributes) -> None:
    registry = build_registry(clock, attributes)

    messages = BroadcastCoordinator().on_heartbeat(registry.get("a"), True, clock.now)

    assert [m.event for m in messages] == [HEARTBEAT_ACK, RECEIVE_LOCATION]


def test_offline_sends_status_delta(clock, attributes) -> None:
    registry = build_registry(clock, attributes)
    participant = registry.mark_offline("a")

    (message,) = BroadcastCoordinator().on_offline(participant)

    assert message.event == USER_STATUS_CHANGED
    assert message.payload == {
        "connectionId": "a",
        "onlineState": "offline",
        "lastActivityAt": int(clock.now.timestamp() * 1000),
    }


def test_removed_announces_each_id_then_one_roster(clock, attributes) -> None:
    """Given two removals, when announced, then two notices precede a single roster."""
    registry = build_registry(clock, attributes)
    registry.remove("a")
    registry.remove("b")

    messages = BroadcastCoordinator().on_removed(["a", "b"], registry.snapshot())

    assert [m.event for m in messages] == [USER_DISCONNECTED, USER_DISCONNECTED, USERS_LIST_UPDATED]
    assert [m.payload.get("connectionId") for m in messages[:2]] == ["a", "b"]
    assert messages[2].payload["totalCount"] == 0


def test_removed_with_nothing_removed_sends_nothing(clock, attributes) -> None:
    assert BroadcastCoordinator().on_removed([], []) == []


def test_session_registered_returns_token_only_to_owner(clock, attributes) -> None:
    """Given a new session, when announced, then only the owner sees the raw token."""
    registry = build_registry(clock, attributes)
    registry.attach_session("a", "secret-token")

    messages = BroadcastCoordinator().on_session_registered(
        registry.get("a"), "secret-token", ["a"], registry.snapshot()
    )

    private, roster = messages
    assert private.event == SESSION_REGISTERED
    assert private.target == "a"
    assert private.payload["sessionToken"] == "secret-token"
    assert private.payload["sessionTag"] == session_tag_for("secret-token")
    assert "secret-token" not in str(roster.payload)


def test_malformed_update_reports_error_to_sender() -> None:
    (message,) = BroadcastCoordinator().on_malformed_update("a", "send-location")

    assert message.event == ERROR
    assert message.target == "a"
    assert message.payload == {"reason": "malformed-payload", "event": "send-location"}


def test_roster_payload_counts(clock, attributes) -> None:
    registry = build_registry(clock, attributes)
    registry.mark_offline("b")

    payload = roster_payload(registry.snapshot())

    assert payload["totalCount"] == 2
    assert payload["onlineCount"] == 1
    assert payload["offlineCount"] == 1
    assert all("latitude" not in entry for entry in payload["participants"])
