"""Decides which outbound messages each presence event produces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from live_locations.domain.models import OnlineState, OutboundMessage, session_tag_for, to_epoch_ms

if TYPE_CHECKING:
    from datetime import datetime

    from live_locations.domain.models import Participant

ALL_USERS_LOCATIONS = "all-users-locations"
USER_REGISTERED = "user-registered"
SESSION_REGISTERED = "session-registered"
RECEIVE_LOCATION = "receive-location"
USER_STATUS_CHANGED = "user-status-changed"
USERS_LIST_UPDATED = "users-list-updated"
USER_DISCONNECTED = "user-disconnected"
HEARTBEAT_ACK = "heartbeat-ack"
ERROR = "error"


def roster_payload(participants: list[Participant]) -> dict[str, Any]:
    """Cosmetic and status fields for every participant plus counts."""
    online = sum(1 for p in participants if p.online_state is OnlineState.ONLINE)
    return {
        "participants": [p.to_roster_entry() for p in participants],
        "totalCount": len(participants),
        "onlineCount": online,
        "offlineCount": len(participants) - online,
    }


class BroadcastCoordinator:
    """Pure dispatch from presence outcomes to outbound messages.

    Nothing here touches state; every method only builds messages.
    """

    def __init__(self, echo_location_to_origin: bool = True) -> None:
        """Initialize the coordinator.

        Args:
            echo_location_to_origin: Whether location broadcasts also go back
                to the connection that sent the update. Clients reconcile
                their own marker from the echoed server copy.
        """
        self.echo_location_to_origin = echo_location_to_origin

    def on_connected(
        self, participant: Participant, participants: list[Participant]
    ) -> list[OutboundMessage]:
        """Identity and located snapshot to the newcomer, roster to everyone."""
        connection_id = participant.connection_id
        return [
            OutboundMessage.unicast(
                connection_id,
                USER_REGISTERED,
                {
                    "connectionId": connection_id,
                    "userId": participant.stable_user_id,
                    "displayName": participant.display_name,
                    "color": participant.color,
                    "deviceClass": participant.device_class,
                },
            ),
            OutboundMessage.unicast(
                connection_id,
                ALL_USERS_LOCATIONS,
                {"participants": [p.to_payload() for p in participants if p.location is not None]},
            ),
            OutboundMessage.broadcast(USERS_LIST_UPDATED, roster_payload(participants)),
        ]

    def on_session_registered(
        self,
        participant: Participant,
        session_token: str,
        connection_ids: list[str],
        participants: list[Participant],
    ) -> list[OutboundMessage]:
        """Hand the token back to its owner and refresh everyone's roster."""
        return [
            OutboundMessage.unicast(
                participant.connection_id,
                SESSION_REGISTERED,
                {
                    "sessionToken": session_token,
                    "sessionTag": session_tag_for(session_token),
                    "userId": participant.stable_user_id,
                    "connectionIds": connection_ids,
                },
            ),
            OutboundMessage.broadcast(USERS_LIST_UPDATED, roster_payload(participants)),
        ]

    def on_location_updated(self, participant: Participant) -> list[OutboundMessage]:
        """The full updated record to every connection."""
        exclude = None if self.echo_location_to_origin else participant.connection_id
        return [OutboundMessage.broadcast(RECEIVE_LOCATION, participant.to_payload(), exclude)]

    def on_heartbeat(
        self, participant: Participant, reactivated: bool, server_time: datetime
    ) -> list[OutboundMessage]:
        """Acknowledge; re-announce the record only if it came back online."""
        messages = [
            OutboundMessage.unicast(
                participant.connection_id, HEARTBEAT_ACK, {"serverTime": to_epoch_ms(server_time)}
            )
        ]
        if reactivated:
            messages.append(OutboundMessage.broadcast(RECEIVE_LOCATION, participant.to_payload()))
        return messages

    def on_offline(self, participant: Participant) -> list[OutboundMessage]:
        return [OutboundMessage.broadcast(USER_STATUS_CHANGED, participant.to_status_delta())]

    def on_removed(
        self, connection_ids: list[str], participants: list[Participant]
    ) -> list[OutboundMessage]:
        """A removal notice per connection, then one roster refresh."""
        if not connection_ids:
            return []
        messages = [
            OutboundMessage.broadcast(USER_DISCONNECTED, {"connectionId": connection_id})
            for connection_id in connection_ids
        ]
        messages.append(OutboundMessage.broadcast(USERS_LIST_UPDATED, roster_payload(participants)))
        return messages

    def on_malformed_update(self, connection_id: str, event: str) -> list[OutboundMessage]:
        return [
            OutboundMessage.unicast(
                connection_id, ERROR, {"reason": "malformed-payload", "event": event}
            )
        ]
