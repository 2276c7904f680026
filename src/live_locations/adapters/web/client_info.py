"""Utilities for extracting client information from LiveView sockets.

These helpers stay small and tolerant of missing data so the view, the
identity lookup and the roster endpoint can all use them.
"""

from __future__ import annotations

from typing import Any

from live_locations.domain.models import ClientInfo

_UNKNOWN = "unknown"
_MAX_USER_AGENT_LENGTH = 200


def _decode_header_value(value: Any) -> str:
    """Decode a header value into a readable string."""
    if isinstance(value, bytes):
        return value.decode("latin-1", errors="replace")
    return str(value)


def get_client_info_from_scope(scope: dict[str, Any] | None) -> ClientInfo:
    """Extract client IP and user agent from an ASGI scope-like mapping.

    Unavailable values fall back to ``"unknown"``.
    """
    if not isinstance(scope, dict):
        return ClientInfo(ip=_UNKNOWN, user_agent=_UNKNOWN)

    user_agent = _UNKNOWN
    forwarded_for: str | None = None

    for name, value in scope.get("headers") or []:
        decoded_name = _decode_header_value(name).lower()
        if decoded_name == "user-agent":
            user_agent = _decode_header_value(value)
            if len(user_agent) > _MAX_USER_AGENT_LENGTH:
                user_agent = f"{user_agent[: _MAX_USER_AGENT_LENGTH - 3]}..."
        elif decoded_name == "x-forwarded-for":
            forwarded_for = _decode_header_value(value)

    # X-Forwarded-For may contain a list: client, proxy1, proxy2, ...
    ip = _UNKNOWN
    if forwarded_for and forwarded_for.split(",")[0].strip():
        ip = forwarded_for.split(",")[0].strip()
    else:
        client = scope.get("client")
        if isinstance(client, (list, tuple)) and client:
            candidate = client[0]
            if isinstance(candidate, (str, bytes)):
                ip = _decode_header_value(candidate)

    return ClientInfo(ip=ip, user_agent=user_agent)


def get_client_info_from_socket(socket: Any) -> ClientInfo:
    """Extract client info from a socket's ASGI scope.

    Looks at ``socket.scope`` first, then at the scope of the underlying
    ``socket.websocket``.
    """
    scope = getattr(socket, "scope", None)
    if not isinstance(scope, dict):
        scope = getattr(getattr(socket, "websocket", None), "scope", None)
    return get_client_info_from_scope(scope)
