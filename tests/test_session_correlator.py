"""Tests for SessionCorrelator."""

from live_locations.application.services import SessionCorrelator


def test_register_without_token_mints_one() -> None:
    """Given no token, when registering, then a fresh non-empty token is assigned."""
    correlator = SessionCorrelator()

    token = correlator.register("c1")

    assert token
    assert correlator.session_of("c1") == token
    assert correlator.connections_for(token) == ["c1"]


def test_blank_token_is_treated_as_missing() -> None:
    """Given a whitespace token, when registering, then a new token is minted."""
    correlator = SessionCorrelator()

    token = correlator.register("c1", "   ")

    assert token.strip() == token
    assert token != ""


def test_tabs_sharing_a_token_are_grouped() -> None:
    """Given two tabs with the same token, when both register, then they share one session."""
    correlator = SessionCorrelator()

    correlator.register("tab1", "shared")
    correlator.register("tab2", "shared")

    assert correlator.connections_for("shared") == ["tab1", "tab2"]
    assert correlator.session_count() == 1


def test_registering_again_with_same_token_does_not_duplicate() -> None:
    """Given a registered connection, when it registers again, then it is listed once."""
    correlator = SessionCorrelator()
    correlator.register("c1", "tok")

    correlator.register("c1", "tok")

    assert correlator.connections_for("tok") == ["c1"]


def test_registering_under_new_token_moves_connection() -> None:
    """Given a connection in one session, when it registers another token, then it moves."""
    correlator = SessionCorrelator()
    correlator.register("c1", "old")

    correlator.register("c1", "new")

    assert correlator.connections_for("old") == []
    assert correlator.connections_for("new") == ["c1"]
    assert correlator.session_count() == 1


def test_unregister_drops_empty_sessions_and_is_idempotent() -> None:
    """Given a single-connection session, when unregistered twice, then the session is gone."""
    correlator = SessionCorrelator()
    correlator.register("c1", "tok")

    correlator.unregister("c1")
    correlator.unregister("c1")

    assert correlator.session_of("c1") is None
    assert correlator.session_count() == 0


def test_connections_for_returns_a_copy() -> None:
    """Given a session, when the returned list is mutated, then the session is unaffected."""
    correlator = SessionCorrelator()
    correlator.register("c1", "tok")

    correlator.connections_for("tok").append("intruder")

    assert correlator.connections_for("tok") == ["c1"]
