"""
tests/test_identity.py -- Unit tests for auth/identity.py.

The resolver must never raise: no session, expired session and a failing
user lookup all read as "not authenticated".
"""

from __future__ import annotations

from sqlalchemy import update

from auth.store import sessions as sessions_table


def test_no_session_is_anonymous(identity, make_channel):
    channel = make_channel()
    assert identity.current_session(channel) is None
    assert identity.current_user(channel) is None


def test_session_resolves_to_user(identity, sessions, user_store, make_channel):
    user = user_store.create_user("a@b.com", "digest")
    channel = make_channel()
    sessions.create(channel, user.id)
    assert identity.current_session(channel).user_id == user.id
    assert identity.current_user(channel) == user


def test_expired_session_is_anonymous(identity, sessions, user_store, make_channel, clock):
    user = user_store.create_user("a@b.com", "digest")
    channel = make_channel()
    sessions.create(channel, user.id)
    clock.advance(days=1)
    assert identity.current_user(channel) is None


def test_user_lookup_failure_is_logged_and_anonymous(identity, sessions, user_store, make_channel, monkeypatch, caplog):
    user = user_store.create_user("a@b.com", "digest")
    channel = make_channel()
    sessions.create(channel, user.id)

    def broken(user_id):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(user_store, "get_by_id", broken)
    with caplog.at_level("ERROR", logger="issuedesk.auth"):
        assert identity.current_user(channel) is None
    assert "User lookup failed" in caplog.text


def test_session_lookup_failure_is_logged_and_anonymous(identity, sessions, user_store, make_channel, monkeypatch, caplog):
    user = user_store.create_user("a@b.com", "digest")
    channel = make_channel()
    sessions.create(channel, user.id)

    def broken(session_id):
        raise RuntimeError("driver exploded")

    monkeypatch.setattr(user_store, "get_session", broken)
    with caplog.at_level("ERROR", logger="issuedesk.auth"):
        assert identity.current_session(channel) is None
        assert identity.current_user(channel) is None
    assert "Session lookup failed" in caplog.text


def test_corrupt_session_row_is_anonymous(identity, sessions, user_store, make_channel):
    user = user_store.create_user("a@b.com", "digest")
    channel = make_channel()
    sessions.create(channel, user.id)
    with user_store.engine.connect() as conn:
        conn.execute(update(sessions_table).values(expires_at="not-a-timestamp"))
        conn.commit()
    assert identity.current_user(channel) is None
