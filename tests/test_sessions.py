"""
tests/test_sessions.py -- Unit tests for auth/sessions.py.

Covers the session lifecycle against a real SQLite store:
  - create: token written to the channel, mirror row persisted
  - resolve: every "no session" case returns None instead of raising
  - expiry: checked on each resolve using the injected clock
  - destroy: revokes the token, clears the channel, idempotent
  - overwrite: a new session replaces the channel's previous one
  - purge_expired: trims only dead rows
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.exc import OperationalError

from auth.tokens import decode_session_token, encode_session_token


def _user(user_store, email: str = "a@b.com"):
    return user_store.create_user(email, "digest")


class TestCreateAndResolve:
    def test_create_sets_channel_token(self, sessions, user_store, make_channel):
        user = _user(user_store)
        channel = make_channel()
        token = sessions.create(channel, user.id)
        assert channel.token == token
        assert channel.max_age == 3600

    def test_token_resolves_to_its_user(self, sessions, user_store, make_channel, clock):
        user = _user(user_store)
        channel = make_channel()
        token = sessions.create(channel, user.id)
        session = sessions.resolve(token)
        assert session is not None
        assert session.user_id == user.id
        assert session.issued_at == clock.now
        assert session.expires_at == clock.now + timedelta(seconds=3600)
        assert sessions.current(channel) == session

    def test_session_ids_are_unique(self, sessions, user_store, make_channel):
        user = _user(user_store)
        ids = {sessions.resolve(sessions.create(make_channel(), user.id)).id for _ in range(20)}
        assert len(ids) == 20

    def test_missing_or_malformed_token_is_none(self, sessions):
        assert sessions.resolve(None) is None
        assert sessions.resolve("") is None
        assert sessions.resolve("garbage") is None

    def test_unknown_session_id_is_none(self, sessions, user_store, clock):
        user = _user(user_store)
        forged = encode_session_token("never-issued", user.id, clock.now, clock.now + timedelta(hours=1))
        assert sessions.resolve(forged) is None

    def test_user_mismatch_is_none(self, sessions, user_store, make_channel, clock):
        alice = _user(user_store, "alice@b.com")
        bob = _user(user_store, "bob@b.com")
        token = sessions.create(make_channel(), alice.id)
        session_id, _ = decode_session_token(token)
        swapped = encode_session_token(session_id, bob.id, clock.now, clock.now + timedelta(hours=1))
        assert sessions.resolve(swapped) is None

    def test_store_failure_is_none(self, sessions, user_store, make_channel, monkeypatch):
        user = _user(user_store)
        token = sessions.create(make_channel(), user.id)

        def broken(session_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(user_store, "get_session", broken)
        assert sessions.resolve(token) is None


class TestExpiry:
    def test_session_expires_after_lifetime(self, sessions, user_store, make_channel, clock):
        user = _user(user_store)
        token = sessions.create(make_channel(), user.id)
        clock.advance(seconds=3599)
        assert sessions.resolve(token) is not None
        clock.advance(seconds=1)
        assert sessions.resolve(token) is None

    def test_purge_expired(self, sessions, user_store, make_channel, clock):
        user = _user(user_store)
        old = sessions.create(make_channel(), user.id)
        clock.advance(seconds=1800)
        fresh = sessions.create(make_channel(), user.id)
        clock.advance(seconds=1900)
        assert sessions.purge_expired() == 1
        old_id, _ = decode_session_token(old, verify_exp=False)
        fresh_id, _ = decode_session_token(fresh, verify_exp=False)
        assert user_store.get_session(old_id) is None
        assert user_store.get_session(fresh_id) is not None


class TestDestroy:
    def test_destroy_revokes_token_and_clears_channel(self, sessions, user_store, make_channel):
        user = _user(user_store)
        channel = make_channel()
        token = sessions.create(channel, user.id)
        sessions.destroy(channel)
        assert channel.token is None
        # The JWT still verifies, but its mirror row is gone.
        assert decode_session_token(token) is not None
        assert sessions.resolve(token) is None

    def test_destroy_is_idempotent(self, sessions, user_store, make_channel):
        user = _user(user_store)
        channel = make_channel()
        sessions.create(channel, user.id)
        sessions.destroy(channel)
        sessions.destroy(channel)
        sessions.destroy(make_channel())
        assert channel.token is None

    def test_destroy_with_garbage_token_clears_channel(self, sessions, make_channel):
        channel = make_channel("garbage")
        sessions.destroy(channel)
        assert channel.token is None


class TestOverwrite:
    def test_new_session_replaces_channel_token(self, sessions, user_store, make_channel):
        alice = _user(user_store, "alice@b.com")
        bob = _user(user_store, "bob@b.com")
        channel = make_channel()
        first = sessions.create(channel, alice.id)
        second = sessions.create(channel, bob.id)
        assert channel.token == second
        assert sessions.resolve(first) is None
        assert sessions.resolve(second).user_id == bob.id
