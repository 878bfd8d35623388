"""
auth/sessions.py -- Session issuance, lookup, expiry and teardown.

A session has two halves:
  - the signed token handed to the client through its RequestChannel, and
  - the mirror row in the sessions table (auth/store.py).

A token resolves only while both agree: the signature and exp check out,
the row for its "sid" exists, the row's user_id matches "sub", and the
row's expires_at is still in the future. Deleting the row (signout,
purge) revokes the token even though the JWT itself would still verify.

Lifecycle:
  non-existent -> active (create) -> active | expired (checked on every
  resolve) -> destroyed (destroy, terminal). Expired rows are trimmed by
  purge_expired(); nothing depends on that for correctness.

Layer rule: no imports from api/, web/, or issues/.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.channels import RequestChannel
from auth.models import Session
from auth.store import UserStore
from auth.tokens import decode_session_token, encode_session_token

logger = logging.getLogger("issuedesk.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Create, resolve and destroy sessions bound to a RequestChannel.

    clock is injectable so tests can move time past expires_at without
    sleeping.
    """

    def __init__(
        self,
        user_store: UserStore,
        expire_seconds: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.user_store = user_store
        self.expire_seconds = expire_seconds
        self._clock = clock

    def create(self, channel: RequestChannel, user_id: int) -> str:
        """Issue a new session for user_id and store its token in channel.

        Any session the channel already carried is deleted first so a client
        never holds two live sessions.
        """
        previous = self.resolve(channel.get())
        if previous is not None:
            self.user_store.delete_session(previous.id)

        issued_at = self._clock()
        session = Session(
            id=secrets.token_urlsafe(32),
            user_id=user_id,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.expire_seconds),
        )
        self.user_store.create_session(session)
        token = encode_session_token(session.id, user_id, session.issued_at, session.expires_at)
        channel.set(token, max_age=self.expire_seconds)
        logger.info("Session issued for user_id=%s", user_id)
        return token

    def resolve(self, token: str | None) -> Session | None:
        """Return the live Session for token, or None.

        None covers every "no session" outcome: no token, bad signature,
        expired token, unknown or revoked session id, user mismatch, expired
        mirror row, and store failure. Never raises.
        """
        if not token:
            return None
        claims = decode_session_token(token)
        if claims is None:
            return None
        session_id, user_id = claims
        try:
            session = self.user_store.get_session(session_id)
            if session is None or session.user_id != user_id:
                return None
            if session.is_expired(self._clock()):
                return None
        except Exception:
            logger.exception("Session lookup failed")
            return None
        return session

    def current(self, channel: RequestChannel) -> Session | None:
        return self.resolve(channel.get())

    def destroy(self, channel: RequestChannel) -> None:
        """Delete the channel's session and clear its token. Idempotent.

        The mirror row is removed by sid even when the token has already
        expired, so a stale row never outlives an explicit signout.
        """
        token = channel.get()
        if token:
            claims = decode_session_token(token, verify_exp=False)
            if claims is not None:
                session_id, _user_id = claims
                self.user_store.delete_session(session_id)
        channel.clear()

    def purge_expired(self) -> int:
        """Delete every expired session row. Returns the number removed."""
        removed = self.user_store.purge_expired_sessions(self._clock())
        if removed:
            logger.info("Purged %d expired session(s)", removed)
        return removed
