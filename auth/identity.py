"""
auth/identity.py -- "Who is asking?" for any downstream read.

IdentityResolver is the lookup chain from a request channel to a User:
channel token -> SessionStore.resolve -> UserStore.get_by_id.

Identity checks never raise. A missing session, an unknown user and a
failing database all come back as None, which callers treat as "not
authenticated". Failures are logged so they are not invisible.

Layer rule: no imports from api/, web/, or issues/.
"""

from __future__ import annotations

import logging

from auth.channels import RequestChannel
from auth.models import Session, User
from auth.sessions import SessionStore
from auth.store import UserStore

logger = logging.getLogger("issuedesk.auth")


class IdentityResolver:
    def __init__(self, sessions: SessionStore, user_store: UserStore) -> None:
        self.sessions = sessions
        self.user_store = user_store

    def current_session(self, channel: RequestChannel) -> Session | None:
        return self.sessions.current(channel)

    def current_user(self, channel: RequestChannel) -> User | None:
        """Return the signed-in User for channel, or None."""
        session = None
        try:
            session = self.current_session(channel)
            if session is None:
                return None
            return self.user_store.get_by_id(session.user_id)
        except Exception:
            logger.exception("User lookup failed for session user_id=%s", session.user_id if session else None)
            return None
