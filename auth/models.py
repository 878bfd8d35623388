"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
session/auth services do the work.

Layer rule: no imports from api/, web/, or issues/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    email is stored normalized (stripped, lower-cased) so lookups and the
    UNIQUE index are case-insensitive in effect. hashed_password is a bcrypt
    digest; the plaintext is never stored.
    """

    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Session:
    """Server-side mirror of an issued session token.

    id is the opaque random session id carried in the token's "sid" claim.
    The token is only honoured while a row with this id exists and
    expires_at lies in the future.
    """

    id: str
    user_id: int
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
