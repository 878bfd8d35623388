"""
auth/tokens.py -- Password hashing and session token signing.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). The salt is random
       per call and embedded in the digest, so two hashes of the same
       password differ and both verify. The _DUMMY_HASH constant enables
       timing equalization at signin so response time does not reveal
       whether an email is registered.

       bcrypt only reads the first 72 bytes of its input, so the password
       is first reduced to a base64 SHA-256 digest (44 bytes). Every byte
       of a long password then counts.

  Session tokens: python-jose with HS256. The token carries the opaque
       session id ("sid"), the user id ("sub") and iat/exp. The signature
       stops a client from forging or editing a session id; the server-side
       mirror row (auth/store.py) is what makes a token revocable.
       decode_session_token() returns None on any failure.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses short
       or missing keys outside debug mode.

Layer rule: no imports from api/, web/, or issues/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from datetime import datetime

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("issuedesk.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def _password_bytes(plain: str) -> bytes:
    # Fixed-length and NUL-free, so bcrypt never truncates or rejects it.
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed or empty digest is a mismatch, never an error.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


# Computed once at module load so the first signin attempt is not measurably
# slower than subsequent ones.
DUMMY_HASH: str = hash_password("issuedesk_timing_dummy")


# ---------------------------------------------------------------------------
# Session token encode / decode
# ---------------------------------------------------------------------------


def encode_session_token(session_id: str, user_id: int, issued_at: datetime, expires_at: datetime) -> str:
    """Sign a session token binding session_id to user_id until expires_at."""
    payload = {
        "sid": session_id,
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session_token(token: str, verify_exp: bool = True) -> tuple[str, int] | None:
    """Verify a session token and return (session_id, user_id), or None.

    Signature, exp and claim shape are all checked; any failure means
    "no session" rather than an exception. verify_exp=False is for teardown,
    where an expired but authentic token still names the row to delete.
    """
    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        return None
    session_id = payload.get("sid")
    subject = payload.get("sub")
    if not isinstance(session_id, str) or not session_id or not isinstance(subject, str):
        return None
    try:
        return session_id, int(subject)
    except ValueError:
        return None
