"""
auth/channels.py -- The request-scoped slot between the auth core and HTTP.

A RequestChannel holds at most one session token for one client and knows
where to send that client next. The session store and the signout use case
only ever talk to a channel; they never reach for a global "current
request". The transport builds one channel per request and passes it in.

CookieChannel is the HTTP implementation: the token lives in an httpOnly
cookie read from the incoming Request and written to the outgoing Response.

Layer rule: no imports from api/, web/, or issues/. Starlette is allowed
here because this module is the adapter onto the HTTP framework.
"""

from __future__ import annotations

from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from core.config import Settings, get_settings

_UNSET = object()


class RequestChannel(Protocol):
    def get(self) -> str | None:
        """Return the token currently held by the channel, if any."""

    def set(self, token: str, max_age: int) -> None:
        """Replace the channel's token."""

    def clear(self) -> None:
        """Drop the channel's token."""

    def redirect(self, location: str) -> None:
        """Send the client to location once the request completes."""


class CookieChannel:
    """RequestChannel backed by a session cookie.

    Writes made during the request are visible to later get() calls in the
    same request, so a signin followed by an identity lookup sees the new
    token before the browser ever stores it.

    response may be None for read-only use (identity lookups in route
    dependencies); set/clear/redirect then raise RuntimeError.
    """

    def __init__(self, request: Request, response: Response | None = None, settings: Settings | None = None) -> None:
        self.request = request
        self.response = response
        self._settings = settings or get_settings()
        self._pending: object = _UNSET

    @property
    def cookie_name(self) -> str:
        return self._settings.session_cookie_name

    def get(self) -> str | None:
        if self._pending is not _UNSET:
            return self._pending  # type: ignore[return-value]
        return self.request.cookies.get(self.cookie_name) or None

    def set(self, token: str, max_age: int) -> None:
        """Write the session token as an httpOnly cookie.

        httponly=True: JS cannot read the cookie (XSS mitigation).
        samesite="lax": not sent on cross-site POST -- CSRF mitigation.
        secure: only sent over HTTPS when SECURE_COOKIES=true.
        max_age: matches the session expiry so both lapse together.
        """
        response = self._writable()
        response.set_cookie(
            self.cookie_name,
            value=token,
            httponly=True,
            samesite="lax",
            secure=self._settings.secure_cookies,
            max_age=max_age,
            path="/",
        )
        self._pending = token

    def clear(self) -> None:
        response = self._writable()
        response.delete_cookie(
            self.cookie_name,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self._settings.secure_cookies,
        )
        self._pending = None

    def redirect(self, location: str) -> None:
        """Turn the outgoing response into a 303 and record the target on request.state.

        The application's catch-all exception handler reads
        request.state.redirect_to, so the redirect still reaches the client
        when the handler raises after calling this.
        """
        response = self._writable()
        response.status_code = 303
        response.headers["location"] = location
        self.request.state.redirect_to = location

    def _writable(self) -> Response:
        if self.response is None:
            raise RuntimeError("CookieChannel was created without a response; it is read-only")
        return self.response
