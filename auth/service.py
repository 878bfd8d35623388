"""
auth/service.py -- Signin, signup and signout use cases.

AuthService coordinates the password hasher, the user store and the session
store. It holds no per-request state: every call receives the RequestChannel
of the request it serves.

Per request:
  received -> validated -> (signin: lookup + verify | signup: create)
  -> session issued -> responded
with a short-circuit to a failure envelope at any step.

Error policy:
  signin / signup never raise. Validation problems come back per field,
  bad credentials come back as one indistinguishable message, and anything
  unexpected (database down, etc.) is logged and turned into a generic
  message. A failure is never a partial success: the session is the last
  step, after every check passed.

  signout logs and re-raises, but redirects the channel to the signin page
  on every exit path.

Security:
  Unknown email and wrong password produce byte-identical envelopes, and
  both run one bcrypt verification (DUMMY_HASH stands in for the missing
  user) so response time does not leak which case occurred.

Layer rule: no imports from api/, web/, or issues/.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from auth.channels import RequestChannel
from auth.forms import ActionResponse, SignInForm, SignUpForm
from auth.sessions import SessionStore
from auth.store import DuplicateEmailError, UserStore
from auth.tokens import DUMMY_HASH, hash_password, verify_password

logger = logging.getLogger("issuedesk.auth")

INVALID_CREDENTIALS = "Invalid email or password"
EMAIL_TAKEN = "Email is already registered"


def _invalid_credentials() -> ActionResponse:
    return ActionResponse(
        success=False,
        message=INVALID_CREDENTIALS,
        errors={"email": [INVALID_CREDENTIALS]},
    )


class AuthService:
    def __init__(self, user_store: UserStore, sessions: SessionStore, signin_path: str = "/signin") -> None:
        self.user_store = user_store
        self.sessions = sessions
        self.signin_path = signin_path

    def signin(self, channel: RequestChannel, email: str | None, password: str | None) -> ActionResponse:
        """Check credentials and, on success, start a session in channel."""
        try:
            try:
                form = SignInForm.model_validate({"email": email, "password": password})
            except ValidationError as exc:
                return ActionResponse.validation_failed(exc)

            user = self.user_store.get_by_email(form.email)
            if user is None:
                verify_password(form.password, DUMMY_HASH)
                return _invalid_credentials()

            if not verify_password(form.password, user.hashed_password):
                return _invalid_credentials()

            self.sessions.create(channel, user.id)
            return ActionResponse(success=True, message="Signed in successfully")
        except Exception:
            logger.exception("Sign in failed")
            return ActionResponse(success=False, message="Something went wrong")

    def signup(
        self,
        channel: RequestChannel,
        email: str | None,
        password: str | None,
        confirm_password: str | None,
    ) -> ActionResponse:
        """Create an account and, on success, start a session in channel.

        A duplicate email is rejected outright; the existing account is left
        untouched.
        """
        try:
            try:
                form = SignUpForm.model_validate(
                    {"email": email, "password": password, "confirmPassword": confirm_password}
                )
            except ValidationError as exc:
                return ActionResponse.validation_failed(exc)

            try:
                user = self.user_store.create_user(form.email, hash_password(form.password))
            except DuplicateEmailError:
                logger.info("Sign up rejected: email already registered")
                return ActionResponse(success=False, message=EMAIL_TAKEN, errors={"email": [EMAIL_TAKEN]})

            if user is None:
                return ActionResponse(success=False, message="try again", error="failed to create user")

            self.sessions.create(channel, user.id)
            return ActionResponse(success=True, message="Account created successfully")
        except Exception:
            logger.exception("Sign up failed")
            return ActionResponse(
                success=False,
                message="An error occurred while creating your account",
                error="Failed to create account",
            )

    def signout(self, channel: RequestChannel) -> None:
        """End the channel's session, then send the client to the signin page.

        The redirect is issued in every exit path, including when destroy
        raises; the error itself still propagates to the caller.
        """
        try:
            self.sessions.destroy(channel)
        except Exception:
            logger.exception("Sign out failed")
            raise
        finally:
            channel.redirect(self.signin_path)
