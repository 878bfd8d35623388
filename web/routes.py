"""
web/routes.py -- Form actions for the IssueDesk web client.

The browser's signin and signup forms post here as
application/x-www-form-urlencoded (or multipart) and get back the JSON
result envelope, which the form renders next to its inputs. The session
cookie rides on the same response.

Routes:
  POST /signin    -- email, password                    -> envelope
  POST /signup    -- email, password, confirmPassword   -> envelope
  POST /signout   -- clear cookie, 303 to /signin

Missing form fields arrive as "" and are reported by the form validation,
not as a 422, so every signin/signup answer has the envelope shape.
"""

import logging

from fastapi import APIRouter, Form, Request, Response
from fastapi.responses import RedirectResponse

from auth.channels import CookieChannel
from auth.dependencies import get_auth_service

logger = logging.getLogger("issuedesk.web")

router = APIRouter()


@router.post("/signin")
def signin_action(
    request: Request,
    response: Response,
    email: str = Form(""),
    password: str = Form(""),
) -> dict:
    """Handle the signin form. Sets the session cookie on success."""
    result = get_auth_service(request).signin(CookieChannel(request, response), email, password)
    response.headers["Cache-Control"] = "no-store"
    return result.to_dict()


@router.post("/signup")
def signup_action(
    request: Request,
    response: Response,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
) -> dict:
    """Handle the signup form. Sets the session cookie on success."""
    result = get_auth_service(request).signup(CookieChannel(request, response), email, password, confirm_password)
    response.headers["Cache-Control"] = "no-store"
    return result.to_dict()


@router.post("/signout")
def signout_action(request: Request) -> RedirectResponse:
    """Clear the session and redirect to the signin page.

    If teardown fails the error propagates; the catch-all handler in
    api/main.py still sends the redirect recorded by the channel.
    """
    resp = RedirectResponse(get_auth_service(request).signin_path, status_code=303)
    get_auth_service(request).signout(CookieChannel(request, resp))
    return resp
