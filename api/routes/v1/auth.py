"""
api/routes/v1/auth.py -- Identity endpoint for the REST API.

Routes:
  GET  /api/v1/auth/me    -- current user info (requires auth)

Signin, signup and signout are form actions served by web/routes.py; this
router only answers "who am I" for API clients holding the session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import MeResponse
from auth.dependencies import get_current_user
from auth.models import User

# Auth policy:
# - GET /api/v1/auth/me: requires auth (get_current_user)
router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Return identity information for the currently authenticated user."""
    resp = JSONResponse(
        content=MeResponse(
            user_id=current_user.id,
            email=current_user.email,
            created_at=current_user.created_at or "",
        ).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
