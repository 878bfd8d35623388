"""
api/routes/v1/issues.py -- Issue listing endpoint.

Read-only: issues are returned joined with their owner, newest first.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import ErrorDetail, IssueResponse
from auth.dependencies import get_current_user
from issues.store import IssueStore

logger = logging.getLogger("issuedesk.api")

# Auth policy:
# - GET /api/v1/issues: requires auth -- issue data is internal
# Router-level dependency enforces auth; the handler does not repeat it.
router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/issues", response_model=list[IssueResponse])
def list_issues(request: Request) -> list[IssueResponse]:
    """Return every issue with its owner, ordered by created_at descending."""
    store: IssueStore = request.app.state.issue_store
    try:
        rows = store.list_issues_with_owner()
    except Exception as exc:
        logger.exception("Failed to fetch issues")
        raise HTTPException(
            status_code=503,
            detail=ErrorDetail(code="issues_unavailable", message="Failed to fetch issues").model_dump(),
        ) from exc
    return [IssueResponse.from_domain(r) for r in rows]
