"""
API request and response models for IssueDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
issues/models.py, which own the internal domain representation. Route
handlers map between the two.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from issues.models import IssueWithOwner

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    created_at: str


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class OwnerResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str


class IssueResponse(BaseModel):
    """One issue in GET /api/v1/issues, with its owner embedded."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str]
    status: str
    priority: str
    created_at: str
    updated_at: str
    owner: Optional[OwnerResponse]

    @classmethod
    def from_domain(cls, row: IssueWithOwner) -> "IssueResponse":
        """Build an IssueResponse from the store's joined row."""
        issue = row.issue
        owner = OwnerResponse(id=row.owner.id, email=row.owner.email) if row.owner is not None else None
        return cls(
            id=issue.id,
            title=issue.title,
            description=issue.description,
            status=issue.status,
            priority=issue.priority,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
            owner=owner,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
