"""
issues/models.py -- Domain dataclasses for the IssueDesk issue tracker.

These are pure data containers with zero logic. Queries live in
issues/store.py.

IssueWithOwner is the shape of the read path: an issue plus the account that
owns it. owner is None when the owning user row no longer exists.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Owner:
    """Public view of a User -- never carries the password hash."""

    id: int
    email: str


@dataclass
class Issue:
    """A tracked issue.

    id is None before the record is written to the database.
    """

    title: str
    user_id: int
    description: Optional[str] = None
    status: str = "backlog"  # "backlog" | "todo" | "in_progress" | "done"
    priority: str = "medium"  # "low" | "medium" | "high"
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert when empty
    updated_at: str = ""


@dataclass
class IssueWithOwner:
    issue: Issue
    owner: Optional[Owner]
