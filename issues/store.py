"""
issues/store.py -- SQLAlchemy Core persistence layer for issues.

Pattern: Repository + Data Mapper (same as auth/store.py).

The issues table lives in the same database and MetaData as users so the
owner join is a single query. The join is an outer join: an issue whose
owner row is gone still lists, with owner=None.

Layer rule: issues/ may import auth.store (for the users table) but not
api/ or web/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine

from auth.store import make_engine, metadata, to_iso, users
from core.config import get_settings
from issues.models import Issue, IssueWithOwner, Owner

STATUSES = ("backlog", "todo", "in_progress", "done")
PRIORITIES = ("low", "medium", "high")

issues = Table(
    "issues",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default="backlog"),
    Column("priority", String(10), nullable=False, server_default="medium"),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False, index=True),
    Column("updated_at", String(32), nullable=False),
)


class IssueStore:
    """Repository for Issue entities.

    Usage:
        store = IssueStore()
        store.create_issue(Issue(title="Login button misaligned", user_id=1))
        for row in store.list_issues_with_owner():
            print(row.issue.title, row.owner.email if row.owner else "-")
        store.close()
    """

    def __init__(self, db_url: str | None = None, engine: Engine | None = None) -> None:
        # Passing the UserStore's engine shares one connection pool.
        self.engine: Engine = engine or make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)
        self._owns_engine = engine is None

    def create_issue(self, issue: Issue) -> int:
        """Insert an issue and return its id.

        Raises ValueError for an unknown status or priority.
        """
        if issue.status not in STATUSES:
            raise ValueError(f"Unknown status: {issue.status!r}")
        if issue.priority not in PRIORITIES:
            raise ValueError(f"Unknown priority: {issue.priority!r}")
        created_at = issue.created_at or to_iso(datetime.now(timezone.utc))
        with self.engine.connect() as conn:
            result = conn.execute(
                issues.insert().values(
                    title=issue.title,
                    description=issue.description,
                    status=issue.status,
                    priority=issue.priority,
                    user_id=issue.user_id,
                    created_at=created_at,
                    updated_at=issue.updated_at or created_at,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_issues_with_owner(self) -> list[IssueWithOwner]:
        """Return every issue joined with its owner, newest first."""
        query = (
            select(issues, users.c.id.label("owner_id"), users.c.email.label("owner_email"))
            .select_from(issues.outerjoin(users, issues.c.user_id == users.c.id))
            .order_by(issues.c.created_at.desc(), issues.c.id.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_issue_with_owner(r) for r in rows]

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()


def _row_to_issue_with_owner(row) -> IssueWithOwner:
    owner = Owner(id=row.owner_id, email=row.owner_email) if row.owner_id is not None else None
    return IssueWithOwner(
        issue=Issue(
            id=row.id,
            title=row.title,
            description=row.description,
            status=row.status,
            priority=row.priority,
            user_id=row.user_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
        ),
        owner=owner,
    )
