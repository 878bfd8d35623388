#!/usr/bin/env python3
"""
IssueDesk admin CLI -- maintenance tasks that run outside the web server.

Usage:
  python main.py create-user alice@example.com
  python main.py list-users
  python main.py add-issue alice@example.com "Login button misaligned" --priority high
  python main.py list-issues
  python main.py purge-sessions

Reads DATABASE_URL, SECRET_KEY and the rest of the configuration from the
environment or .env, like the server.
"""

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError

from auth.forms import SignUpForm, field_errors, normalize_email
from auth.sessions import SessionStore
from auth.store import DuplicateEmailError, UserStore
from auth.tokens import hash_password
from core.config import get_settings
from issues.models import Issue
from issues.store import PRIORITIES, STATUSES, IssueStore


def _create_user(user_store: UserStore, args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    confirm = getpass.getpass("Confirm password: ")
    try:
        form = SignUpForm(email=args.email, password=password, confirm_password=confirm)
    except ValidationError as exc:
        for field, messages in field_errors(exc).items():
            for message in messages:
                print(f"  [!] {field}: {message}")
        return 1
    try:
        user = user_store.create_user(form.email, hash_password(form.password))
    except DuplicateEmailError:
        print(f"  [!] {form.email} is already registered.")
        return 1
    if user is None:
        print("  [!] Failed to create user.")
        return 1
    print(f"  Created user {user.id} <{user.email}>")
    return 0


def _list_users(user_store: UserStore) -> int:
    users = user_store.list_users()
    if not users:
        print("  No users.")
        return 0
    for user in users:
        print(f"  #{user.id:<5} {user.created_at}  {user.email}")
    return 0


def _add_issue(user_store: UserStore, issue_store: IssueStore, args: argparse.Namespace) -> int:
    owner = user_store.get_by_email(normalize_email(args.owner))
    if owner is None:
        print(f"  [!] No user with email {args.owner!r}.")
        return 1
    issue_id = issue_store.create_issue(
        Issue(
            title=args.title,
            description=args.description,
            status=args.status,
            priority=args.priority,
            user_id=owner.id,
        )
    )
    print(f"  Created issue {issue_id}")
    return 0


def _list_issues(issue_store: IssueStore) -> int:
    rows = issue_store.list_issues_with_owner()
    if not rows:
        print("  No issues.")
        return 0
    for row in rows:
        issue = row.issue
        owner = row.owner.email if row.owner else "-"
        print(f"  #{issue.id:<5} {issue.status:<12} {issue.priority:<7} {issue.created_at}  {issue.title}  ({owner})")
    return 0


def _purge_sessions(user_store: UserStore) -> int:
    removed = SessionStore(user_store, expire_seconds=get_settings().session_expire_seconds).purge_expired()
    print(f"  Removed {removed} expired session(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="issuedesk", description="IssueDesk admin tasks.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account (prompts for the password).")
    create.add_argument("email")

    sub.add_parser("list-users", help="List accounts by email.")

    add = sub.add_parser("add-issue", help="Create an issue owned by an existing user.")
    add.add_argument("owner", help="Owner's email address.")
    add.add_argument("title")
    add.add_argument("--description", default=None)
    add.add_argument("--status", choices=STATUSES, default="backlog")
    add.add_argument("--priority", choices=PRIORITIES, default="medium")

    sub.add_parser("list-issues", help="List issues, newest first.")
    sub.add_parser("purge-sessions", help="Delete expired session rows.")
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)

    user_store = UserStore()
    issue_store = IssueStore(engine=user_store.engine)
    try:
        if args.command == "create-user":
            return _create_user(user_store, args)
        if args.command == "list-users":
            return _list_users(user_store)
        if args.command == "add-issue":
            return _add_issue(user_store, issue_store, args)
        if args.command == "list-issues":
            return _list_issues(issue_store)
        return _purge_sessions(user_store)
    finally:
        issue_store.close()
        user_store.close()


if __name__ == "__main__":
    sys.exit(main())
