"""
Digest store - the queries the notification core runs against the data store.

``DigestStore`` is the port the digest job depends on; ``SQLiteDigestStore``
implements it over ``officehub.infrastructure.database.Database``.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from officehub.infrastructure.database import Database, retry_on_db_lock
from officehub.observability.logging import get_logger
from officehub.storage.models import IssueSummary, Profile, TaskSummary, parse_preferences

logger = get_logger(__name__)

OVERDUE_STATUSES = ("not_started", "in_progress", "blocked")
TODAY_STATUSES = ("not_started", "in_progress")
PENDING_ISSUE_STATUS = "pending_assignment"

_PRIORITY_ORDER_SQL = """
    CASE priority
        WHEN 'critical' THEN 4
        WHEN 'high' THEN 3
        WHEN 'medium' THEN 2
        WHEN 'low' THEN 1
        ELSE 0
    END
"""


class StoreError(RuntimeError):
    """Raised when the data store cannot answer a query."""


class DigestStore(Protocol):
    def get_profile(self, user_id: str) -> Profile | None: ...

    def list_profiles(self) -> list[Profile]: ...

    def overdue_tasks(self, user_id: str, before: datetime, limit: int) -> list[TaskSummary]: ...

    def tasks_due_between(
        self, user_id: str, start: datetime, end: datetime, limit: int
    ) -> list[TaskSummary]: ...

    def pending_issues(self, limit: int) -> list[IssueSummary]: ...

    def update_notification_preferences(
        self, user_id: str, changes: dict[str, bool]
    ) -> dict[str, Any] | None: ...


def _utc_instant(value: datetime) -> str:
    """
    Bound in the form SQLite's ``datetime()`` yields for stored due dates.

    ``datetime(due_date)`` shifts offset-bearing strings to UTC, so bounds are
    compared as UTC instants too.  Naive values are local time.
    """
    return value.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S")


def _placeholders(values: tuple[str, ...]) -> str:
    return ", ".join("?" for _ in values)


class SQLiteDigestStore:
    """
    SQLite implementation of ``DigestStore``.

    Every sqlite error is re-raised as ``StoreError`` so callers never depend
    on the driver.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def _fetch_all(self, query: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        try:
            with self.db.connection() as conn:
                rows = conn.execute(query, params).fetchall()
        except (sqlite3.Error, FileNotFoundError) as e:
            raise StoreError(str(e)) from e
        return [dict(row) for row in rows]

    def get_profile(self, user_id: str) -> Profile | None:
        rows = self._fetch_all(
            """
            SELECT id, email, full_name, role, notification_preferences
            FROM profiles WHERE id = ?
            """,
            (user_id,),
        )
        return Profile.from_db_row(rows[0]) if rows else None

    def list_profiles(self) -> list[Profile]:
        rows = self._fetch_all(
            """
            SELECT id, email, full_name, role, notification_preferences
            FROM profiles ORDER BY full_name
            """,
            (),
        )
        return [Profile.from_db_row(row) for row in rows]

    def overdue_tasks(self, user_id: str, before: datetime, limit: int) -> list[TaskSummary]:
        rows = self._fetch_all(
            f"""
            SELECT id, title, due_date, priority FROM tasks
            WHERE assigned_to = ?
              AND due_date IS NOT NULL
              AND datetime(due_date) < datetime(?)
              AND status IN ({_placeholders(OVERDUE_STATUSES)})
            ORDER BY datetime(due_date) ASC
            LIMIT ?
            """,
            (user_id, _utc_instant(before), *OVERDUE_STATUSES, limit),
        )
        return [
            TaskSummary(
                id=row["id"], title=row["title"], priority=row["priority"], due_date=row["due_date"]
            )
            for row in rows
        ]

    def tasks_due_between(
        self, user_id: str, start: datetime, end: datetime, limit: int
    ) -> list[TaskSummary]:
        rows = self._fetch_all(
            f"""
            SELECT id, title, priority FROM tasks
            WHERE assigned_to = ?
              AND due_date IS NOT NULL
              AND datetime(due_date) >= datetime(?)
              AND datetime(due_date) < datetime(?)
              AND status IN ({_placeholders(TODAY_STATUSES)})
            ORDER BY {_PRIORITY_ORDER_SQL} DESC
            LIMIT ?
            """,
            (user_id, _utc_instant(start), _utc_instant(end), *TODAY_STATUSES, limit),
        )
        return [TaskSummary(id=row["id"], title=row["title"], priority=row["priority"]) for row in rows]

    def pending_issues(self, limit: int) -> list[IssueSummary]:
        rows = self._fetch_all(
            """
            SELECT i.id, i.title, i.priority, p.full_name AS reporter_name
            FROM issues i
            LEFT JOIN profiles p ON p.id = i.reported_by
            WHERE i.status = ?
            ORDER BY i.created_at DESC
            LIMIT ?
            """,
            (PENDING_ISSUE_STATUS, limit),
        )
        return [
            IssueSummary(
                id=row["id"],
                title=row["title"],
                priority=row["priority"],
                reported_by=row["reporter_name"] or "Unknown",
            )
            for row in rows
        ]

    def update_notification_preferences(
        self, user_id: str, changes: dict[str, bool]
    ) -> dict[str, Any] | None:
        """
        Merge ``changes`` into the stored preferences.

        Returns:
            The merged preferences, or None when the profile doesn't exist
        """
        try:
            merged = self._write_preferences(user_id, changes)
        except (sqlite3.Error, FileNotFoundError) as e:
            raise StoreError(str(e)) from e

        if merged is not None:
            logger.info("Updated notification preferences for user %s", user_id)
        return merged

    @retry_on_db_lock()
    def _write_preferences(self, user_id: str, changes: dict[str, bool]) -> dict[str, Any] | None:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT notification_preferences FROM profiles WHERE id = ?", (user_id,)
            ).fetchone()
            if row is None:
                return None
            merged = parse_preferences(row["notification_preferences"])
            merged.update(changes)
            conn.execute(
                "UPDATE profiles SET notification_preferences = ? WHERE id = ?",
                (json.dumps(merged), user_id),
            )
        return merged

    # Writers used by seeding scripts and tests

    @retry_on_db_lock()
    def upsert_profile(self, profile: Profile) -> Profile:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO profiles (id, email, full_name, role, notification_preferences)
                VALUES (:id, :email, :full_name, :role, :prefs)
                ON CONFLICT(id) DO UPDATE SET
                    email = excluded.email,
                    full_name = excluded.full_name,
                    role = excluded.role,
                    notification_preferences = excluded.notification_preferences
                """,
                {
                    "id": profile.id,
                    "email": profile.email,
                    "full_name": profile.full_name,
                    "role": profile.role,
                    "prefs": json.dumps(profile.notification_preferences)
                    if profile.notification_preferences
                    else None,
                },
            )
        return profile

    @retry_on_db_lock()
    def add_task(
        self,
        *,
        title: str,
        assigned_to: str | None,
        due_date: datetime | str | None,
        priority: str = "medium",
        status: str = "not_started",
        task_id: str | None = None,
    ) -> str:
        task_id = task_id or str(uuid.uuid4())
        # Stored with an explicit offset so datetime(due_date) resolves to UTC
        due = due_date.astimezone().isoformat() if isinstance(due_date, datetime) else due_date
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, title, priority, status, assigned_to, due_date)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (task_id, title, priority, status, assigned_to, due),
            )
        return task_id

    @retry_on_db_lock()
    def add_issue(
        self,
        *,
        title: str,
        reported_by: str | None,
        priority: str = "medium",
        status: str = PENDING_ISSUE_STATUS,
        created_at: datetime | None = None,
        issue_id: str | None = None,
    ) -> str:
        issue_id = issue_id or str(uuid.uuid4())
        created = (created_at or datetime.now()).isoformat(sep=" ")
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO issues (id, title, priority, status, reported_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (issue_id, title, priority, status, reported_by, created),
            )
        return issue_id
