"""
Row types returned by the digest store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

ADMIN_ROLE = "admin"

# Highest first; unknown priorities sort last
PRIORITY_RANK = {"critical": 4, "high": 3, "medium": 2, "low": 1}


def parse_preferences(raw: str | dict[str, Any] | None) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


@dataclass
class Profile:
    id: str
    email: str
    full_name: str
    role: str = "employee"
    notification_preferences: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def email_opted_out(self) -> bool:
        """Only an explicit ``false`` disables email; a missing preference means enabled."""
        return self.notification_preferences.get("email") is False

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Profile:
        return cls(
            id=row["id"],
            email=row["email"],
            full_name=row["full_name"],
            role=row.get("role") or "employee",
            notification_preferences=parse_preferences(row.get("notification_preferences")),
        )


@dataclass
class TaskSummary:
    id: str
    title: str
    priority: str
    due_date: str | None = None


@dataclass
class IssueSummary:
    id: str
    title: str
    priority: str
    reported_by: str = "Unknown"
