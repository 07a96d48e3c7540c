from __future__ import annotations

from dataclasses import dataclass, field

from officehub.config import EMAIL_MAX_ATTEMPTS
from officehub.storage.models import IssueSummary, TaskSummary


@dataclass
class EmailJob:
    """One queued email; owned by the queue until delivered or dropped."""

    recipient: str
    subject: str
    html: str
    attempts: int = 0
    max_attempts: int = EMAIL_MAX_ATTEMPTS

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


@dataclass
class DigestPayload:
    recipient_name: str
    overdue_tasks: list[TaskSummary] = field(default_factory=list)
    today_tasks: list[TaskSummary] = field(default_factory=list)
    pending_issues: list[IssueSummary] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.overdue_tasks or self.today_tasks or self.pending_issues)


@dataclass
class TaskAssignment:
    """A task that was just created for, or moved to, ``assigned_to``."""

    task_id: str
    title: str
    assigned_to: str
    priority: str = "medium"
    category: str = ""
    description: str | None = None
    due_date: str | None = None


@dataclass
class IssueAssignment:
    """An issue an admin turned into a task for ``assigned_to``."""

    task_id: str
    title: str
    description: str
    assigned_to: str
    priority: str = "medium"
    reported_by: str | None = None
