"""
Assignment emails.

Task and issue handlers call these after their write commits; the email goes
through the same queue as the daily digest.
"""

from __future__ import annotations

from fastapi.concurrency import run_in_threadpool

from officehub.notifications import templates
from officehub.notifications.models import IssueAssignment, TaskAssignment
from officehub.notifications.queue import EmailQueue
from officehub.observability.logging import get_logger
from officehub.observability.telemetry import counter
from officehub.storage.models import Profile
from officehub.storage.repository import DigestStore

logger = get_logger(__name__)


class AssignmentNotifier:
    def __init__(self, store: DigestStore, queue: EmailQueue) -> None:
        self.store = store
        self.queue = queue

    async def _assignee(self, user_id: str) -> Profile | None:
        profile = await run_in_threadpool(self.store.get_profile, user_id)
        if profile is None:
            logger.warning("Assignee %s has no profile; no email sent", user_id)
        return profile

    async def notify_task_assigned(self, task: TaskAssignment, reassigned: bool = False) -> bool:
        """
        Queue the "new task" email for the assignee.

        Returns:
            True if an email was queued.  Store errors propagate so the
            calling handler can decide whether the write still succeeded.
        """
        assignee = await self._assignee(task.assigned_to)
        if assignee is None:
            return False

        html = templates.task_assignment(
            recipient_name=assignee.full_name,
            task_title=task.title,
            task_description=task.description,
            priority=task.priority,
            category=task.category,
            task_id=task.task_id,
            due_date=task.due_date,
        )
        self.queue.enqueue(
            assignee.email, templates.task_assignment_subject(task.title, reassigned), html
        )
        counter("assignment.task_queued")
        return True

    async def notify_issue_assigned(self, issue: IssueAssignment) -> bool:
        assignee = await self._assignee(issue.assigned_to)
        if assignee is None:
            return False

        reporter = "Unknown"
        if issue.reported_by:
            profile = await run_in_threadpool(self.store.get_profile, issue.reported_by)
            if profile is not None:
                reporter = profile.full_name

        html = templates.issue_to_task(
            recipient_name=assignee.full_name,
            issue_title=issue.title,
            issue_description=issue.description,
            priority=issue.priority,
            reported_by=reporter,
            task_id=issue.task_id,
        )
        self.queue.enqueue(assignee.email, templates.issue_to_task_subject(issue.title), html)
        counter("assignment.issue_queued")
        return True
