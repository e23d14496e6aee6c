"""Find CRM tasks that were never started and are past due."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from app.models.engagement import TaskRecord
from app.models.results import OverdueTask, OverdueTasksResult
from app.services.compliance.business_calendar import days_until, is_past

NOT_STARTED = "NOT_STARTED"
UNTITLED_TASK = "Untitled Task"


def check_overdue_tasks(
    tasks: Iterable[TaskRecord], *, now: datetime | None = None
) -> OverdueTasksResult:
    overdue: list[OverdueTask] = []
    for task in tasks:
        if task.status != NOT_STARTED or task.due_at is None:
            continue
        if not is_past(task.due_at, now=now):
            continue
        overdue.append(
            OverdueTask(
                task_id=task.id,
                subject=task.subject or UNTITLED_TASK,
                due_at=task.due_at,
                days_overdue=abs(days_until(task.due_at, now=now)),
            )
        )

    overdue.sort(key=lambda entry: entry.days_overdue, reverse=True)
    return OverdueTasksResult(
        has_overdue_tasks=bool(overdue),
        overdue_count=len(overdue),
        overdue_tasks=overdue,
        oldest_overdue_days=overdue[0].days_overdue if overdue else 0,
    )
