from __future__ import annotations

from app.models.engagement import TaskRecord
from app.services.compliance.overdue_tasks import UNTITLED_TASK, check_overdue_tasks
from tests.helpers.deals import NOW


def test_only_not_started_past_due_tasks_are_overdue():
    tasks = [
        TaskRecord(id="t1", subject="Send contract", status="NOT_STARTED", due_at="2025-01-13T15:00:00Z"),
        TaskRecord(id="t2", subject=None, status="NOT_STARTED", due_at="2025-01-05T15:00:00Z"),
        TaskRecord(id="t3", subject="Done already", status="COMPLETED", due_at="2025-01-01T15:00:00Z"),
        TaskRecord(id="t4", subject="Later", status="NOT_STARTED", due_at="2025-01-20T15:00:00Z"),
        TaskRecord(id="t5", subject="Today", status="NOT_STARTED", due_at="2025-01-15T15:00:00Z"),
        TaskRecord(id="t6", subject="No date", status="NOT_STARTED", due_at=None),
    ]

    result = check_overdue_tasks(tasks, now=NOW)

    assert result.has_overdue_tasks
    assert result.overdue_count == 2
    assert [task.task_id for task in result.overdue_tasks] == ["t2", "t1"]
    assert [task.days_overdue for task in result.overdue_tasks] == [10, 2]
    assert result.overdue_tasks[0].subject == UNTITLED_TASK
    assert result.oldest_overdue_days == 10


def test_no_tasks():
    result = check_overdue_tasks([], now=NOW)

    assert not result.has_overdue_tasks
    assert result.overdue_count == 0
    assert result.oldest_overdue_days == 0
