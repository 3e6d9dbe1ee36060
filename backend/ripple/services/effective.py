"""
Effective start date calculation.

A task cannot start before its last-finishing dependency:
- All dependencies completed: the latest completed_at
- Any dependency still open: the latest planned due_date
- No dependency carries a usable date: None ("leave as-is")
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from ripple.services.snapshot import Task, TaskSnapshot


def gating_dates(dependencies: Sequence[Task]) -> list[tuple[Task, date]]:
    """
    Pair each dependency with the date it contributes to the effective start.

    Dependencies without a usable date are left out.
    """
    if all(dep.is_completed for dep in dependencies):
        return [(dep, dep.completed_at) for dep in dependencies if dep.completed_at is not None]
    return [(dep, dep.due_date) for dep in dependencies if dep.due_date is not None]


def effective_start_from(dependencies: Sequence[Task]) -> date | None:
    """Effective start for a task whose existing dependencies are given."""
    if not dependencies:
        return None
    return max((gate for _, gate in gating_dates(dependencies)), default=None)


def effective_start(task: Task, snapshot: TaskSnapshot) -> date | None:
    """
    Calculate the earliest permissible start of a task from its direct dependencies.

    Dependency ids that no longer resolve to a task are ignored.
    """
    if not task.depends_on_task_ids:
        return None
    return effective_start_from(snapshot.dependencies_of(task))


@dataclass
class EffectiveDates:
    """Explicit dates plus the dates predicted from dependencies, for display."""
    start_date: date | None
    due_date: date | None
    predicted_start: date | None = None
    predicted_end: date | None = None
    is_predicted: bool = False
    is_deadline_overdue: bool = False  # Dependency pushes start past a fixed due date


def effective_dates(task: Task, snapshot: TaskSnapshot) -> EffectiveDates:
    """
    Calculate the dates a timeline should show for a task.

    - No explicit dates but a duration: predict both from the effective start
    - Explicit start earlier than the effective start: predict a pushed start;
      the end shifts with it unless the due date is fixed
    """
    result = EffectiveDates(start_date=task.start_date, due_date=task.due_date)

    start = effective_start(task, snapshot)
    if start is None:
        return result

    if task.start_date is None and task.due_date is None and task.duration_days:
        result.predicted_start = start
        result.predicted_end = start + timedelta(days=task.duration_days - 1)
        result.is_predicted = True
    elif task.start_date is not None and start > task.start_date:
        result.predicted_start = start
        if task.duration_days and not task.is_due_date_fixed:
            result.predicted_end = start + timedelta(days=task.duration_days - 1)
        elif task.due_date is not None:
            result.predicted_end = task.due_date
        result.is_predicted = True

        if task.is_due_date_fixed and task.due_date is not None and start > task.due_date:
            result.is_deadline_overdue = True

    return result
