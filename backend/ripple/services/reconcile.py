"""
Date reconciliation for a single task.

Keeps start_date, due_date, duration_days and is_due_date_fixed consistent
after a direct edit:

    due_date = start_date + duration_days - 1
    duration_days = (due_date - start_date).days + 1

Which side is recomputed depends on what was edited and on
is_due_date_fixed. Dependencies are never consulted here.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, TypedDict

from ripple.exceptions import InvalidDateRangeError, InvalidDurationError
from ripple.services.snapshot import Task


class DateEdit(TypedDict, total=False):
    """The date fields a caller changed. A key present with None clears the field."""
    start_date: date | None
    due_date: date | None
    duration_days: int | None
    is_due_date_fixed: bool


DATE_FIELDS = ("start_date", "due_date", "duration_days", "is_due_date_fixed")


def days_between(start: date, end: date) -> int:
    return (end - start).days


def end_from_duration(start: date, duration_days: int) -> date:
    """Due date of a task spanning duration_days, both endpoints inclusive."""
    return start + timedelta(days=duration_days - 1)


def span_days(start: date, end: date) -> int:
    """Inclusive day count between two dates."""
    return days_between(start, end) + 1


@dataclass(frozen=True)
class ReconciledDates:
    start_date: date | None
    due_date: date | None
    duration_days: int | None
    is_due_date_fixed: bool
    deadline_overrun: bool = False  # The start was pushed past a due date that could not move

    def changes_from(self, task: Task) -> dict[str, Any]:
        """Fields whose reconciled value differs from the task's current value."""
        return {
            field: getattr(self, field)
            for field in DATE_FIELDS
            if getattr(self, field) != getattr(task, field)
        }


def reconcile(task: Task, edit: DateEdit) -> ReconciledDates:
    """
    Compute a task's date fields after an edit.

    Rules, first match wins:
    1. due_date edited: the due date becomes the anchor (fixed); the
       duration is recomputed from a known start
    2. duration_days edited: the duration becomes the anchor; the due date
       is recomputed from a known start
    3. start_date edited: a fixed due date stays and the duration follows;
       otherwise the duration stays and the due date follows

    Raises:
        InvalidDateRangeError: An edited due date falls before the start.
        InvalidDurationError: An edited duration is below one day.
    """
    start = edit["start_date"] if "start_date" in edit else task.start_date
    due = edit["due_date"] if "due_date" in edit else task.due_date
    duration = edit["duration_days"] if "duration_days" in edit else task.duration_days
    fixed = edit.get("is_due_date_fixed")
    if fixed is None:
        fixed = task.is_due_date_fixed
    overrun = False

    if edit.get("due_date") is not None:
        fixed = True
        if start is not None:
            if due < start:
                raise InvalidDateRangeError(task.id, start, due)
            duration = span_days(start, due)

    elif edit.get("duration_days") is not None:
        if duration < 1:
            raise InvalidDurationError(task.id, duration)
        fixed = False
        if start is not None:
            due = end_from_duration(start, duration)

    elif edit.get("start_date") is not None:
        if not fixed and duration is None and task.start_date and task.due_date:
            # Keep the span the task had before the move
            duration = span_days(task.start_date, task.due_date)

        if not fixed and duration is not None:
            due = end_from_duration(start, duration)
        elif due is not None:
            if due < start:
                due = start
                duration = 1
                overrun = True
            else:
                duration = span_days(start, due)

    return ReconciledDates(
        start_date=start,
        due_date=due,
        duration_days=duration,
        is_due_date_fixed=fixed,
        deadline_overrun=overrun,
    )
