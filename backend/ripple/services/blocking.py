"""
Blocking and bottleneck diagnostics.

Read-only helpers used to annotate tasks ("blocked by X"). Nothing here
may stop scheduling: ambiguous cases return None instead of raising.
"""

from dataclasses import dataclass, field
from datetime import date

from ripple.exceptions import AmbiguousDateWarning, DanglingReferenceWarning, ScheduleWarning
from ripple.services.effective import EffectiveDates, effective_dates, effective_start, gating_dates
from ripple.services.snapshot import Task, TaskSnapshot


def is_blocked(task: Task, snapshot: TaskSnapshot) -> bool:
    """True if any existing dependency is still incomplete."""
    return any(not dep.is_completed for dep in snapshot.dependencies_of(task))


def bottleneck(task: Task, snapshot: TaskSnapshot) -> Task | None:
    """
    Get the dependency that currently gates the task's effective start.

    Uses the same dates as effective_start; on ties the dependency listed
    first wins.
    """
    dependencies = snapshot.dependencies_of(task)
    if not dependencies:
        return None

    latest: tuple[Task, date] | None = None
    for dep, gate in gating_dates(dependencies):
        if latest is None or gate > latest[1]:
            latest = (dep, gate)
    return latest[0] if latest else None


@dataclass
class TaskInsight:
    """Everything a timeline needs to annotate one task."""
    task_id: str
    effective_start: date | None
    dates: EffectiveDates
    is_blocked: bool
    bottleneck_id: str | None
    dangling_dependency_ids: list[str] = field(default_factory=list)


def task_insight(task: Task, snapshot: TaskSnapshot) -> TaskInsight:
    gate = bottleneck(task, snapshot)
    return TaskInsight(
        task_id=task.id,
        effective_start=effective_start(task, snapshot),
        dates=effective_dates(task, snapshot),
        is_blocked=is_blocked(task, snapshot),
        bottleneck_id=gate.id if gate else None,
        dangling_dependency_ids=snapshot.dangling_dependency_ids(task),
    )


def collect_warnings(snapshot: TaskSnapshot) -> list[ScheduleWarning]:
    """
    Collect non-fatal schedule conditions.

    - DanglingReferenceWarning for every dependency id without a task
    - AmbiguousDateWarning for open tasks whose dependencies give no date
    """
    warnings: list[ScheduleWarning] = []
    for task in snapshot:
        for missing_id in snapshot.dangling_dependency_ids(task):
            warnings.append(DanglingReferenceWarning(task.id, missing_id))
        if (
            not task.is_completed
            and snapshot.dependencies_of(task)
            and effective_start(task, snapshot) is None
        ):
            warnings.append(AmbiguousDateWarning(task.id))
    return warnings
