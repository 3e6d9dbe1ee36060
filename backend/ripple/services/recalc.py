"""
Recalculation service for propagating date changes through the task DAG.

When a task's committed due date changes, every transitively dependent,
incomplete task may need a new start date:
- Dependent.Start = effective start (latest gating date of its dependencies)
- Dates are re-reconciled under each task's fixed/duration policy
- Tasks are processed in topological order so each one sees its
  dependencies' new dates

Everything here is computed against one immutable snapshot and returned
as a batch; nothing is written.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from ripple.logging_config import get_logger
from ripple.services.effective import effective_start, effective_start_from
from ripple.services.graph import get_all_dependent_tasks, topological_order
from ripple.services.reconcile import reconcile
from ripple.services.snapshot import StartDateOrigin, Task, TaskSnapshot, apply_fields

logger = get_logger(__name__)


@dataclass(frozen=True)
class TaskUpdate:
    """Pending field updates for one task."""
    task_id: str
    updates: dict[str, Any] = field(default_factory=dict)
    deadline_overrun: bool = False


def propagate(
    changed_task_id: str,
    snapshot: TaskSnapshot,
    baseline: TaskSnapshot | None = None,
    include_changed: bool = False,
) -> list[TaskUpdate]:
    """
    Compute date updates for every task downstream of changed_task_id.

    Args:
        changed_task_id: The task whose dates (or dependencies) changed
        snapshot: Tasks with the change already applied
        baseline: Tasks before the change, used to tell whether a start
            date was pinned to its old effective start. Defaults to snapshot.
        include_changed: Also reschedule the changed task itself first

    Returns:
        Updates in the order they must be applied

    Raises:
        CycleError: The dependent closure contains a cycle.
    """
    closure_ids = [task.id for task in get_all_dependent_tasks(changed_task_id, snapshot)]
    if include_changed and changed_task_id in snapshot:
        closure_ids.insert(0, changed_task_id)

    if not closure_ids:
        return []

    order = topological_order(snapshot, closure_ids)
    updates = _reschedule(order, snapshot, baseline if baseline is not None else snapshot)

    logger.debug(
        f"Propagated {changed_task_id}: {len(order)} dependents checked, "
        f"{len(updates)} updated"
    )
    return updates


def reschedule_all(snapshot: TaskSnapshot) -> list[TaskUpdate]:
    """
    Bring every task of a project in line with its dependencies.

    Same per-task rule as propagate, over the whole graph. Used after bulk
    imports and to repair schedules written by other tools.
    """
    order = topological_order(snapshot)
    updates = _reschedule(order, snapshot, snapshot)
    logger.debug(f"Rescheduled project: {len(order)} tasks checked, {len(updates)} updated")
    return updates


def apply_updates(snapshot: TaskSnapshot, batch: Iterable[TaskUpdate]) -> TaskSnapshot:
    """Snapshot after the batch has been applied."""
    return snapshot.with_updates(batch)


def _reschedule(
    order: list[str],
    snapshot: TaskSnapshot,
    baseline: TaskSnapshot,
) -> list[TaskUpdate]:
    """
    Apply the cascade rule to each task in order.

    The loop visits each id once; updated tasks are folded into the
    working set so later tasks see them.
    """
    working = snapshot.tasks_by_id()
    updates: list[TaskUpdate] = []

    for task_id in order:
        task = working[task_id]

        # Completed tasks keep their historical dates
        if task.is_completed:
            continue

        dependencies = [working[dep_id] for dep_id in task.depends_on_task_ids if dep_id in working]
        new_start = effective_start_from(dependencies)
        if new_start is None:
            continue

        if not _should_move(task, new_start, baseline):
            continue

        result = reconcile(task, {"start_date": new_start})
        changes = result.changes_from(task)
        if task.start_date_origin is not StartDateOrigin.DERIVED:
            changes["start_date_origin"] = StartDateOrigin.DERIVED
        if result.deadline_overrun:
            logger.warning(
                f"Task {task_id} pushed past its fixed due date {task.due_date}; "
                f"due date moved to {result.due_date}"
            )

        working[task_id] = apply_fields(task, changes)
        updates.append(TaskUpdate(task_id, changes, result.deadline_overrun))

    return updates


def _should_move(task: Task, new_start: date, baseline: TaskSnapshot) -> bool:
    """
    Decide whether a task's start follows a new effective start.

    - No start yet, or the effective start is later: always move forward
    - Effective start is earlier: move back only if the start was derived
      from dependencies, never if the user set it
    """
    current = task.start_date
    if current is None or new_start > current:
        return True
    if new_start == current:
        return False

    if task.start_date_origin is StartDateOrigin.DERIVED:
        return True
    if task.start_date_origin is StartDateOrigin.USER:
        return False

    # Origin unknown: treat the start as derived if it sat on the old effective start
    previous = baseline.get(task.id) or task
    return effective_start(previous, baseline) == current
