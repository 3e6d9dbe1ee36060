"""
Scheduling pipeline used by the API and background jobs.

Each entry point takes a snapshot, runs validation, reconciliation and
propagation, and returns the full batch of updates: the edited task
first, then every cascaded dependent in the order they must be applied.
Nothing is persisted here; the store applies the batch.
"""

import enum
from datetime import date

from ripple.logging_config import get_logger
from ripple.services.effective import effective_start
from ripple.services.graph import validate_dependency
from ripple.services.reconcile import DateEdit, reconcile
from ripple.services.recalc import TaskUpdate, propagate
from ripple.services.snapshot import StartDateOrigin, Task, TaskSnapshot, apply_fields

logger = get_logger(__name__)


class DragMode(str, enum.Enum):
    """How a bar was dragged on the timeline."""
    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


def edit_task_dates(
    snapshot: TaskSnapshot,
    task_id: str,
    edit: DateEdit,
) -> list[TaskUpdate]:
    """
    Apply a direct date edit (form fields) and cascade it.

    Dependents are only recalculated when the task's due date changed.

    Raises:
        NotFoundError: The task is not in the snapshot.
        ValidationError: The edit leaves the task with an impossible range.
    """
    task = snapshot.require(task_id)
    result = reconcile(task, edit)

    changes = result.changes_from(task)
    if edit.get("start_date") is not None and task.start_date_origin is not StartDateOrigin.USER:
        changes["start_date_origin"] = StartDateOrigin.USER

    if not changes:
        return []

    batch = [TaskUpdate(task_id, changes, result.deadline_overrun)]
    if result.due_date != task.due_date:
        after = snapshot.with_tasks([apply_fields(task, changes)])
        batch.extend(propagate(task_id, after, baseline=snapshot))

    logger.info(f"Edited task {task_id}: {len(batch)} updates ({len(batch) - 1} cascaded)")
    return batch


def clamp_to_dependencies(
    task: Task,
    snapshot: TaskSnapshot,
    mode: DragMode,
    start_date: date | None,
    due_date: date | None,
) -> tuple[date | None, date | None]:
    """
    Keep a dragged start from landing before the task's effective start.

    A moved bar keeps its length; a bar resized from the left only gets
    its start clamped.
    """
    if mode is DragMode.RESIZE_END or start_date is None:
        return start_date, due_date

    floor = effective_start(task, snapshot)
    if floor is None or start_date >= floor:
        return start_date, due_date

    if mode is DragMode.MOVE and due_date is not None:
        due_date = floor + (due_date - start_date)
    return floor, due_date


def drag_task(
    snapshot: TaskSnapshot,
    task_id: str,
    mode: DragMode,
    start_date: date | None = None,
    due_date: date | None = None,
) -> list[TaskUpdate]:
    """
    Apply a timeline drag and cascade it.

    - MOVE: shift the bar; a fixed due date moves with it
    - RESIZE_START: change the start, keep the current due date
    - RESIZE_END: change the due date (which becomes fixed)
    """
    task = snapshot.require(task_id)
    start_date, due_date = clamp_to_dependencies(task, snapshot, mode, start_date, due_date)

    edit: DateEdit = {}
    if mode is DragMode.MOVE:
        if start_date is None:
            return []
        edit["start_date"] = start_date
        if task.is_due_date_fixed:
            if due_date is None and task.start_date and task.due_date:
                due_date = start_date + (task.due_date - task.start_date)
            if due_date is not None:
                edit["due_date"] = due_date
    elif mode is DragMode.RESIZE_START:
        if start_date is None:
            return []
        edit["start_date"] = start_date
        if task.due_date is not None:
            edit["due_date"] = task.due_date
    else:
        if due_date is None:
            return []
        edit["due_date"] = due_date

    logger.debug(f"Drag {mode.value} on task {task_id}: {edit}")
    return edit_task_dates(snapshot, task_id, edit)


def set_completion(
    snapshot: TaskSnapshot,
    task_id: str,
    completed: bool,
    on: date | None = None,
) -> list[TaskUpdate]:
    """
    Mark a task completed (stamping completed_at) or reopen it.

    Completion freezes the task's dates. Dependents are recalculated
    because their effective start switches between due and completion dates.
    """
    task = snapshot.require(task_id)
    if task.is_completed == completed:
        return []

    if completed:
        changes = {"is_completed": True, "completed_at": on or date.today()}
    else:
        changes = {"is_completed": False, "completed_at": None}

    batch = [TaskUpdate(task_id, changes)]
    after = snapshot.with_tasks([apply_fields(task, changes)])
    batch.extend(propagate(task_id, after, baseline=snapshot))

    logger.info(
        f"Task {task_id} {'completed' if completed else 'reopened'}: "
        f"{len(batch) - 1} dependents rescheduled"
    )
    return batch


def add_dependency(
    snapshot: TaskSnapshot,
    task_id: str,
    dependency_id: str,
) -> list[TaskUpdate]:
    """
    Validate a new edge task -> dependency and reschedule the task and its dependents.

    Raises:
        NotFoundError, SelfDependencyError, DuplicateDependencyError, CycleError
    """
    validate_dependency(task_id, dependency_id, snapshot)
    task = snapshot.require(task_id)

    updated = apply_fields(task, {"depends_on_task_ids": task.depends_on_task_ids + (dependency_id,)})
    after = snapshot.with_tasks([updated])
    return propagate(task_id, after, baseline=snapshot, include_changed=True)


def remove_dependency(
    snapshot: TaskSnapshot,
    task_id: str,
    dependency_id: str,
) -> list[TaskUpdate]:
    """
    Drop the edge task -> dependency and reschedule.

    A start that was pinned to the removed dependency may move back.
    """
    task = snapshot.require(task_id)
    remaining = tuple(dep_id for dep_id in task.depends_on_task_ids if dep_id != dependency_id)
    if remaining == task.depends_on_task_ids:
        return []

    after = snapshot.with_tasks([apply_fields(task, {"depends_on_task_ids": remaining})])
    return propagate(task_id, after, baseline=snapshot, include_changed=True)


def remove_task(snapshot: TaskSnapshot, task_id: str) -> list[TaskUpdate]:
    """
    Reschedule the dependents of a task that is being deleted.

    Each former dependent loses the edge and is recalculated, one after
    another, against the snapshot without the deleted task.
    """
    snapshot.require(task_id)
    dependents = snapshot.dependent_ids(task_id)

    current = TaskSnapshot(
        apply_fields(task, {
            "depends_on_task_ids": tuple(d for d in task.depends_on_task_ids if d != task_id),
        })
        for task in snapshot
        if task.id != task_id
    )

    batch: list[TaskUpdate] = []
    for dependent_id in dependents:
        step = propagate(dependent_id, current, baseline=snapshot, include_changed=True)
        current = current.with_updates(step)
        batch.extend(step)

    logger.info(f"Removed task {task_id}: {len(batch)} dependents rescheduled")
    return batch
