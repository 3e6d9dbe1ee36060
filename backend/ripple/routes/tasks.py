"""
Task routes for the Ripple API.
"""

import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete
from sqlmodel import select

from ripple.database import get_session
from ripple.models import Task, Project, Dependency
from ripple.schemas import (
    TaskCreate,
    TaskUpdate,
    TaskDrag,
    TaskCompletion,
    TaskRead,
    TaskUpdateRead,
    ScheduleBatchRead,
    TaskScheduleRead,
)
from ripple.schemas.task import DATE_EDIT_FIELDS
from ripple.services import scheduling
from ripple.services.reconcile import reconcile
from ripple.services.recalc import TaskUpdate as PendingUpdate
from ripple.services.snapshot import StartDateOrigin, Task as EngineTask
from ripple.services.store import LoadedSnapshot, apply_batch, fetch_depends_on, load_snapshot
from ripple.exceptions import NotFoundError
from ripple.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise NotFoundError("Task", str(task_id))
    return task


async def read_task(session: AsyncSession, task: Task) -> TaskRead:
    """TaskRead including the task's dependency ids."""
    depends_on = await fetch_depends_on(session, [task.id])
    return TaskRead.model_validate(task).model_copy(
        update={"depends_on_task_ids": depends_on[task.id]}
    )


async def apply_and_read(
    session: AsyncSession,
    task: Task,
    loaded: LoadedSnapshot,
    batch: list[PendingUpdate],
) -> TaskScheduleRead:
    """Persist a schedule batch and return the edited task with the batch."""
    await apply_batch(session, loaded, batch)
    await session.flush()
    await session.refresh(task)
    return TaskScheduleRead(
        task=await read_task(session, task),
        updates=[TaskUpdateRead.model_validate(update) for update in batch],
    )


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    session: AsyncSession = Depends(get_session),
) -> TaskRead:
    """
    Create a new task.

    Date fields are reconciled before saving, e.g. start + duration
    derives the due date.
    """
    project = await session.get(Project, task_in.project_id)
    if not project:
        raise NotFoundError("Project", str(task_in.project_id))

    edit = task_in.model_dump(include=DATE_EDIT_FIELDS, exclude_unset=True)
    dates = reconcile(EngineTask(id="new", is_due_date_fixed=task_in.is_due_date_fixed), edit)

    task = Task(
        title=task_in.title,
        description=task_in.description,
        project_id=task_in.project_id,
        start_date=dates.start_date,
        due_date=dates.due_date,
        duration_days=dates.duration_days,
        is_due_date_fixed=dates.is_due_date_fixed,
        start_date_origin=StartDateOrigin.USER.value if dates.start_date else None,
    )
    session.add(task)
    await session.flush()
    await session.refresh(task)

    logger.info(f"Created task: id={task.id} title='{task.title}' project={task.project_id}")

    return await read_task(session, task)


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    project_id: uuid.UUID | None = None,
    session: AsyncSession = Depends(get_session),
) -> list[TaskRead]:
    """
    List tasks.

    Optionally filter by project_id.
    """
    query = select(Task)
    if project_id:
        query = query.where(Task.project_id == project_id)

    result = await session.execute(query)
    tasks = list(result.scalars().all())
    depends_on = await fetch_depends_on(session, [task.id for task in tasks])

    logger.debug(f"Listed {len(tasks)} tasks" + (f" for project={project_id}" if project_id else ""))

    return [
        TaskRead.model_validate(task).model_copy(update={"depends_on_task_ids": depends_on[task.id]})
        for task in tasks
    ]


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> TaskRead:
    """Get a task by ID."""
    task = await get_task_or_404(session, task_id)
    return await read_task(session, task)


@router.patch("/{task_id}", response_model=TaskScheduleRead)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    session: AsyncSession = Depends(get_session),
) -> TaskScheduleRead:
    """
    Update a task.

    Date fields are reconciled; if the due date changes, every dependent
    task is rescheduled in the same transaction.
    """
    task = await get_task_or_404(session, task_id)

    update_data = task_in.model_dump(exclude_unset=True)
    logger.info(f"Updating task {task_id}: {update_data}")

    for field in ("title", "description"):
        if field in update_data:
            setattr(task, field, update_data[field])
            task.updated_at = datetime.utcnow()

    edit = {name: value for name, value in update_data.items() if name in DATE_EDIT_FIELDS}
    loaded = await load_snapshot(session, task.project_id)
    batch = scheduling.edit_task_dates(loaded.snapshot, str(task_id), edit) if edit else []

    return await apply_and_read(session, task, loaded, batch)


@router.post("/{task_id}/preview", response_model=ScheduleBatchRead)
async def preview_task_update(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    session: AsyncSession = Depends(get_session),
) -> ScheduleBatchRead:
    """
    Show the updates a date edit would make, without saving anything.
    """
    task = await get_task_or_404(session, task_id)

    edit = task_in.model_dump(include=DATE_EDIT_FIELDS, exclude_unset=True)
    loaded = await load_snapshot(session, task.project_id)
    batch = scheduling.edit_task_dates(loaded.snapshot, str(task_id), edit)

    logger.debug(f"Previewed edit on task {task_id}: {len(batch)} updates")
    return ScheduleBatchRead(updates=[TaskUpdateRead.model_validate(update) for update in batch])


@router.post("/{task_id}/drag", response_model=TaskScheduleRead)
async def drag_task(
    task_id: uuid.UUID,
    drag_in: TaskDrag,
    session: AsyncSession = Depends(get_session),
) -> TaskScheduleRead:
    """
    Apply a timeline drag.

    The new start is clamped so it never precedes the task's effective
    start, then reconciled and cascaded like a form edit.
    """
    task = await get_task_or_404(session, task_id)

    loaded = await load_snapshot(session, task.project_id)
    batch = scheduling.drag_task(
        loaded.snapshot,
        str(task_id),
        drag_in.mode,
        drag_in.start_date,
        drag_in.due_date,
    )
    return await apply_and_read(session, task, loaded, batch)


@router.put("/{task_id}/completion", response_model=TaskScheduleRead)
async def set_task_completion(
    task_id: uuid.UUID,
    completion_in: TaskCompletion,
    session: AsyncSession = Depends(get_session),
) -> TaskScheduleRead:
    """
    Complete or reopen a task.

    Dependents are rescheduled because their effective start now comes
    from completion dates instead of due dates (or back).
    """
    task = await get_task_or_404(session, task_id)

    loaded = await load_snapshot(session, task.project_id)
    batch = scheduling.set_completion(
        loaded.snapshot,
        str(task_id),
        completion_in.is_completed,
        completion_in.completed_at,
    )
    return await apply_and_read(session, task, loaded, batch)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> None:
    """
    Delete a task.

    This also deletes all dependencies involving this task and
    reschedules the tasks that depended on it.
    """
    task = await get_task_or_404(session, task_id)

    logger.info(f"Deleting task {task_id}: '{task.title}'")

    loaded = await load_snapshot(session, task.project_id)
    batch = scheduling.remove_task(loaded.snapshot, str(task_id))

    await session.execute(
        delete(Dependency).where(
            (Dependency.predecessor_id == task_id) | (Dependency.successor_id == task_id)
        )
    )
    await session.delete(task)
    await session.flush()

    await apply_batch(session, loaded, batch)
