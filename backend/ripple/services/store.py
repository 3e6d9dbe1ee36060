"""
Bridge between database rows and the scheduling engine.

- load_snapshot: build an immutable TaskSnapshot for a project
- apply_batch: write a batch of updates, guarded by calc_version_id

The version guard turns a concurrent edit into a StaleSnapshotError
instead of silently overwriting it; callers then recompute from a fresh
snapshot.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ripple.exceptions import StaleSnapshotError
from ripple.logging_config import get_logger
from ripple.models import Dependency
from ripple.models import Task as TaskRow
from ripple.services.recalc import TaskUpdate
from ripple.services.snapshot import StartDateOrigin, Task, TaskSnapshot

logger = get_logger(__name__)

# Engine fields that map one-to-one onto task columns
WRITABLE_FIELDS = {
    "start_date",
    "due_date",
    "duration_days",
    "is_due_date_fixed",
    "start_date_origin",
    "is_completed",
    "completed_at",
}


@dataclass
class LoadedSnapshot:
    """A snapshot plus the row versions it was read at."""
    project_id: uuid.UUID
    snapshot: TaskSnapshot
    versions: dict[str, uuid.UUID] = field(default_factory=dict)


def to_engine_task(row: TaskRow, depends_on: Iterable[uuid.UUID] = ()) -> Task:
    """Convert a task row into the engine's immutable Task."""
    return Task(
        id=str(row.id),
        depends_on_task_ids=tuple(str(dep_id) for dep_id in depends_on),
        start_date=row.start_date,
        due_date=row.due_date,
        duration_days=row.duration_days,
        is_due_date_fixed=row.is_due_date_fixed,
        is_completed=row.is_completed,
        completed_at=row.completed_at,
        start_date_origin=StartDateOrigin(row.start_date_origin) if row.start_date_origin else None,
        title=row.title,
    )


async def fetch_depends_on(
    session: AsyncSession,
    task_ids: list[uuid.UUID],
) -> dict[uuid.UUID, list[uuid.UUID]]:
    """Map each task id to its dependency ids, oldest edge first."""
    depends_on: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    if not task_ids:
        return depends_on

    result = await session.execute(
        select(Dependency)
        .where(Dependency.successor_id.in_(task_ids))
        .order_by(Dependency.created_at)
    )
    for dep in result.scalars().all():
        depends_on[dep.successor_id].append(dep.predecessor_id)
    return depends_on


async def load_snapshot(session: AsyncSession, project_id: uuid.UUID) -> LoadedSnapshot:
    """Read every task and dependency of a project into a snapshot."""
    result = await session.execute(select(TaskRow).where(TaskRow.project_id == project_id))
    rows = list(result.scalars().all())

    depends_on = await fetch_depends_on(session, [row.id for row in rows])
    snapshot = TaskSnapshot(to_engine_task(row, depends_on[row.id]) for row in rows)

    logger.debug(f"Loaded snapshot for project={project_id}: {len(snapshot)} tasks")
    return LoadedSnapshot(
        project_id=project_id,
        snapshot=snapshot,
        versions={str(row.id): row.calc_version_id for row in rows},
    )


def _column_value(name: str, value):
    if isinstance(value, StartDateOrigin):
        return value.value
    return value


async def apply_batch(
    session: AsyncSession,
    loaded: LoadedSnapshot,
    batch: list[TaskUpdate],
) -> None:
    """
    Write a batch of updates in order within the caller's transaction.

    Each row is updated only if its calc_version_id still matches the
    snapshot; otherwise StaleSnapshotError is raised and the caller's
    transaction rolls back. Every written row gets a new version.
    """
    for task_update in batch:
        expected = loaded.versions.get(task_update.task_id)
        values = {
            name: _column_value(name, value)
            for name, value in task_update.updates.items()
            if name in WRITABLE_FIELDS
        }
        new_version = uuid.uuid4()
        values["calc_version_id"] = new_version
        values["updated_at"] = datetime.utcnow()

        result = await session.execute(
            update(TaskRow)
            .where(TaskRow.id == uuid.UUID(task_update.task_id))
            .where(TaskRow.calc_version_id == expected)
            .values(**values)
        )
        if result.rowcount != 1:
            logger.warning(f"Stale snapshot: task {task_update.task_id} changed since it was read")
            raise StaleSnapshotError(task_update.task_id)

        # A task may appear more than once in a batch
        loaded.versions[task_update.task_id] = new_version

    if batch:
        logger.info(f"Applied {len(batch)} task updates in project={loaded.project_id}")
