"""
Dependency routes for the Ripple API.
"""

import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ripple.database import get_session
from ripple.models import Task, Dependency
from ripple.schemas import DependencyCreate, DependencyRead, DependencyScheduleRead, TaskUpdateRead
from ripple.services import scheduling
from ripple.services.store import apply_batch, load_snapshot
from ripple.exceptions import NotFoundError, CrossProjectDependencyError
from ripple.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=DependencyScheduleRead, status_code=status.HTTP_201_CREATED)
async def create_dependency(
    dep_in: DependencyCreate,
    session: AsyncSession = Depends(get_session),
) -> DependencyScheduleRead:
    """
    Create a new dependency (edge in the task DAG).

    The edge is validated against the project graph (self-dependency,
    duplicate, cycle) before anything is written. The successor and its
    dependents are then rescheduled in the same transaction.
    """
    logger.info(f"Creating dependency: {dep_in.predecessor_id} -> {dep_in.successor_id}")

    predecessor = await session.get(Task, dep_in.predecessor_id)
    successor = await session.get(Task, dep_in.successor_id)

    if not predecessor:
        raise NotFoundError("Predecessor task", str(dep_in.predecessor_id))

    if not successor:
        raise NotFoundError("Successor task", str(dep_in.successor_id))

    if predecessor.project_id != successor.project_id:
        logger.warning(
            f"Cross-project dependency rejected: "
            f"{predecessor.project_id} -> {successor.project_id}"
        )
        raise CrossProjectDependencyError(
            str(predecessor.project_id),
            str(successor.project_id),
        )

    loaded = await load_snapshot(session, successor.project_id)
    batch = scheduling.add_dependency(
        loaded.snapshot,
        str(dep_in.successor_id),
        str(dep_in.predecessor_id),
    )

    dependency = Dependency(
        predecessor_id=dep_in.predecessor_id,
        successor_id=dep_in.successor_id,
    )
    session.add(dependency)
    await session.flush()
    await session.refresh(dependency)

    await apply_batch(session, loaded, batch)

    logger.info(
        f"Created dependency: {predecessor.title} -> {successor.title} "
        f"(project={predecessor.project_id}, {len(batch)} updates)"
    )

    return DependencyScheduleRead(
        predecessor_id=dependency.predecessor_id,
        successor_id=dependency.successor_id,
        created_at=dependency.created_at,
        updates=[TaskUpdateRead.model_validate(update) for update in batch],
    )


@router.get("/", response_model=list[DependencyRead])
async def list_dependencies(
    project_id: uuid.UUID | None = None,
    task_id: uuid.UUID | None = None,
    session: AsyncSession = Depends(get_session),
) -> list[Dependency]:
    """
    List dependencies.

    Optionally filter by:
    - project_id: Get all dependencies within a project
    - task_id: Get dependencies where task is predecessor OR successor
    """
    if project_id:
        task_ids = select(Task.id).where(Task.project_id == project_id)
        query = select(Dependency).where(Dependency.successor_id.in_(task_ids))
    elif task_id:
        query = select(Dependency).where(
            (Dependency.predecessor_id == task_id) |
            (Dependency.successor_id == task_id)
        )
    else:
        query = select(Dependency)

    result = await session.execute(query.order_by(Dependency.created_at))
    dependencies = list(result.scalars().all())

    logger.debug(f"Listed {len(dependencies)} dependencies")

    return dependencies


@router.delete("/{predecessor_id}/{successor_id}", response_model=DependencyScheduleRead)
async def delete_dependency(
    predecessor_id: uuid.UUID,
    successor_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> DependencyScheduleRead:
    """
    Delete a dependency.

    A successor whose start was derived from this edge may move back to
    the latest date of its remaining dependencies.
    """
    dependency = await session.get(Dependency, (predecessor_id, successor_id))
    if not dependency:
        raise NotFoundError("Dependency", f"{predecessor_id}/{successor_id}")

    logger.info(f"Deleting dependency: {predecessor_id} -> {successor_id}")

    successor = await session.get(Task, successor_id)
    loaded = await load_snapshot(session, successor.project_id)
    batch = scheduling.remove_dependency(loaded.snapshot, str(successor_id), str(predecessor_id))

    created_at = dependency.created_at
    await session.delete(dependency)
    await session.flush()

    await apply_batch(session, loaded, batch)

    return DependencyScheduleRead(
        predecessor_id=predecessor_id,
        successor_id=successor_id,
        created_at=created_at,
        updates=[TaskUpdateRead.model_validate(update) for update in batch],
    )
