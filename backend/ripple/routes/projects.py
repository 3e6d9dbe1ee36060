"""
Project routes for the Ripple API.
"""

import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete
from sqlmodel import select

from ripple.database import get_session
from ripple.models import Project, Task, Dependency
from ripple.schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectRead,
    ProjectScheduleRead,
    TaskInsightRead,
    ScheduleWarningRead,
    CriticalPathRead,
    ProjectImport,
    ImportResult,
    ScheduleBatchRead,
    TaskUpdateRead,
)
from ripple.schemas.schedule import TaskAnalysisRead
from ripple.services.blocking import collect_warnings, task_insight
from ripple.services.critical_path import analyze_critical_path
from ripple.services.graph import find_cycle
from ripple.services.reconcile import reconcile
from ripple.services.recalc import reschedule_all
from ripple.services.snapshot import StartDateOrigin, Task as EngineTask, TaskSnapshot
from ripple.services.store import apply_batch, load_snapshot
from ripple.worker import enqueue_reschedule
from ripple.exceptions import NotFoundError, CycleError, SelfDependencyError, ValidationError
from ripple.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def get_project_or_404(session: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", str(project_id))
    return project


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Create a new project."""
    project = Project(**project_in.model_dump())
    session.add(project)
    await session.flush()
    await session.refresh(project)

    logger.info(f"Created project: id={project.id} name='{project.name}'")

    return project


@router.get("/", response_model=list[ProjectRead])
async def list_projects(
    session: AsyncSession = Depends(get_session),
) -> list[Project]:
    """List all projects."""
    result = await session.execute(select(Project))
    projects = list(result.scalars().all())

    logger.debug(f"Listed {len(projects)} projects")

    return projects


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Get a project by ID."""
    return await get_project_or_404(session, project_id)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Update a project."""
    project = await get_project_or_404(session, project_id)

    update_data = project_in.model_dump(exclude_unset=True)

    logger.info(f"Updating project {project_id}: {update_data}")

    for field, value in update_data.items():
        setattr(project, field, value)

    project.updated_at = datetime.utcnow()
    await session.flush()
    await session.refresh(project)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a project with all its tasks and dependencies."""
    project = await get_project_or_404(session, project_id)

    logger.info(f"Deleting project {project_id}: '{project.name}'")

    task_ids = select(Task.id).where(Task.project_id == project_id)
    await session.execute(delete(Dependency).where(Dependency.successor_id.in_(task_ids)))
    await session.execute(delete(Task).where(Task.project_id == project_id))
    await session.delete(project)


@router.get("/{project_id}/schedule", response_model=ProjectScheduleRead)
async def get_project_schedule(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> ProjectScheduleRead:
    """
    Timeline annotations for every task in the project.

    Each task gets its effective start, predicted dates, blocked flag and
    bottleneck dependency. Dangling references and dependencies without
    any usable date are reported as warnings, never as errors.
    """
    await get_project_or_404(session, project_id)
    loaded = await load_snapshot(session, project_id)
    snapshot = loaded.snapshot

    insights = [task_insight(task, snapshot) for task in snapshot]
    warnings = collect_warnings(snapshot)
    if warnings:
        logger.debug(f"Schedule for project={project_id} has {len(warnings)} warnings")

    return ProjectScheduleRead(
        project_id=project_id,
        tasks=[TaskInsightRead.model_validate(insight) for insight in insights],
        warnings=[
            ScheduleWarningRead(code=warning.code, task_id=warning.task_id, message=warning.message)
            for warning in warnings
        ],
    )


@router.get("/{project_id}/critical-path", response_model=CriticalPathRead)
async def get_critical_path(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> CriticalPathRead:
    """
    Critical path analysis: earliest/latest dates and slack per task.

    Undated tasks start at the project's start date when one is set.
    Returns 404 when there is nothing to anchor the analysis to.
    """
    project = await get_project_or_404(session, project_id)
    loaded = await load_snapshot(session, project_id)

    analysis = analyze_critical_path(loaded.snapshot, project_start=project.start_date)
    if analysis is None:
        raise NotFoundError("Critical path for project", str(project_id))

    logger.info(
        f"Critical path for project={project_id}: "
        f"{len(analysis.critical_path_task_ids)} of {len(analysis.task_analyses)} tasks critical"
    )
    return CriticalPathRead(
        project_id=project_id,
        project_start_date=analysis.project_start_date,
        project_end_date=analysis.project_end_date,
        task_analyses=[TaskAnalysisRead.model_validate(item) for item in analysis.task_analyses],
        critical_path_task_ids=analysis.critical_path_task_ids,
    )


@router.post("/{project_id}/reschedule", response_model=ScheduleBatchRead)
async def reschedule_project(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> ScheduleBatchRead:
    """Recalculate every task of the project in dependency order."""
    await get_project_or_404(session, project_id)
    loaded = await load_snapshot(session, project_id)

    batch = reschedule_all(loaded.snapshot)
    await apply_batch(session, loaded, batch)

    logger.info(f"Rescheduled project={project_id}: {len(batch)} updates")
    return ScheduleBatchRead(updates=[TaskUpdateRead.model_validate(update) for update in batch])


def _validate_import(payload: ProjectImport) -> None:
    """
    Reject duplicate keys and dependencies, unknown references and cycles
    before writing anything.
    """
    keys = [item.key for item in payload.tasks]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ValidationError(
            "Duplicate task keys in import",
            details=[
                {"loc": ["body", "tasks"], "msg": f"Key '{key}' is used more than once", "type": "duplicate_key"}
                for key in duplicates
            ],
        )

    known = set(keys)
    unknown = [
        {
            "loc": ["body", "tasks", "depends_on"],
            "msg": f"Task '{item.key}' depends on unknown key '{dep}'",
            "type": "unknown_key",
        }
        for item in payload.tasks
        for dep in item.depends_on
        if dep not in known
    ]
    if unknown:
        raise ValidationError("Import references unknown task keys", details=unknown)

    repeated = [
        {
            "loc": ["body", "tasks", "depends_on"],
            "msg": f"Task '{item.key}' lists '{dep}' more than once",
            "type": "duplicate_dependency",
        }
        for item in payload.tasks
        for dep in sorted({dep for dep in item.depends_on if item.depends_on.count(dep) > 1})
    ]
    if repeated:
        raise ValidationError("Import repeats a dependency", details=repeated)

    for item in payload.tasks:
        if item.key in item.depends_on:
            raise SelfDependencyError(item.key)

    draft = TaskSnapshot(
        EngineTask(id=item.key, depends_on_task_ids=tuple(item.depends_on))
        for item in payload.tasks
    )
    cycle = find_cycle(draft)
    if cycle:
        raise CycleError(
            cycle[0],
            cycle[-1],
            message=f"Imported tasks contain a dependency cycle: {' -> '.join(cycle)}",
        )


@router.post(
    "/{project_id}/import",
    response_model=ImportResult,
    status_code=status.HTTP_201_CREATED,
)
async def import_tasks(
    project_id: uuid.UUID,
    payload: ProjectImport,
    session: AsyncSession = Depends(get_session),
) -> ImportResult:
    """
    Bulk-create tasks and their dependencies.

    Tasks reference each other by client-chosen keys. Each task's dates
    are reconciled on their own; the project-wide reschedule runs as a
    background job.
    """
    await get_project_or_404(session, project_id)
    _validate_import(payload)

    rows: dict[str, Task] = {}
    for item in payload.tasks:
        edit = item.model_dump(include={"start_date", "due_date", "duration_days"}, exclude_unset=True)
        dates = reconcile(EngineTask(id=item.key), edit)
        rows[item.key] = Task(
            title=item.title,
            description=item.description,
            project_id=project_id,
            start_date=dates.start_date,
            due_date=dates.due_date,
            duration_days=dates.duration_days,
            is_due_date_fixed=dates.is_due_date_fixed,
            start_date_origin=StartDateOrigin.USER.value if dates.start_date else None,
        )
    session.add_all(rows.values())
    await session.flush()

    dependencies_created = 0
    for item in payload.tasks:
        for dep_key in item.depends_on:
            session.add(Dependency(
                predecessor_id=rows[dep_key].id,
                successor_id=rows[item.key].id,
            ))
            dependencies_created += 1
    await session.flush()

    logger.info(
        f"Imported {len(rows)} tasks and {dependencies_created} dependencies "
        f"into project={project_id}"
    )

    task_ids = {key: row.id for key, row in rows.items()}

    # The worker reads through its own session and must see these rows
    await session.commit()
    await enqueue_reschedule(str(project_id))

    return ImportResult(
        project_id=project_id,
        task_ids=task_ids,
        dependencies_created=dependencies_created,
        job_enqueued=True,
    )
