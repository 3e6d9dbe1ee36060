"""
Critical Path Method (CPM) implementation.

Calculates:
- Forward pass: Earliest Start (ES), Earliest Finish (EF)
- Backward pass: Latest Start (LS), Latest Finish (LF)
- Slack/Float: LS - ES
- Critical Path: Tasks where slack = 0

A dependent may start on the day its dependency is due (same-day
handoff), matching effective_start.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from ripple.logging_config import get_logger
from ripple.services.graph import topological_order
from ripple.services.reconcile import span_days
from ripple.services.snapshot import Task, TaskSnapshot

logger = get_logger(__name__)


@dataclass
class TaskAnalysis:
    """Analysis results for a single task."""
    task_id: str
    title: str
    duration_days: int
    # Forward pass results
    earliest_start: date
    earliest_finish: date
    # Backward pass results
    latest_start: date
    latest_finish: date
    # Slack
    total_slack: int  # Days of slack (0 = critical)
    is_critical: bool


@dataclass
class ProjectAnalysis:
    """Complete CPM analysis for a project."""
    project_start_date: date
    project_end_date: date  # Latest task finish
    task_analyses: list[TaskAnalysis]
    critical_path_task_ids: list[str]


def task_duration(task: Task) -> int:
    """Planned length in days: stored duration, else the start/due span, else 1."""
    if task.duration_days:
        return task.duration_days
    if task.start_date and task.due_date and task.due_date >= task.start_date:
        return span_days(task.start_date, task.due_date)
    return 1


def _own_start(task: Task, duration: int) -> date | None:
    if task.start_date is not None:
        return task.start_date
    if task.due_date is not None:
        return task.due_date - timedelta(days=duration - 1)
    return None


def _earliest_known_date(snapshot: TaskSnapshot) -> date | None:
    dates = [d for task in snapshot for d in (task.start_date, task.due_date) if d is not None]
    return min(dates, default=None)


def analyze_critical_path(
    snapshot: TaskSnapshot,
    project_start: date | None = None,
) -> ProjectAnalysis | None:
    """
    Perform complete CPM analysis on a project snapshot.

    Tasks without any date start at project_start (default: the earliest
    date found in the project). Returns None if the snapshot is empty or
    carries no dates at all.

    Raises:
        CycleError: The dependency graph contains a cycle.
    """
    if not len(snapshot):
        return None

    anchor = project_start or _earliest_known_date(snapshot)
    if anchor is None:
        logger.debug("No dated tasks; skipping critical path analysis")
        return None

    topo_order = topological_order(snapshot)
    graph = snapshot.graph
    durations = {task.id: task_duration(task) for task in snapshot}
    es: dict[str, date] = {}
    ef: dict[str, date] = {}

    # =========================================================================
    # Forward Pass: Calculate ES and EF
    # =========================================================================
    for task_id in topo_order:
        task = snapshot.get(task_id)
        duration = durations[task_id]
        own = _own_start(task, duration)
        predecessors = list(graph.predecessors(task_id))

        if not predecessors:
            start = own or anchor
        else:
            # ES = latest predecessor finish, or a later start the user chose
            gate = max(ef[p] for p in predecessors)
            start = max(gate, own) if own else gate

        es[task_id] = start
        if task.is_completed and task.completed_at is not None:
            ef[task_id] = max(task.completed_at, start)
        else:
            ef[task_id] = start + timedelta(days=duration - 1)

    project_end_date = max(ef.values())

    # =========================================================================
    # Backward Pass: Calculate LF and LS
    # =========================================================================
    ls: dict[str, date] = {}
    lf: dict[str, date] = {}
    for task_id in reversed(topo_order):
        successors = list(graph.successors(task_id))
        if not successors:
            finish = project_end_date
        else:
            finish = min(ls[s] for s in successors)
        lf[task_id] = finish
        ls[task_id] = finish - (ef[task_id] - es[task_id])

    # =========================================================================
    # Calculate Slack and Identify Critical Path
    # =========================================================================
    task_analyses = []
    critical_path_ids = []

    for task_id in topo_order:
        slack = (ls[task_id] - es[task_id]).days
        is_critical = slack == 0
        if is_critical:
            critical_path_ids.append(task_id)

        task_analyses.append(TaskAnalysis(
            task_id=task_id,
            title=snapshot.get(task_id).title,
            duration_days=durations[task_id],
            earliest_start=es[task_id],
            earliest_finish=ef[task_id],
            latest_start=ls[task_id],
            latest_finish=lf[task_id],
            total_slack=slack,
            is_critical=is_critical,
        ))

    return ProjectAnalysis(
        project_start_date=min(es.values()),
        project_end_date=project_end_date,
        task_analyses=task_analyses,
        critical_path_task_ids=critical_path_ids,
    )
