"""
Graph operations over a task snapshot.

This module handles:
- Cycle detection for dependency validation
- Dependent closure lookup for date propagation
- Topological ordering using NetworkX
"""

from collections import deque
from typing import Iterable

import networkx as nx

from ripple.exceptions import CycleError, DuplicateDependencyError, SelfDependencyError
from ripple.logging_config import get_logger
from ripple.services.snapshot import Task, TaskSnapshot

logger = get_logger(__name__)


def would_create_cycle(
    task_id: str,
    candidate_dependency_id: str,
    snapshot: TaskSnapshot,
) -> bool:
    """
    Check if making task_id depend on candidate_dependency_id would create a cycle.

    Algorithm:
    1. A task depending on itself is always a cycle
    2. Walk depth-first from the candidate through each visited task's
       existing dependencies
    3. Reaching task_id means the candidate already depends on it

    Ids of deleted tasks are dead ends. The visited set bounds the walk
    even if the stored graph is already corrupt.
    """
    if task_id == candidate_dependency_id:
        return True

    visited: set[str] = set()
    stack = [candidate_dependency_id]

    while stack:
        current_id = stack.pop()
        if current_id == task_id:
            return True
        if current_id in visited:
            continue
        visited.add(current_id)
        stack.extend(
            dep_id for dep_id in snapshot.dependency_ids(current_id)
            if dep_id not in visited
        )

    return False


def validate_dependency(
    task_id: str,
    candidate_dependency_id: str,
    snapshot: TaskSnapshot,
) -> None:
    """
    Gatekeeper for new dependency edges.

    Raises:
        NotFoundError: Either task is not in the snapshot.
        SelfDependencyError: The task would depend on itself.
        DuplicateDependencyError: The edge already exists.
        CycleError: The edge would close a cycle.
    """
    task = snapshot.require(task_id)
    snapshot.require(candidate_dependency_id)

    if task_id == candidate_dependency_id:
        logger.warning(f"Self-dependency rejected: {task_id}")
        raise SelfDependencyError(task_id)

    if candidate_dependency_id in task.depends_on_task_ids:
        logger.warning(f"Duplicate dependency rejected: {task_id} -> {candidate_dependency_id}")
        raise DuplicateDependencyError(task_id, candidate_dependency_id)

    if would_create_cycle(task_id, candidate_dependency_id, snapshot):
        logger.warning(
            f"Cycle detected: {task_id} depending on {candidate_dependency_id} "
            f"would create a cycle"
        )
        raise CycleError(task_id, candidate_dependency_id)


def get_all_dependent_tasks(task_id: str, snapshot: TaskSnapshot) -> list[Task]:
    """
    Get every task downstream of task_id, in breadth-first discovery order.

    Each task appears at most once and task_id itself is never included.
    """
    result: list[Task] = []
    visited = {task_id}
    queue = deque([task_id])

    while queue:
        current_id = queue.popleft()
        for dependent_id in snapshot.dependent_ids(current_id):
            if dependent_id in visited:
                continue
            visited.add(dependent_id)
            dependent = snapshot.get(dependent_id)
            if dependent is not None:
                result.append(dependent)
            queue.append(dependent_id)

    return result


def topological_order(
    snapshot: TaskSnapshot,
    task_ids: Iterable[str] | None = None,
) -> list[str]:
    """
    Perform topological sort on the snapshot graph (or the subgraph induced by task_ids).

    Returns ids such that every dependency comes before its dependents.
    Ties keep the order in which task_ids were given, so results are
    deterministic.

    Raises:
        CycleError: The (sub)graph contains a cycle.
    """
    if task_ids is None:
        ids = list(snapshot.graph.nodes)
    else:
        ids = [task_id for task_id in task_ids if task_id in snapshot.graph]
    position = {task_id: index for index, task_id in enumerate(ids)}
    graph = snapshot.graph.subgraph(ids)

    try:
        return list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
    except nx.NetworkXUnfeasible:
        cycle = find_cycle(snapshot, ids)
        logger.error(f"Cycle detected in task graph: {cycle}")
        first, last = (cycle[0], cycle[-1]) if cycle else ("?", "?")
        raise CycleError(first, last, message="Task graph contains a dependency cycle")


def find_cycle(snapshot: TaskSnapshot, task_ids: Iterable[str] | None = None) -> list[str]:
    """Return the task ids along one dependency cycle, or [] if the graph is acyclic."""
    graph = snapshot.graph if task_ids is None else snapshot.graph.subgraph(task_ids)
    try:
        edges = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return []
    return [edge[0] for edge in edges]
