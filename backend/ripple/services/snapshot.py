"""
Immutable task snapshot used by the scheduling engine.

Every engine function receives a TaskSnapshot built once from all tasks
of a project. The snapshot indexes tasks by id and keeps three adjacency
structures:

- dependencies: task id -> dependency ids, as stored (dangling ids kept)
- dependents: dependency id -> ids of tasks that depend on it
- graph: NetworkX DiGraph with edges dependency -> dependent, restricted
  to tasks that exist in the snapshot
"""

import enum
from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

import networkx as nx

from ripple.exceptions import NotFoundError

if TYPE_CHECKING:
    from ripple.services.recalc import TaskUpdate


class StartDateOrigin(str, enum.Enum):
    """Who set a task's start date last."""
    USER = "user"
    DERIVED = "derived"


@dataclass(frozen=True)
class Task:
    """
    Scheduling view of a task.

    Key fields:
    - depends_on_task_ids: tasks that gate this task's start, in creation order
    - duration_days: inclusive day count (start and due both count)
    - is_due_date_fixed: True anchors the due date, False anchors the duration
    """
    id: str
    depends_on_task_ids: tuple[str, ...] = ()
    start_date: date | None = None
    due_date: date | None = None
    duration_days: int | None = None
    is_due_date_fixed: bool = False
    is_completed: bool = False
    completed_at: date | None = None
    start_date_origin: StartDateOrigin | None = None
    title: str = ""

    def __post_init__(self):
        # Accept any iterable of ids but store a tuple so the task stays hashable
        if not isinstance(self.depends_on_task_ids, tuple):
            object.__setattr__(self, "depends_on_task_ids", tuple(self.depends_on_task_ids))


class TaskSnapshot:
    """All tasks of a project at the moment of computation."""

    def __init__(self, tasks: Iterable[Task]):
        self._tasks: dict[str, Task] = {task.id: task for task in tasks}
        self._dependencies: dict[str, tuple[str, ...]] = {}
        self._dependents: dict[str, list[str]] = {}
        self.graph = nx.DiGraph()

        for task in self._tasks.values():
            self.graph.add_node(task.id)

        for task in self._tasks.values():
            self._dependencies[task.id] = task.depends_on_task_ids
            for dep_id in task.depends_on_task_ids:
                self._dependents.setdefault(dep_id, []).append(task.id)
                if dep_id in self._tasks and dep_id != task.id:
                    self.graph.add_edge(dep_id, task.id)

    @classmethod
    def _derived(cls, parent: "TaskSnapshot", tasks: dict[str, Task]) -> "TaskSnapshot":
        """Snapshot with new field values but the parent's (unchanged) edges."""
        snapshot = cls.__new__(cls)
        snapshot._tasks = tasks
        snapshot._dependencies = parent._dependencies
        snapshot._dependents = parent._dependents
        snapshot.graph = parent.graph
        return snapshot

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task", str(task_id))
        return task

    def dependency_ids(self, task_id: str) -> tuple[str, ...]:
        """Stored dependency ids of a task, dangling ones included."""
        return self._dependencies.get(task_id, ())

    def dependencies_of(self, task: Task) -> list[Task]:
        """Existing dependency tasks, in stored order."""
        return [self._tasks[dep_id] for dep_id in task.depends_on_task_ids if dep_id in self._tasks]

    def dangling_dependency_ids(self, task: Task) -> list[str]:
        return [dep_id for dep_id in task.depends_on_task_ids if dep_id not in self._tasks]

    def dependent_ids(self, task_id: str) -> list[str]:
        """Ids of tasks that list task_id as a dependency."""
        return list(self._dependents.get(task_id, ()))

    def with_tasks(self, tasks: Iterable[Task]) -> "TaskSnapshot":
        """
        Return a snapshot with the given tasks replaced.

        Date changes reuse the existing edges. If any replaced task has a
        different dependency set, the indexes are rebuilt.
        """
        merged = dict(self._tasks)
        rebuild = False
        for task in tasks:
            previous = merged.get(task.id)
            if previous is None or previous.depends_on_task_ids != task.depends_on_task_ids:
                rebuild = True
            merged[task.id] = task
        if rebuild:
            return TaskSnapshot(merged.values())
        return TaskSnapshot._derived(self, merged)

    def with_updates(self, batch: Iterable["TaskUpdate"]) -> "TaskSnapshot":
        """Return the snapshot after applying a batch of field updates in order."""
        tasks = dict(self._tasks)
        for update in batch:
            current = tasks.get(update.task_id)
            if current is None:
                continue
            tasks[update.task_id] = apply_fields(current, update.updates)
        return self.with_tasks(tasks.values())

    def tasks_by_id(self) -> dict[str, Task]:
        """Return a fresh id -> task dict; changing it leaves the snapshot untouched."""
        return dict(self._tasks)


def apply_fields(task: Task, updates: Mapping[str, object]) -> Task:
    """Return a copy of task with the given field values."""
    return replace(task, **updates)
