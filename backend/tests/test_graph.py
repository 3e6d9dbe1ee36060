"""
Dependency graph validation: cycles, self-references, closures and ordering.
"""

import pytest

from ripple.exceptions import (
    CycleError,
    DuplicateDependencyError,
    NotFoundError,
    SelfDependencyError,
)
from ripple.services.graph import (
    find_cycle,
    get_all_dependent_tasks,
    topological_order,
    validate_dependency,
    would_create_cycle,
)
from ripple.services.snapshot import Task, TaskSnapshot


def chain(*ids: str) -> TaskSnapshot:
    """Build a chain where each task depends on the one before it."""
    tasks = [Task(id=ids[0])]
    tasks += [Task(id=task_id, depends_on_task_ids=(prev,)) for prev, task_id in zip(ids, ids[1:])]
    return TaskSnapshot(tasks)


class TestWouldCreateCycle:
    """Cycle detection for a candidate edge."""

    def test_self_reference_is_always_a_cycle(self):
        snapshot = TaskSnapshot([Task(id="A")])
        assert would_create_cycle("A", "A", snapshot)
        # Even for ids the snapshot has never seen
        assert would_create_cycle("ghost", "ghost", TaskSnapshot([]))

    def test_reverse_of_existing_path_is_a_cycle(self):
        """
        Scenario: C -> B -> A (C depends on B, B on A)
        Making A depend on C closes the loop.
        """
        snapshot = chain("A", "B", "C")
        assert would_create_cycle("A", "C", snapshot)
        assert would_create_cycle("A", "B", snapshot)
        assert would_create_cycle("B", "C", snapshot)

    def test_edge_along_existing_direction_is_allowed(self):
        snapshot = chain("A", "B", "C")
        assert not would_create_cycle("C", "A", snapshot)

    def test_unrelated_tasks(self):
        snapshot = TaskSnapshot([Task(id="A"), Task(id="B")])
        assert not would_create_cycle("A", "B", snapshot)
        assert not would_create_cycle("B", "A", snapshot)

    def test_diamond_without_cycle(self):
        """
        Scenario: D depends on B and C, both depend on A.
        Adding D -> A is redundant but not a cycle.
        """
        snapshot = TaskSnapshot([
            Task(id="A"),
            Task(id="B", depends_on_task_ids=("A",)),
            Task(id="C", depends_on_task_ids=("A",)),
            Task(id="D", depends_on_task_ids=("B", "C")),
        ])
        assert not would_create_cycle("D", "A", snapshot)
        assert would_create_cycle("A", "D", snapshot)

    def test_dangling_ids_are_dead_ends(self):
        snapshot = TaskSnapshot([
            Task(id="A", depends_on_task_ids=("deleted",)),
            Task(id="B"),
        ])
        assert not would_create_cycle("B", "A", snapshot)

    def test_terminates_on_corrupt_stored_cycle(self):
        """A stored X <-> Y loop must not make the check spin forever."""
        snapshot = TaskSnapshot([
            Task(id="X", depends_on_task_ids=("Y",)),
            Task(id="Y", depends_on_task_ids=("X",)),
            Task(id="Z"),
        ])
        assert not would_create_cycle("Z", "X", snapshot)

    def test_long_chain_does_not_recurse(self):
        ids = [f"T{i}" for i in range(5000)]
        snapshot = chain(*ids)
        assert would_create_cycle(ids[0], ids[-1], snapshot)
        assert not would_create_cycle(ids[-1], ids[0], snapshot)


class TestValidateDependency:
    """The gatekeeper raises before any date computation runs."""

    def test_rejects_transitive_cycle(self):
        """
        Scenario: D already depends on C (through E).
        Making C depend on D is rejected.
        """
        snapshot = TaskSnapshot([
            Task(id="C"),
            Task(id="E", depends_on_task_ids=("C",)),
            Task(id="D", depends_on_task_ids=("E",)),
        ])
        with pytest.raises(CycleError) as exc_info:
            validate_dependency("C", "D", snapshot)
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "cycle_detected"

    def test_rejects_self_dependency(self):
        snapshot = TaskSnapshot([Task(id="A")])
        with pytest.raises(SelfDependencyError) as exc_info:
            validate_dependency("A", "A", snapshot)
        assert isinstance(exc_info.value, CycleError)

    def test_rejects_duplicate(self):
        snapshot = chain("A", "B")
        with pytest.raises(DuplicateDependencyError):
            validate_dependency("B", "A", snapshot)

    def test_rejects_unknown_task(self):
        snapshot = TaskSnapshot([Task(id="A")])
        with pytest.raises(NotFoundError):
            validate_dependency("A", "missing", snapshot)

    def test_accepts_valid_edge(self):
        snapshot = TaskSnapshot([Task(id="A"), Task(id="B")])
        validate_dependency("B", "A", snapshot)


class TestClosureAndOrder:
    def test_dependents_in_breadth_first_order(self):
        snapshot = TaskSnapshot([
            Task(id="A"),
            Task(id="B", depends_on_task_ids=("A",)),
            Task(id="C", depends_on_task_ids=("A",)),
            Task(id="D", depends_on_task_ids=("B", "C")),
        ])
        assert [task.id for task in get_all_dependent_tasks("A", snapshot)] == ["B", "C", "D"]
        assert get_all_dependent_tasks("D", snapshot) == []

    def test_topological_order_puts_dependencies_first(self):
        snapshot = TaskSnapshot([
            Task(id="D", depends_on_task_ids=("B", "C")),
            Task(id="C", depends_on_task_ids=("A",)),
            Task(id="B", depends_on_task_ids=("A",)),
            Task(id="A"),
        ])
        order = topological_order(snapshot)
        assert order.index("A") < order.index("B") < order.index("D")
        assert order.index("A") < order.index("C") < order.index("D")

    def test_topological_order_of_subset(self):
        snapshot = chain("A", "B", "C")
        assert topological_order(snapshot, ["C", "B"]) == ["B", "C"]

    def test_cycle_raises(self):
        snapshot = TaskSnapshot([
            Task(id="X", depends_on_task_ids=("Y",)),
            Task(id="Y", depends_on_task_ids=("X",)),
        ])
        with pytest.raises(CycleError):
            topological_order(snapshot)
        assert set(find_cycle(snapshot)) == {"X", "Y"}

    def test_find_cycle_on_acyclic_graph(self):
        assert find_cycle(chain("A", "B", "C")) == []

    def test_tasks_by_id_is_a_copy(self):
        snapshot = chain("A", "B")
        tasks = snapshot.tasks_by_id()
        tasks["B"] = Task(id="B")
        del tasks["A"]
        assert snapshot.get("A") is not None
        assert snapshot.get("B").depends_on_task_ids == ("A",)
