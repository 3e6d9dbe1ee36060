"""
Test the Critical Path Method calculation logic.
"""

from datetime import date

import pytest

from ripple.exceptions import CycleError
from ripple.services.critical_path import analyze_critical_path, task_duration
from ripple.services.snapshot import Task, TaskSnapshot


class TestCPMCalculation:

    def test_simple_project(self):
        """
        A: Jan 1-3 (3 days)
        B: after A, 2 days -> Jan 3-4 (critical)
        C: after A, 1 day  -> Jan 3, one day of slack
        """
        snapshot = TaskSnapshot([
            Task(id="A", title="A", start_date=date(2025, 1, 1), due_date=date(2025, 1, 3), duration_days=3),
            Task(id="B", title="B", depends_on_task_ids=("A",), duration_days=2),
            Task(id="C", title="C", depends_on_task_ids=("A",), duration_days=1),
        ])
        analysis = analyze_critical_path(snapshot)
        by_id = {item.task_id: item for item in analysis.task_analyses}

        assert analysis.project_start_date == date(2025, 1, 1)
        assert analysis.project_end_date == date(2025, 1, 4)
        assert by_id["B"].earliest_start == date(2025, 1, 3)
        assert by_id["B"].earliest_finish == date(2025, 1, 4)
        assert by_id["C"].total_slack == 1
        assert by_id["C"].latest_start == date(2025, 1, 4)
        assert analysis.critical_path_task_ids == ["A", "B"]

    def test_user_start_later_than_dependencies(self):
        snapshot = TaskSnapshot([
            Task(id="A", start_date=date(2025, 1, 1), duration_days=2),
            Task(id="B", depends_on_task_ids=("A",), start_date=date(2025, 1, 10), duration_days=2),
        ])
        analysis = analyze_critical_path(snapshot)
        b = next(item for item in analysis.task_analyses if item.task_id == "B")
        assert b.earliest_start == date(2025, 1, 10)
        assert analysis.project_end_date == date(2025, 1, 11)

    def test_completed_task_finishes_at_completion(self):
        snapshot = TaskSnapshot([
            Task(
                id="A",
                start_date=date(2025, 1, 1),
                due_date=date(2025, 1, 10),
                is_completed=True,
                completed_at=date(2025, 1, 4),
            ),
            Task(id="B", depends_on_task_ids=("A",), duration_days=3),
        ])
        analysis = analyze_critical_path(snapshot)
        b = next(item for item in analysis.task_analyses if item.task_id == "B")
        assert b.earliest_start == date(2025, 1, 4)
        assert analysis.project_end_date == date(2025, 1, 6)

    def test_empty_or_undated(self):
        assert analyze_critical_path(TaskSnapshot([])) is None
        assert analyze_critical_path(TaskSnapshot([Task(id="A", duration_days=3)])) is None

    def test_explicit_project_start(self):
        snapshot = TaskSnapshot([Task(id="A", duration_days=3)])
        analysis = analyze_critical_path(snapshot, project_start=date(2025, 3, 1))
        assert analysis.project_end_date == date(2025, 3, 3)
        assert analysis.critical_path_task_ids == ["A"]

    def test_cycle_raises(self):
        snapshot = TaskSnapshot([
            Task(id="X", depends_on_task_ids=("Y",), start_date=date(2025, 1, 1)),
            Task(id="Y", depends_on_task_ids=("X",)),
        ])
        with pytest.raises(CycleError):
            analyze_critical_path(snapshot)


class TestTaskDuration:

    @pytest.mark.parametrize(
        "task, expected",
        [
            (Task(id="T", duration_days=4), 4),
            (Task(id="T", start_date=date(2025, 1, 1), due_date=date(2025, 1, 5)), 5),
            (Task(id="T"), 1),
        ],
    )
    def test_task_duration(self, task, expected):
        assert task_duration(task) == expected
