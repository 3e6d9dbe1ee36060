"""
Effective start: the earliest day a task may begin given its dependencies.
"""

from datetime import date

from ripple.services.effective import effective_dates, effective_start
from ripple.services.snapshot import Task, TaskSnapshot


class TestEffectiveStart:

    def test_no_dependencies(self):
        task = Task(id="T", start_date=date(2025, 1, 1))
        assert effective_start(task, TaskSnapshot([task])) is None

    def test_all_completed_uses_latest_completion(self):
        """
        Scenario: A completed Jan 10, B completed Jan 12
        Expected: effective start Jan 12
        """
        a = Task(id="A", is_completed=True, completed_at=date(2025, 1, 10), due_date=date(2025, 1, 20))
        b = Task(id="B", is_completed=True, completed_at=date(2025, 1, 12))
        t = Task(id="T", depends_on_task_ids=("A", "B"))
        assert effective_start(t, TaskSnapshot([a, b, t])) == date(2025, 1, 12)

    def test_incomplete_dependency_dominates(self):
        """
        Scenario: A completed Jan 10, B open and due Jan 15
        Expected: effective start Jan 15 (due dates only)
        """
        a = Task(id="A", is_completed=True, completed_at=date(2025, 1, 10))
        b = Task(id="B", due_date=date(2025, 1, 15))
        t = Task(id="T", depends_on_task_ids=("A", "B"))
        assert effective_start(t, TaskSnapshot([a, b, t])) == date(2025, 1, 15)

    def test_incomplete_branch_ignores_completion_dates(self):
        """A completed dependency without a due date contributes nothing while another is open."""
        a = Task(id="A", is_completed=True, completed_at=date(2025, 3, 1))
        b = Task(id="B", due_date=date(2025, 1, 15))
        t = Task(id="T", depends_on_task_ids=("A", "B"))
        assert effective_start(t, TaskSnapshot([a, b, t])) == date(2025, 1, 15)

    def test_dependencies_without_dates(self):
        a = Task(id="A")
        b = Task(id="B", is_completed=True)
        t = Task(id="T", depends_on_task_ids=("A",))
        u = Task(id="U", depends_on_task_ids=("B",))
        snapshot = TaskSnapshot([a, b, t, u])
        assert effective_start(t, snapshot) is None
        assert effective_start(u, snapshot) is None

    def test_dangling_dependency_is_ignored(self):
        a = Task(id="A", due_date=date(2025, 1, 5))
        t = Task(id="T", depends_on_task_ids=("deleted", "A"))
        assert effective_start(t, TaskSnapshot([a, t])) == date(2025, 1, 5)

    def test_only_dangling_dependencies(self):
        t = Task(id="T", depends_on_task_ids=("deleted",))
        assert effective_start(t, TaskSnapshot([t])) is None


class TestEffectiveDates:
    """Predicted dates shown on the timeline."""

    def test_undated_task_is_predicted_from_completed_dependency(self):
        """
        Scenario: A completed Jan 3; B depends on A, 4 days, no dates
        Expected: B predicted Jan 3 - Jan 6
        """
        a = Task(id="A", is_completed=True, completed_at=date(2025, 1, 3))
        b = Task(id="B", depends_on_task_ids=("A",), duration_days=4)
        snapshot = TaskSnapshot([a, b])

        assert effective_start(b, snapshot) == date(2025, 1, 3)
        dates = effective_dates(b, snapshot)
        assert dates.is_predicted
        assert dates.predicted_start == date(2025, 1, 3)
        assert dates.predicted_end == date(2025, 1, 6)

    def test_start_before_effective_start_is_pushed(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        b = Task(
            id="B",
            depends_on_task_ids=("A",),
            start_date=date(2025, 1, 5),
            due_date=date(2025, 1, 7),
            duration_days=3,
        )
        dates = effective_dates(b, TaskSnapshot([a, b]))
        assert dates.predicted_start == date(2025, 1, 10)
        assert dates.predicted_end == date(2025, 1, 12)
        assert not dates.is_deadline_overdue

    def test_fixed_due_date_overrun_is_flagged(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        b = Task(
            id="B",
            depends_on_task_ids=("A",),
            start_date=date(2025, 1, 5),
            due_date=date(2025, 1, 8),
            duration_days=4,
            is_due_date_fixed=True,
        )
        dates = effective_dates(b, TaskSnapshot([a, b]))
        assert dates.predicted_start == date(2025, 1, 10)
        assert dates.predicted_end == date(2025, 1, 8)
        assert dates.is_deadline_overdue

    def test_start_with_slack_is_not_predicted(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        b = Task(id="B", depends_on_task_ids=("A",), start_date=date(2025, 1, 20))
        dates = effective_dates(b, TaskSnapshot([a, b]))
        assert not dates.is_predicted
        assert dates.predicted_start is None
        assert dates.start_date == date(2025, 1, 20)
