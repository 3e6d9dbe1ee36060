"""
Blocked flags, bottlenecks and schedule warnings.
"""

from datetime import date

from ripple.exceptions import AmbiguousDateWarning, DanglingReferenceWarning
from ripple.services.blocking import bottleneck, collect_warnings, is_blocked, task_insight
from ripple.services.snapshot import Task, TaskSnapshot


class TestIsBlocked:

    def test_open_dependency_blocks(self):
        a = Task(id="A")
        b = Task(id="B", depends_on_task_ids=("A",))
        assert is_blocked(b, TaskSnapshot([a, b]))

    def test_completed_dependencies_unblock(self):
        a = Task(id="A", is_completed=True, completed_at=date(2025, 1, 2))
        b = Task(id="B", depends_on_task_ids=("A",))
        assert not is_blocked(b, TaskSnapshot([a, b]))

    def test_no_dependencies(self):
        a = Task(id="A")
        assert not is_blocked(a, TaskSnapshot([a]))

    def test_dangling_dependency_does_not_block(self):
        b = Task(id="B", depends_on_task_ids=("deleted",))
        assert not is_blocked(b, TaskSnapshot([b]))


class TestBottleneck:

    def test_latest_due_date_wins(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        c = Task(id="C", due_date=date(2025, 1, 14))
        t = Task(id="T", depends_on_task_ids=("A", "C"))
        assert bottleneck(t, TaskSnapshot([a, c, t])).id == "C"

    def test_tie_goes_to_first_listed(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        c = Task(id="C", due_date=date(2025, 1, 10))
        t = Task(id="T", depends_on_task_ids=("C", "A"))
        assert bottleneck(t, TaskSnapshot([a, c, t])).id == "C"

    def test_completed_dependencies_use_completion_dates(self):
        """Matches effective_start: all completed means completion dates gate."""
        a = Task(id="A", is_completed=True, completed_at=date(2025, 1, 12), due_date=date(2025, 1, 5))
        c = Task(id="C", is_completed=True, completed_at=date(2025, 1, 8), due_date=date(2025, 1, 20))
        t = Task(id="T", depends_on_task_ids=("A", "C"))
        assert bottleneck(t, TaskSnapshot([a, c, t])).id == "A"

    def test_no_usable_dates(self):
        a = Task(id="A")
        t = Task(id="T", depends_on_task_ids=("A",))
        assert bottleneck(t, TaskSnapshot([a, t])) is None

    def test_no_dependencies(self):
        t = Task(id="T")
        assert bottleneck(t, TaskSnapshot([t])) is None


class TestInsightsAndWarnings:

    def test_task_insight(self):
        a = Task(id="A", due_date=date(2025, 1, 10))
        t = Task(id="T", depends_on_task_ids=("A", "gone"), duration_days=2)
        insight = task_insight(t, TaskSnapshot([a, t]))

        assert insight.effective_start == date(2025, 1, 10)
        assert insight.is_blocked
        assert insight.bottleneck_id == "A"
        assert insight.dangling_dependency_ids == ["gone"]
        assert insight.dates.predicted_end == date(2025, 1, 11)

    def test_collect_warnings(self):
        snapshot = TaskSnapshot([
            Task(id="A"),
            Task(id="B", depends_on_task_ids=("A",)),
            Task(id="C", depends_on_task_ids=("gone",)),
            Task(id="D", depends_on_task_ids=("A",), is_completed=True),
        ])
        warnings = collect_warnings(snapshot)

        dangling = [w for w in warnings if isinstance(w, DanglingReferenceWarning)]
        ambiguous = [w for w in warnings if isinstance(w, AmbiguousDateWarning)]
        assert [(w.task_id, w.missing_id) for w in dangling] == [("C", "gone")]
        assert [w.task_id for w in ambiguous] == ["B"]
        assert all(w.code for w in warnings)

    def test_clean_schedule_has_no_warnings(self):
        snapshot = TaskSnapshot([
            Task(id="A", due_date=date(2025, 1, 3)),
            Task(id="B", depends_on_task_ids=("A",)),
        ])
        assert collect_warnings(snapshot) == []
