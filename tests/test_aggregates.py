"""Tests for the derived aggregators."""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from tracker import aggregates
from tracker.models.journal import (
    Goal,
    MoodEntry,
    SleepLog,
    StudySession,
    WaterLog,
    WorkoutLog,
)
from tracker.models.resources import Habit, Task, TimeBlock, Transaction


TODAY = date(2024, 5, 15)


def txn(amount, type, day=TODAY, category="General"):
    return Transaction(
        id=f"f-{amount}-{type}-{day}-{category}",
        user_id="u1",
        amount=Decimal(str(amount)),
        category=category,
        date=day,
        type=type,
    )


def task(n, completed=False, due=None):
    return Task(id=f"t{n}", user_id="u1", title=f"Task {n}", completed=completed, due_date=due)


def block(n, day, start, duration, category="Work"):
    return TimeBlock(
        id=f"p{n}", user_id="u1", title=f"Block {n}", day=day,
        start_hour=start, duration=duration, category=category,
    )


class TestFinanceAggregates:
    """Tests for balance and spending views."""

    def test_balance(self):
        """Test income 100 with expenses 40 and 10 leaves 50."""
        transactions = [txn(100, "income"), txn(40, "expense"), txn(10, "expense")]
        assert aggregates.total_income(transactions) == Decimal("100")
        assert aggregates.total_expenses(transactions) == Decimal("50")
        assert aggregates.balance(transactions) == Decimal("50")

    def test_balance_of_nothing(self):
        """Test empty collections sum to zero."""
        assert aggregates.balance([]) == Decimal("0")

    def test_category_totals_count_expenses_only(self):
        """Test income never appears in category totals."""
        transactions = [
            txn(30, "expense", category="Food"),
            txn(20, "expense", category="Food"),
            txn(15, "expense", category="Transport"),
            txn(500, "income", category="Salary"),
        ]
        assert aggregates.category_totals(transactions) == {
            "Food": Decimal("50"),
            "Transport": Decimal("15"),
        }

    def test_last_days_window_includes_today(self):
        """Test a 7-day window spans today and the six days before."""
        transactions = [
            txn(1, "expense", TODAY),
            txn(2, "expense", TODAY - timedelta(days=6)),
            txn(3, "expense", TODAY - timedelta(days=7)),
        ]
        recent = aggregates.transactions_in_last_days(transactions, 7, today=TODAY)
        assert [t.amount for t in recent] == [Decimal("1"), Decimal("2")]

    def test_expenses_this_month(self):
        """Test only the current calendar month is summed."""
        transactions = [
            txn(10, "expense", date(2024, 5, 1)),
            txn(20, "expense", date(2024, 4, 30)),
            txn(99, "income", date(2024, 5, 2)),
        ]
        assert aggregates.expenses_this_month(transactions, today=TODAY) == Decimal("10")

    def test_daily_expense_trend(self):
        """Test the trend lists each day oldest first, zeros included."""
        transactions = [
            txn(5, "expense", TODAY),
            txn(7, "expense", TODAY - timedelta(days=2)),
        ]
        trend = aggregates.daily_expense_trend(transactions, 3, today=TODAY)
        assert trend == [
            (TODAY - timedelta(days=2), Decimal("7")),
            (TODAY - timedelta(days=1), Decimal("0")),
            (TODAY, Decimal("5")),
        ]


class TestTaskAggregates:
    """Tests for task views."""

    def test_completion_rate_empty(self):
        """Test no tasks gives 0, not a division error."""
        assert aggregates.completion_rate([]) == 0.0

    def test_completion_rate_one_of_three(self):
        """Test one completed task out of three."""
        tasks = [task(1, completed=True), task(2), task(3)]
        assert aggregates.completion_rate(tasks) == pytest.approx(1 / 3)

    def test_pending_and_due(self):
        """Test pending and due-today filters."""
        tasks = [task(1, completed=True, due=TODAY), task(2, due=TODAY), task(3)]
        assert [t.id for t in aggregates.pending_tasks(tasks)] == ["t2", "t3"]
        assert [t.id for t in aggregates.tasks_due_on(tasks, TODAY)] == ["t1", "t2"]


class TestHabitAggregates:
    """Tests for habit views."""

    def test_streak_totals(self):
        """Test total and average of cached streaks."""
        habits = [
            Habit(id="h1", user_id="u1", title="Read", streak=3),
            Habit(id="h2", user_id="u1", title="Run", streak=1),
        ]
        assert aggregates.total_streak(habits) == 4
        assert aggregates.average_streak(habits) == 2.0
        assert aggregates.average_streak([]) == 0.0

    def test_completed_on(self):
        """Test habits done on a given day."""
        habits = [
            Habit(id="h1", user_id="u1", title="Read", completed_dates=["2024-05-15"]),
            Habit(id="h2", user_id="u1", title="Run", completed_dates=["2024-05-14"]),
        ]
        assert [h.id for h in aggregates.habits_completed_on(habits, TODAY)] == ["h1"]


class TestPlannerAggregates:
    """Tests for planner views."""

    def test_blocks_for_slot(self):
        """Test a block covers every hour from start to start + duration."""
        blocks = [block(1, "Monday", 9, 2), block(2, "Tuesday", 9, 1)]
        assert [b.id for b in aggregates.blocks_for_slot(blocks, "Monday", 10)] == ["p1"]
        assert aggregates.blocks_for_slot(blocks, "Monday", 11) == []

    def test_find_overlaps(self):
        """Test only same-day intersecting ranges are reported."""
        blocks = [
            block(1, "Monday", 9, 3),
            block(2, "Monday", 11, 1),
            block(3, "Monday", 12, 1),
            block(4, "Tuesday", 9, 3),
        ]
        pairs = aggregates.find_overlaps(blocks)
        assert [(a.id, b.id) for a, b in pairs] == [("p1", "p2")]

    def test_hours_by_category(self):
        """Test planned hours are summed per category."""
        blocks = [
            block(1, "Monday", 9, 3, "Work"),
            block(2, "Monday", 18, 1, "Fitness"),
            block(3, "Friday", 9, 2, "Work"),
        ]
        assert aggregates.planned_hours_by_category(blocks) == {"Work": 5, "Fitness": 1}


class TestDateHelpers:
    """Tests for calendar day helpers."""

    def test_same_day_ignores_time(self):
        """Test timestamps on one calendar day match."""
        assert aggregates.is_same_day(datetime(2024, 5, 15, 23, 59), TODAY)
        assert aggregates.is_same_day("2024-05-15T08:00:00", TODAY)
        assert not aggregates.is_same_day("2024-05-14", TODAY)


class TestJournalAggregates:
    """Tests for the mood, goal, workout, study and wellness views."""

    def test_mood_on_day(self):
        """Test the entry for a given calendar day is found."""
        entries = [MoodEntry(date=TODAY, rating=7), MoodEntry(date=TODAY - timedelta(days=1), rating=3)]
        assert aggregates.mood_on(entries, TODAY).rating == 7
        assert aggregates.mood_on(entries, TODAY + timedelta(days=1)) is None

    def test_average_mood_window(self):
        """Test only entries inside the window are averaged."""
        entries = [
            MoodEntry(date=TODAY, rating=8),
            MoodEntry(date=TODAY - timedelta(days=7), rating=4),
            MoodEntry(date=TODAY - timedelta(days=8), rating=1),
        ]
        assert aggregates.average_mood(entries, 7, TODAY) == 6
        assert aggregates.average_mood([], 7, TODAY) == 0.0

    def test_goal_filters(self):
        """Test active and per-category goal views."""
        goals = [
            Goal(title="Run 10k", category="health"),
            Goal(title="Save", category="financial", status="archived"),
        ]
        assert [g.title for g in aggregates.active_goals(goals)] == ["Run 10k"]
        assert [g.title for g in aggregates.goals_by_category(goals, "financial")] == ["Save"]
        with pytest.raises(ValueError):
            aggregates.goals_by_category(goals, "hobbies")

    def test_workouts_today_and_this_week(self):
        """Test workouts are grouped by calendar day and trailing week."""
        def log(days_back):
            return WorkoutLog(
                date=datetime(2024, 5, 15, 18) - timedelta(days=days_back),
                exercise_id="1",
                exercise_name="Running",
            )

        logs = [log(0), log(6), log(7)]
        assert len(aggregates.workouts_on(logs, TODAY)) == 1
        assert len(aggregates.workouts_in_last_days(logs, 7, TODAY)) == 2

    def test_study_minutes(self):
        """Test minutes are summed overall and per start day."""
        def session(start, minutes):
            return StudySession(
                start_time=start, end_time=start + timedelta(minutes=minutes), duration=minutes,
            )

        sessions = [session(datetime(2024, 5, 15, 9), 25), session(datetime(2024, 5, 14, 9), 50)]
        assert aggregates.study_minutes(sessions) == 75
        assert aggregates.study_minutes(sessions, TODAY) == 25

    @pytest.mark.parametrize("last_day,streak,expected", [
        (TODAY, 3, 3),
        (TODAY - timedelta(days=1), 3, 4),
        (TODAY - timedelta(days=2), 3, 1),
        (None, 0, 1),
    ])
    def test_next_study_streak(self, last_day, streak, expected):
        """Test same day keeps, next day extends, a gap restarts."""
        assert aggregates.next_study_streak(streak, last_day, TODAY) == expected

    def test_wellness_views(self):
        """Test sleep average, meditation total and water per day."""
        sleep = [
            SleepLog(date=TODAY, hours=7, quality=4),
            SleepLog(date=TODAY - timedelta(days=1), hours=8, quality=5),
        ]
        assert aggregates.average_sleep(sleep) == 7.5
        assert aggregates.average_sleep([]) == 0.0
        assert aggregates.water_on([WaterLog(date=TODAY, glasses=3)], TODAY) == 3
        assert aggregates.water_on([], TODAY) == 0
