"""
Derived Aggregators

Pure functions over a collection snapshot. Nothing here is cached or
persisted: callers recompute on every read, so results always reflect the
latest optimistic state.

"Today" means calendar-day equality, never a rolling 24 hours.
"Last N days" is a trailing window that includes today.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from tracker.models.journal import (
    Goal,
    GoalCategory,
    GoalStatus,
    MeditationSession,
    MoodEntry,
    SleepLog,
    StudySession,
    WaterLog,
    WorkoutLog,
)
from tracker.models.resources import (
    Habit,
    Task,
    TimeBlock,
    Transaction,
    TransactionType,
    Weekday,
)


DateLike = Union[date, datetime, str]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Tolerate full timestamps such as 2024-05-01T10:00:00
    return date.fromisoformat(value[:10])


# =============================================================================
# DATE HELPERS
# =============================================================================

def is_same_day(value: DateLike, day: DateLike) -> bool:
    return _as_date(value) == _as_date(day)


def within_last_days(value: DateLike, days: int, today: Optional[date] = None) -> bool:
    """True when value falls in the trailing `days`-day window ending today."""
    today = today or date.today()
    start = today - timedelta(days=days - 1)
    return start <= _as_date(value) <= today


# =============================================================================
# FINANCE
# =============================================================================

def total_income(transactions: Iterable[Transaction]) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.type == TransactionType.INCOME),
        Decimal("0"),
    )


def total_expenses(transactions: Iterable[Transaction]) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
        Decimal("0"),
    )


def balance(transactions: Iterable[Transaction]) -> Decimal:
    """Income minus expenses."""
    transactions = list(transactions)
    return total_income(transactions) - total_expenses(transactions)


def category_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense amounts grouped by category."""
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category] += t.amount
    return dict(totals)


def transactions_in_last_days(
    transactions: Iterable[Transaction],
    days: int = 7,
    today: Optional[date] = None,
) -> list[Transaction]:
    return [t for t in transactions if within_last_days(t.date, days, today)]


def expenses_this_month(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> Decimal:
    today = today or date.today()
    return total_expenses(
        t for t in transactions
        if t.date.year == today.year and t.date.month == today.month
    )


def daily_expense_trend(
    transactions: Iterable[Transaction],
    days: int = 7,
    today: Optional[date] = None,
) -> list[tuple[date, Decimal]]:
    """Expense sum per day over the trailing window, oldest day first."""
    today = today or date.today()
    transactions = list(transactions)
    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        trend.append((day, total_expenses(t for t in transactions if t.date == day)))
    return trend


# =============================================================================
# TASKS
# =============================================================================

def completion_rate(tasks: Iterable[Task]) -> float:
    """Completed fraction in [0, 1]; 0.0 when there are no tasks."""
    tasks = list(tasks)
    if not tasks:
        return 0.0
    return sum(1 for t in tasks if t.completed) / len(tasks)


def pending_tasks(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if not t.completed]


def tasks_due_on(tasks: Iterable[Task], day: Optional[date] = None) -> list[Task]:
    day = day or date.today()
    return [t for t in tasks if t.due_date is not None and t.due_date == day]


# =============================================================================
# HABITS
# =============================================================================

def total_streak(habits: Iterable[Habit]) -> int:
    return sum(h.streak for h in habits)


def average_streak(habits: Iterable[Habit]) -> float:
    habits = list(habits)
    if not habits:
        return 0.0
    return total_streak(habits) / len(habits)


def habits_completed_on(habits: Iterable[Habit], day: Optional[date] = None) -> list[Habit]:
    day_str = (day or date.today()).isoformat()
    return [h for h in habits if day_str in h.completed_dates]


# =============================================================================
# PLANNER
# =============================================================================

def blocks_for_day(blocks: Iterable[TimeBlock], day: Union[Weekday, str]) -> list[TimeBlock]:
    day = Weekday(day)
    return sorted((b for b in blocks if b.day == day), key=lambda b: b.start_hour)


def blocks_for_slot(
    blocks: Iterable[TimeBlock],
    day: Union[Weekday, str],
    hour: int,
) -> list[TimeBlock]:
    """Blocks on `day` that cover the hour starting at `hour`."""
    return [b for b in blocks_for_day(blocks, day) if b.start_hour <= hour < b.end_hour]


def find_overlaps(blocks: Iterable[TimeBlock]) -> list[tuple[TimeBlock, TimeBlock]]:
    """Pairs of same-day blocks whose [start, start + duration) ranges intersect."""
    blocks = list(blocks)
    overlaps = []
    for day in Weekday:
        day_blocks = blocks_for_day(blocks, day)
        for i, first in enumerate(day_blocks):
            for second in day_blocks[i + 1:]:
                if second.start_hour >= first.end_hour:
                    break
                overlaps.append((first, second))
    return overlaps


def planned_hours_by_category(blocks: Iterable[TimeBlock]) -> dict[str, int]:
    totals: dict[str, int] = defaultdict(int)
    for b in blocks:
        totals[b.category.value] += b.duration
    return dict(totals)


# =============================================================================
# JOURNALS
# =============================================================================

def mood_on(entries: Iterable[MoodEntry], day: Optional[date] = None) -> Optional[MoodEntry]:
    day = day or date.today()
    return next((e for e in entries if e.date == day), None)


def average_mood(
    entries: Iterable[MoodEntry],
    days: int,
    today: Optional[date] = None,
) -> float:
    """Mean rating of entries dated within `days` days before today, 0.0 if none."""
    today = today or date.today()
    cutoff = today - timedelta(days=days)
    ratings = [e.rating for e in entries if e.date >= cutoff]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def active_goals(goals: Iterable[Goal]) -> list[Goal]:
    return [g for g in goals if g.status == GoalStatus.ACTIVE]


def goals_by_category(goals: Iterable[Goal], category: Union[GoalCategory, str]) -> list[Goal]:
    category = GoalCategory(category)
    return [g for g in goals if g.category == category]


def workouts_on(logs: Iterable[WorkoutLog], day: Optional[date] = None) -> list[WorkoutLog]:
    day = day or date.today()
    return [log for log in logs if is_same_day(log.date, day)]


def workouts_in_last_days(
    logs: Iterable[WorkoutLog],
    days: int = 7,
    today: Optional[date] = None,
) -> list[WorkoutLog]:
    return [log for log in logs if within_last_days(log.date, days, today)]


def study_minutes(sessions: Iterable[StudySession], day: Optional[date] = None) -> int:
    """Minutes studied in total, or on `day` by session start."""
    return sum(
        s.duration for s in sessions
        if day is None or is_same_day(s.start_time, day)
    )


def next_study_streak(streak: int, last_study_day: Optional[date], today: date) -> int:
    """
    Streak after studying today.

    Studying again on the same day keeps it; studying the day after the
    last session extends it; anything else starts over at 1.
    """
    if last_study_day == today:
        return streak
    if last_study_day == today - timedelta(days=1):
        return streak + 1
    return 1


def total_meditation_minutes(sessions: Iterable[MeditationSession]) -> int:
    return sum(s.duration for s in sessions)


def average_sleep(logs: Iterable[SleepLog]) -> float:
    hours = [log.hours for log in logs]
    if not hours:
        return 0.0
    return sum(hours) / len(hours)


def water_on(logs: Iterable[WaterLog], day: Optional[date] = None) -> int:
    day = day or date.today()
    return next((log.glasses for log in logs if log.date == day), 0)
