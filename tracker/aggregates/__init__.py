"""Derived aggregators package."""

from tracker.aggregates.summaries import (
    active_goals,
    average_mood,
    average_sleep,
    average_streak,
    balance,
    blocks_for_day,
    blocks_for_slot,
    category_totals,
    completion_rate,
    daily_expense_trend,
    expenses_this_month,
    find_overlaps,
    goals_by_category,
    habits_completed_on,
    is_same_day,
    mood_on,
    next_study_streak,
    pending_tasks,
    planned_hours_by_category,
    study_minutes,
    tasks_due_on,
    total_expenses,
    total_income,
    total_meditation_minutes,
    total_streak,
    transactions_in_last_days,
    water_on,
    within_last_days,
    workouts_in_last_days,
    workouts_on,
)

__all__ = [
    "active_goals",
    "average_mood",
    "average_sleep",
    "average_streak",
    "balance",
    "blocks_for_day",
    "blocks_for_slot",
    "category_totals",
    "completion_rate",
    "daily_expense_trend",
    "expenses_this_month",
    "find_overlaps",
    "goals_by_category",
    "habits_completed_on",
    "is_same_day",
    "mood_on",
    "next_study_streak",
    "pending_tasks",
    "planned_hours_by_category",
    "study_minutes",
    "tasks_due_on",
    "total_expenses",
    "total_income",
    "total_meditation_minutes",
    "total_streak",
    "transactions_in_last_days",
    "water_on",
    "within_last_days",
    "workouts_in_last_days",
    "workouts_on",
]
