"""Local fallback storage, local accounts and device-only journals."""

from tracker.local.accounts import AccountError, LocalAccounts, LocalUser, simple_hash
from tracker.local.journals import (
    GoalBoard,
    Journals,
    LocalCollection,
    MoodJournal,
    StudyTracker,
    WellnessTracker,
    WorkoutJournal,
    find_exercise,
)
from tracker.local.storage import (
    LocalNamespace,
    LocalStorage,
    LocalStorageError,
    storage_key,
)

__all__ = [
    "AccountError",
    "GoalBoard",
    "Journals",
    "LocalAccounts",
    "LocalCollection",
    "LocalNamespace",
    "LocalStorage",
    "LocalStorageError",
    "LocalUser",
    "MoodJournal",
    "StudyTracker",
    "WellnessTracker",
    "WorkoutJournal",
    "find_exercise",
    "simple_hash",
    "storage_key",
]
