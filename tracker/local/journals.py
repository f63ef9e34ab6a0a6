"""
Local Journals

Mood, goals, workouts, study and wellness data never reach the API. Each
collection lives in memory and is written whole to one key of the logged-in
user's LocalNamespace after every change, the same whole-collection
read/overwrite the local fallback uses for tasks and the rest.

GUARANTEES:
- Nothing is written while nobody is logged in; entries then last only as
  long as the objects holding them
- A failed write is logged by the namespace and the change stays in memory
- Entries that no longer validate are logged and left out on load
"""

from datetime import date, datetime, timedelta
from typing import Any, Generic, Optional, TypeVar, Union

from tracker import aggregates
from tracker.audit import AuditLogger
from tracker.local.storage import LocalNamespace
from tracker.models.journal import (
    DAILY_WATER_GOAL,
    EXERCISE_LIBRARY,
    Entry,
    Exercise,
    Goal,
    GoalCategory,
    GoalStatus,
    JournalModel,
    MeditationSession,
    Milestone,
    MoodEntry,
    PomodoroSettings,
    QuickNote,
    SleepLog,
    StudySession,
    StudySessionType,
    WaterLog,
    WorkoutLog,
    compute_progress,
)
from tracker.services.storage import DuplicateError
from tracker.services.storage.records import field_name, validate_model


E = TypeVar("E", bound=Entry)
J = TypeVar("J", bound=JournalModel)


def read_models(
    namespace: LocalNamespace,
    key: str,
    model: type[J],
    audit_logger: AuditLogger,
) -> list[J]:
    """Stored list under key as models; unreadable items are logged and skipped."""
    raw = namespace.read(key, default=[])
    if not isinstance(raw, list):
        return []
    models = []
    for item in raw:
        try:
            models.append(model.model_validate(item))
        except (TypeError, ValueError) as e:
            audit_logger.log_local_storage_failed(namespace.key(key), "parse", str(e))
    return models


class LocalCollection(Generic[E]):
    """One list of journal entries stored under one namespace key."""

    model: type[E]
    key: str
    # Newest first, like the synced collections
    prepend = True

    def __init__(self, namespace: LocalNamespace, audit_logger: Optional[AuditLogger] = None):
        self._namespace = namespace
        self._audit_logger = audit_logger or AuditLogger()
        self._items: list[E] = []

    @property
    def items(self) -> list[E]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, entry_id: str) -> Optional[E]:
        for item in self._items:
            if item.id == entry_id:
                return item
        return None

    def _require(self, entry_id: str) -> E:
        entry = self.get(entry_id)
        if entry is None:
            raise KeyError(f"No {self.key} entry {entry_id}")
        return entry

    def load(self) -> None:
        """Replace the entries with the stored ones; nobody logged in means none."""
        if not self._namespace.username:
            self._items = []
            return
        self._items = read_models(self._namespace, self.key, self.model, self._audit_logger)

    def _save(self) -> None:
        if self._namespace.username:
            self._namespace.write(self.key, [e.to_storage() for e in self._items])

    def _insert(self, entry: E) -> None:
        if self.prepend:
            self._items.insert(0, entry)
        else:
            self._items.append(entry)
        self._save()

    def _replace(self, entry: E) -> None:
        for index, item in enumerate(self._items):
            if item.id == entry.id:
                self._items[index] = entry
        self._save()

    def add(self, fields: dict[str, Any]) -> E:
        """
        Validate and store a new entry; an id is generated when absent.

        Raises:
            ValidationError: If the fields do not make a valid entry
            DuplicateError: If the id is already taken
        """
        entry = validate_model(self.model, fields)
        if self.get(entry.id) is not None:
            raise DuplicateError(f"{self.key} entry already exists: {entry.id}")
        self._insert(entry)
        return entry

    def update(self, entry_id: str, fields: dict[str, Any]) -> E:
        """
        Merge fields into an entry. The id never changes; unknown keys are dropped.

        Raises:
            KeyError: If there is no such entry
            ValidationError: If the merged entry is invalid
        """
        data = self._require(entry_id).model_dump()
        for key, value in fields.items():
            name = field_name(self.model, key)
            if name is not None and name != "id":
                data[name] = value
        entry = validate_model(self.model, data)
        self._replace(entry)
        return entry

    def delete(self, entry_id: str) -> None:
        entry = self._require(entry_id)
        self._items.remove(entry)
        self._save()


# =============================================================================
# MOOD
# =============================================================================

class MoodJournal(LocalCollection[MoodEntry]):
    model = MoodEntry
    key = "mood_entries"

    def add(self, fields: dict[str, Any]) -> MoodEntry:
        """Store an entry, replacing any entry already made for the same day."""
        entry = validate_model(MoodEntry, fields)
        self._items = [e for e in self._items if e.date != entry.date and e.id != entry.id]
        self._insert(entry)
        return entry

    def add_entry(
        self,
        rating: int,
        emotions: Optional[list[str]] = None,
        on: Optional[date] = None,
        notes: Optional[str] = None,
        gratitude: Optional[str] = None,
    ) -> MoodEntry:
        return self.add({
            "date": on or date.today(),
            "rating": rating,
            "emotions": emotions or [],
            "notes": notes,
            "gratitude": gratitude,
        })

    def today(self, day: Optional[date] = None) -> Optional[MoodEntry]:
        return aggregates.mood_on(self._items, day)

    def average(self, days: int, today: Optional[date] = None) -> float:
        return aggregates.average_mood(self._items, days, today)


# =============================================================================
# GOALS
# =============================================================================

class GoalBoard(LocalCollection[Goal]):
    model = Goal
    key = "goals"

    def add_goal(
        self,
        title: str,
        category: Union[GoalCategory, str],
        description: str = "",
        deadline: Optional[date] = None,
        milestones: Optional[list[str]] = None,
    ) -> Goal:
        return self.add({
            "title": title,
            "category": category,
            "description": description,
            "deadline": deadline,
            "milestones": [{"title": t} for t in milestones or []],
        })

    def update(self, entry_id: str, fields: dict[str, Any]) -> Goal:
        """Merge fields; replacing the milestones recomputes progress."""
        goal = super().update(entry_id, fields)
        if "milestones" in {field_name(Goal, key) for key in fields}:
            goal = goal.model_copy(update={"progress": compute_progress(goal.milestones)})
            self._replace(goal)
        return goal

    def add_milestone(self, goal_id: str, title: str) -> Goal:
        goal = self._require(goal_id)
        milestone = validate_model(Milestone, {"title": title})
        milestones = [*goal.milestones, milestone]
        goal = goal.model_copy(update={
            "milestones": milestones,
            "progress": compute_progress(milestones),
        })
        self._replace(goal)
        return goal

    def toggle_milestone(
        self,
        goal_id: str,
        milestone_id: str,
        now: Optional[datetime] = None,
    ) -> Goal:
        goal = self._require(goal_id).with_milestone_toggled(milestone_id, now)
        self._replace(goal)
        return goal

    def set_status(self, goal_id: str, status: Union[GoalStatus, str]) -> Goal:
        return self.update(goal_id, {"status": GoalStatus(status)})

    def active(self) -> list[Goal]:
        return aggregates.active_goals(self._items)

    def by_category(self, category: Union[GoalCategory, str]) -> list[Goal]:
        return aggregates.goals_by_category(self._items, category)


# =============================================================================
# EXERCISE
# =============================================================================

def find_exercise(exercise_id: str) -> Exercise:
    """
    Raises:
        KeyError: If the library has no such exercise
    """
    for exercise in EXERCISE_LIBRARY:
        if exercise.id == exercise_id:
            return exercise
    raise KeyError(f"No exercise {exercise_id} in the library")


class WorkoutJournal(LocalCollection[WorkoutLog]):
    model = WorkoutLog
    key = "workout_logs"
    library = EXERCISE_LIBRARY

    def log_workout(
        self,
        exercise_id: str,
        when: Optional[datetime] = None,
        sets: Optional[int] = None,
        reps: Optional[int] = None,
        weight: Optional[float] = None,
        duration: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> WorkoutLog:
        exercise = find_exercise(exercise_id)
        return self.add({
            "date": when or datetime.now(),
            "exercise_id": exercise.id,
            "exercise_name": exercise.name,
            "sets": sets,
            "reps": reps,
            "weight": weight,
            "duration": duration,
            "notes": notes,
        })

    def today(self, day: Optional[date] = None) -> list[WorkoutLog]:
        return aggregates.workouts_on(self._items, day)

    def this_week(self, today: Optional[date] = None) -> list[WorkoutLog]:
        return aggregates.workouts_in_last_days(self._items, 7, today)

    def total(self) -> int:
        return len(self._items)


# =============================================================================
# STUDY
# =============================================================================

class StudySessions(LocalCollection[StudySession]):
    model = StudySession
    key = "study_sessions"


class QuickNotes(LocalCollection[QuickNote]):
    model = QuickNote
    key = "quick_notes"


class StudyTracker:
    """Sessions, notes, the daily study streak and the pomodoro timer settings."""

    STREAK_KEY = "study_streak"
    LAST_DAY_KEY = "last_study_date"
    POMODORO_KEY = "pomodoro_settings"

    def __init__(self, namespace: LocalNamespace, audit_logger: Optional[AuditLogger] = None):
        self._namespace = namespace
        self._audit_logger = audit_logger or AuditLogger()
        self.sessions = StudySessions(namespace, self._audit_logger)
        self.notes = QuickNotes(namespace, self._audit_logger)
        self.streak = 0
        self.last_study_day: Optional[date] = None
        self.pomodoro = PomodoroSettings()

    def _write(self, key: str, value: Any) -> None:
        if self._namespace.username:
            self._namespace.write(key, value)

    def load(self) -> None:
        self.sessions.load()
        self.notes.load()
        self.streak = 0
        self.last_study_day = None
        self.pomodoro = PomodoroSettings()
        if not self._namespace.username:
            return

        streak = self._namespace.read(self.STREAK_KEY, default=0)
        self.streak = streak if isinstance(streak, int) else 0
        last_day = self._namespace.read(self.LAST_DAY_KEY)
        if isinstance(last_day, str):
            try:
                self.last_study_day = date.fromisoformat(last_day[:10])
            except ValueError as e:
                self._audit_logger.log_local_storage_failed(
                    self._namespace.key(self.LAST_DAY_KEY), "parse", str(e)
                )
        settings = self._namespace.read(self.POMODORO_KEY)
        if settings is not None:
            try:
                self.pomodoro = PomodoroSettings.model_validate(settings)
            except (TypeError, ValueError) as e:
                self._audit_logger.log_local_storage_failed(
                    self._namespace.key(self.POMODORO_KEY), "parse", str(e)
                )

    def record_study_day(self, today: Optional[date] = None) -> int:
        """Count today toward the streak and return the new streak."""
        today = today or date.today()
        self.streak = aggregates.next_study_streak(self.streak, self.last_study_day, today)
        self.last_study_day = today
        self._write(self.STREAK_KEY, self.streak)
        self._write(self.LAST_DAY_KEY, today.isoformat())
        return self.streak

    def add_session(
        self,
        start_time: datetime,
        duration: int,
        type: Union[StudySessionType, str] = StudySessionType.POMODORO,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> StudySession:
        """Log a session of `duration` minutes and count the day toward the streak."""
        session = self.sessions.add({
            "start_time": start_time,
            "end_time": start_time + timedelta(minutes=duration),
            "duration": duration,
            "type": type,
            "notes": notes,
        })
        self.record_study_day(today)
        return session

    def delete_session(self, session_id: str) -> None:
        self.sessions.delete(session_id)

    def add_note(self, content: str, subject: Optional[str] = None) -> QuickNote:
        return self.notes.add({"content": content, "subject": subject})

    def update_note(self, note_id: str, content: str, subject: Optional[str] = None) -> QuickNote:
        return self.notes.update(note_id, {"content": content, "subject": subject})

    def delete_note(self, note_id: str) -> None:
        self.notes.delete(note_id)

    def update_pomodoro(self, **changes: Any) -> PomodoroSettings:
        """
        Raises:
            ValidationError: If a changed setting is out of range
        """
        data = {**self.pomodoro.model_dump(), **changes}
        self.pomodoro = validate_model(PomodoroSettings, data)
        self._write(self.POMODORO_KEY, self.pomodoro.to_storage())
        return self.pomodoro

    def total_minutes(self) -> int:
        return aggregates.study_minutes(self.sessions.items)

    def minutes_on(self, day: Optional[date] = None) -> int:
        return aggregates.study_minutes(self.sessions.items, day or date.today())


# =============================================================================
# WELLNESS
# =============================================================================

class MeditationLog(LocalCollection[MeditationSession]):
    model = MeditationSession
    key = "meditation_sessions"


class SleepJournal(LocalCollection[SleepLog]):
    model = SleepLog
    key = "sleep_logs"


class WellnessTracker:
    """Meditation sessions, daily water glasses and sleep logs."""

    WATER_KEY = "water_logs"
    daily_water_goal = DAILY_WATER_GOAL

    def __init__(self, namespace: LocalNamespace, audit_logger: Optional[AuditLogger] = None):
        self._namespace = namespace
        self._audit_logger = audit_logger or AuditLogger()
        self.meditation = MeditationLog(namespace, self._audit_logger)
        self.sleep = SleepJournal(namespace, self._audit_logger)
        self._water: list[WaterLog] = []

    @property
    def water(self) -> list[WaterLog]:
        return list(self._water)

    def load(self) -> None:
        self.meditation.load()
        self.sleep.load()
        if not self._namespace.username:
            self._water = []
            return
        self._water = read_models(self._namespace, self.WATER_KEY, WaterLog, self._audit_logger)

    def _save_water(self) -> None:
        if self._namespace.username:
            self._namespace.write(self.WATER_KEY, [log.to_storage() for log in self._water])

    def add_meditation(self, duration: int, type: str, when: Optional[datetime] = None) -> MeditationSession:
        return self.meditation.add({"date": when or datetime.now(), "duration": duration, "type": type})

    def add_water_glass(self, day: Optional[date] = None) -> int:
        """One more glass on `day`; returns that day's count."""
        day = day or date.today()
        for index, log in enumerate(self._water):
            if log.date == day:
                self._water[index] = log.model_copy(update={"glasses": log.glasses + 1})
                break
        else:
            self._water.append(WaterLog(date=day, glasses=1))
        self._save_water()
        return self.water_on(day)

    def remove_water_glass(self, day: Optional[date] = None) -> int:
        """One glass fewer on `day`, never below zero; returns that day's count."""
        day = day or date.today()
        for index, log in enumerate(self._water):
            if log.date == day and log.glasses > 0:
                self._water[index] = log.model_copy(update={"glasses": log.glasses - 1})
                self._save_water()
        return self.water_on(day)

    def water_on(self, day: Optional[date] = None) -> int:
        return aggregates.water_on(self._water, day)

    def add_sleep(
        self,
        hours: float,
        quality: int,
        on: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> SleepLog:
        return self.sleep.add({
            "date": on or date.today(),
            "hours": hours,
            "quality": quality,
            "notes": notes,
        })

    def total_meditation_minutes(self) -> int:
        return aggregates.total_meditation_minutes(self.meditation.items)

    def average_sleep(self) -> float:
        return aggregates.average_sleep(self.sleep.items)


class Journals:
    """Every local journal of one user, sharing one namespace."""

    def __init__(self, namespace: LocalNamespace, audit_logger: Optional[AuditLogger] = None):
        audit_logger = audit_logger or AuditLogger()
        self.namespace = namespace
        self.mood = MoodJournal(namespace, audit_logger)
        self.goals = GoalBoard(namespace, audit_logger)
        self.workouts = WorkoutJournal(namespace, audit_logger)
        self.study = StudyTracker(namespace, audit_logger)
        self.wellness = WellnessTracker(namespace, audit_logger)

    def load(self) -> None:
        self.mood.load()
        self.goals.load()
        self.workouts.load()
        self.study.load()
        self.wellness.load()
