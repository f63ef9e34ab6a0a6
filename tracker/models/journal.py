"""
Journal Models

Personal entries that stay on the device: mood, goals, workouts, study
and wellness logs. They are never sent to the API, so they carry no
userId; the local namespace of the logged-in user is their scope.

DESIGN DECISION: Goal progress is derived from milestones the same way the
habit streak is derived from completedDates. compute_progress() is the only
place a progress value is produced when milestones change.
"""

from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class GoalCategory(str, Enum):
    CAREER = "career"
    HEALTH = "health"
    LEARNING = "learning"
    FINANCIAL = "financial"
    PERSONAL = "personal"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ExerciseCategory(str, Enum):
    CARDIO = "cardio"
    STRENGTH = "strength"
    FLEXIBILITY = "flexibility"
    SPORTS = "sports"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class StudySessionType(str, Enum):
    POMODORO = "pomodoro"
    FOCUS = "focus"


# =============================================================================
# BASE
# =============================================================================

class JournalModel(BaseModel):
    """camelCase on disk, snake_case in Python, like the API records."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Entry(JournalModel):
    """A journal item addressed by id within its collection."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        max_length=100,
    )


# =============================================================================
# MOOD
# =============================================================================

class MoodEntry(Entry):
    """One rating per calendar day; a new entry for a day replaces the old one."""

    date: date
    rating: int = Field(..., ge=1, le=10)
    emotions: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=2000)
    gratitude: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("emotions")
    @classmethod
    def normalize_emotions(cls, v: list[str]) -> list[str]:
        """Lowercase, drop blanks and repeats, keep first-seen order."""
        seen: list[str] = []
        for emotion in v:
            emotion = emotion.strip().lower()
            if emotion and emotion not in seen:
                seen.append(emotion)
        return seen


# =============================================================================
# GOALS
# =============================================================================

class Milestone(Entry):
    title: str = Field(..., min_length=1, max_length=500)
    completed: bool = False
    completed_date: Optional[datetime] = None


def compute_progress(milestones: Iterable[Milestone]) -> float:
    """Percent of milestones completed, 0 when there are none."""
    milestones = list(milestones)
    if not milestones:
        return 0.0
    done = sum(1 for m in milestones if m.completed)
    return done / len(milestones) * 100


class Goal(Entry):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="", max_length=2000)
    category: GoalCategory
    deadline: Optional[date] = None
    milestones: list[Milestone] = Field(default_factory=list)
    progress: float = Field(default=0.0, ge=0, le=100, description="Percent complete")
    status: GoalStatus = GoalStatus.ACTIVE
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def with_milestone_toggled(self, milestone_id: str, now: Optional[datetime] = None) -> "Goal":
        """
        Flip one milestone and recompute progress.

        Raises:
            KeyError: If the goal has no such milestone
        """
        if not any(m.id == milestone_id for m in self.milestones):
            raise KeyError(f"No milestone {milestone_id} in goal {self.id}")
        now = now or datetime.utcnow()
        milestones = [
            m.model_copy(update={
                "completed": not m.completed,
                "completed_date": None if m.completed else now,
            }) if m.id == milestone_id else m
            for m in self.milestones
        ]
        return self.model_copy(update={
            "milestones": milestones,
            "progress": compute_progress(milestones),
        })


# =============================================================================
# EXERCISE
# =============================================================================

class Exercise(JournalModel):
    """An entry of the built-in exercise library."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: ExerciseCategory
    muscle_groups: tuple[str, ...]
    difficulty: Difficulty
    description: str


def _exercise(exercise_id, name, category, muscle_groups, difficulty, description) -> Exercise:
    return Exercise(
        id=exercise_id,
        name=name,
        category=category,
        muscle_groups=tuple(muscle_groups),
        difficulty=difficulty,
        description=description,
    )


_C, _S, _F, _SP = (
    ExerciseCategory.CARDIO,
    ExerciseCategory.STRENGTH,
    ExerciseCategory.FLEXIBILITY,
    ExerciseCategory.SPORTS,
)
_B, _I, _A = Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED

EXERCISE_LIBRARY: tuple[Exercise, ...] = (
    _exercise("1", "Running", _C, ["legs", "core"], _B, "Great for cardiovascular health"),
    _exercise("2", "Cycling", _C, ["legs"], _B, "Low-impact cardio exercise"),
    _exercise("3", "Jump Rope", _C, ["legs", "arms", "core"], _I, "High-intensity cardio"),
    _exercise("4", "Swimming", _C, ["full body"], _I, "Full-body cardio workout"),
    _exercise("5", "HIIT", _C, ["full body"], _A, "High-intensity interval training"),
    _exercise("6", "Push-ups", _S, ["chest", "arms", "core"], _B, "Upper body strength exercise"),
    _exercise("7", "Pull-ups", _S, ["back", "arms"], _I, "Back and arm strength"),
    _exercise("8", "Squats", _S, ["legs", "glutes"], _B, "Lower body strength"),
    _exercise("9", "Bench Press", _S, ["chest", "arms"], _I, "Chest and tricep strength"),
    _exercise("10", "Deadlifts", _S, ["back", "legs", "core"], _A, "Compound full-body exercise"),
    _exercise("11", "Lunges", _S, ["legs", "glutes"], _B, "Single-leg strength"),
    _exercise("12", "Plank", _S, ["core"], _B, "Core stability exercise"),
    _exercise("13", "Dumbbell Rows", _S, ["back", "arms"], _I, "Back strength exercise"),
    _exercise("14", "Shoulder Press", _S, ["shoulders", "arms"], _I, "Shoulder strength"),
    _exercise("15", "Bicep Curls", _S, ["arms"], _B, "Arm strength exercise"),
    _exercise("16", "Yoga", _F, ["full body"], _B, "Flexibility and mindfulness"),
    _exercise("17", "Stretching", _F, ["full body"], _B, "Improve flexibility"),
    _exercise("18", "Pilates", _F, ["core", "full body"], _I, "Core strength and flexibility"),
    _exercise("19", "Dynamic Stretching", _F, ["full body"], _B, "Active stretching routine"),
    _exercise("20", "Foam Rolling", _F, ["full body"], _B, "Myofascial release"),
    _exercise("21", "Basketball", _SP, ["legs", "arms", "core"], _I, "Team sport activity"),
    _exercise("22", "Soccer", _SP, ["legs", "core"], _I, "Cardio and agility"),
    _exercise("23", "Tennis", _SP, ["arms", "legs", "core"], _I, "Racquet sport"),
    _exercise("24", "Badminton", _SP, ["arms", "legs"], _B, "Indoor racquet sport"),
    _exercise("25", "Martial Arts", _SP, ["full body"], _I, "Combat sport training"),
)


class WorkoutLog(Entry):
    """One logged exercise. Optional measures depend on the exercise."""

    date: datetime
    exercise_id: str = Field(..., min_length=1)
    exercise_name: str = Field(..., min_length=1)
    sets: Optional[int] = Field(default=None, ge=1)
    reps: Optional[int] = Field(default=None, ge=1)
    weight: Optional[float] = Field(default=None, ge=0, description="Kilograms")
    duration: Optional[int] = Field(default=None, ge=0, description="Minutes")
    notes: Optional[str] = Field(default=None, max_length=2000)


# =============================================================================
# STUDY
# =============================================================================

class StudySession(Entry):
    start_time: datetime
    end_time: datetime
    duration: int = Field(..., ge=0, description="Minutes")
    type: StudySessionType = StudySessionType.POMODORO
    notes: Optional[str] = Field(default=None, max_length=2000)


class QuickNote(Entry):
    content: str = Field(..., min_length=1, max_length=5000)
    subject: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PomodoroSettings(JournalModel):
    """Timer lengths in minutes."""

    work_duration: int = Field(default=25, ge=1)
    short_break_duration: int = Field(default=5, ge=1)
    long_break_duration: int = Field(default=15, ge=1)
    sessions_until_long_break: int = Field(default=4, ge=1)
    auto_start_breaks: bool = False
    auto_start_pomodoros: bool = False


# =============================================================================
# WELLNESS
# =============================================================================

DAILY_WATER_GOAL = 8


class MeditationSession(Entry):
    date: datetime
    duration: int = Field(..., ge=0, description="Minutes")
    type: str = Field(..., min_length=1, max_length=100)


class WaterLog(JournalModel):
    """Glasses drunk on one day; at most one log per date."""

    date: date
    glasses: int = Field(default=0, ge=0)


class SleepLog(Entry):
    date: date
    hours: float = Field(..., ge=0, le=24)
    quality: int = Field(..., ge=1, le=5, description="1 to 5 stars")
    notes: Optional[str] = Field(default=None, max_length=2000)
