"""
Core Data Models for the Tracker

These models define the strict schemas for every record kind stored
per user. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the camelCase wire format used by the REST API and clients
4. Be shared verbatim by the server store and the sync client

DESIGN DECISION: The habit streak is stored alongside completedDates but is
never trusted from input. Every write path goes through Habit.with_streak(),
which is the only place a streak value is produced.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ResourceKind(str, Enum):
    """
    Independently scoped record collections.

    The value is the URL segment used by the REST API (/api/{kind}).
    """
    TASKS = "tasks"
    HABITS = "habits"
    FINANCE = "finance"
    PLANNER = "planner"


class Priority(str, Enum):
    """Task priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class BlockCategory(str, Enum):
    """Planner time block categories."""
    WORK = "Work"
    PERSONAL = "Personal"
    STUDY = "Study"
    FITNESS = "Fitness"


class Weekday(str, Enum):
    """Planner day names, Monday first."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


DAILY = "Daily"
WEEKDAY_TAGS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


# =============================================================================
# STREAK ALGORITHM
# =============================================================================

def compute_streak(completed_dates: Iterable[str], today: Optional[date] = None) -> int:
    """
    Count consecutive completed days ending today or yesterday.

    A most recent completion older than yesterday means the streak is
    broken and the result is 0. Duplicate dates count once.
    """
    days = sorted({date.fromisoformat(d) for d in completed_dates}, reverse=True)
    if not days:
        return 0

    today = today or date.today()
    if days[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    for previous, current in zip(days, days[1:]):
        if previous - current != timedelta(days=1):
            break
        streak += 1
    return streak


# =============================================================================
# RECORD MODELS
# =============================================================================

# Serialization context for persisted copies
EXACT_DECIMALS = {"exact_decimals": True}


class Record(BaseModel):
    """
    Fields shared by every stored record.

    id is unique within the owning user's scope only.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Record ID, unique within the user scope"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owning user scope key"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the record was created"
    )

    def to_wire(self) -> dict:
        """Serialize to the JSON-compatible camelCase form."""
        return self.model_dump(mode="json", by_alias=True)

    def to_storage(self) -> dict:
        """Like to_wire(), but decimals keep every digit as strings."""
        return self.model_dump(mode="json", by_alias=True, context=EXACT_DECIMALS)

    def to_storage_json(self) -> str:
        return self.model_dump_json(by_alias=True, context=EXACT_DECIMALS)


class Task(Record):
    """A to-do item. Completion is toggled, never archived."""

    title: str = Field(..., min_length=1, max_length=500)
    completed: bool = False
    due_date: Optional[date] = Field(
        default=None,
        description="Calendar date the task is due"
    )
    priority: Priority = Priority.MEDIUM


class Habit(Record):
    """
    A recurring habit and the days it was done.

    completed_dates holds ISO calendar dates (YYYY-MM-DD), each at most once.
    """

    title: str = Field(..., min_length=1, max_length=500)
    frequency: list[str] = Field(
        default_factory=lambda: [DAILY],
        min_length=1,
        description="Weekday tags (Mon..Sun) or the 'Daily' sentinel"
    )
    completed_dates: list[str] = Field(default_factory=list)
    streak: int = Field(
        default=0,
        ge=0,
        description="Cached result of compute_streak at the last mutation"
    )

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v: list[str]) -> list[str]:
        allowed = {DAILY, *WEEKDAY_TAGS}
        unknown = [tag for tag in v if tag not in allowed]
        if unknown:
            raise ValueError(f"Unknown frequency tags: {', '.join(unknown)}")
        return list(dict.fromkeys(v))

    @field_validator("completed_dates")
    @classmethod
    def validate_completed_dates(cls, v: list[str]) -> list[str]:
        """Normalize to ISO strings and drop duplicates, keeping first-seen order."""
        normalized = []
        for raw in v:
            try:
                normalized.append(date.fromisoformat(raw).isoformat())
            except ValueError:
                raise ValueError(f"Invalid completion date: {raw!r}")
        return list(dict.fromkeys(normalized))

    def with_streak(self, today: Optional[date] = None) -> "Habit":
        """Return a copy whose streak matches completed_dates."""
        return self.model_copy(
            update={"streak": compute_streak(self.completed_dates, today)}
        )

    def with_completion_toggled(self, day: date, today: Optional[date] = None) -> "Habit":
        """Mark or unmark one day, recomputing the streak in the same step."""
        day_str = day.isoformat()
        if day_str in self.completed_dates:
            dates = [d for d in self.completed_dates if d != day_str]
        else:
            dates = [*self.completed_dates, day_str]
        return self.model_copy(update={"completed_dates": dates}).with_streak(today)


class Transaction(Record):
    """Income or expense entry. Balances are always recomputed, never stored."""

    amount: Decimal = Field(..., ge=0, description="Non-negative amount")
    category: str = Field(..., min_length=1, max_length=100)
    date: date
    type: TransactionType
    description: Optional[str] = Field(default=None, max_length=1000)

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal, info: SerializationInfo):
        """
        JSON clients expect a number, not pydantic's default string.

        Persisted copies ask for EXACT_DECIMALS and get the exact string,
        since a float cannot hold every decimal amount.
        """
        if info.context and info.context.get("exact_decimals"):
            return str(amount)
        return float(amount)


class TimeBlock(Record):
    """
    A weekly planner slot.

    Blocks on the same day are expected not to overlap, but this is not
    enforced here; see find_overlaps().
    """

    title: str = Field(..., min_length=1, max_length=500)
    day: Weekday
    start_hour: int = Field(..., ge=0, le=23)
    duration: int = Field(..., ge=1, le=24, description="Length in whole hours")
    category: BlockCategory

    @property
    def end_hour(self) -> int:
        return self.start_hour + self.duration


MODEL_BY_KIND: dict[ResourceKind, type[Record]] = {
    ResourceKind.TASKS: Task,
    ResourceKind.HABITS: Habit,
    ResourceKind.FINANCE: Transaction,
    ResourceKind.PLANNER: TimeBlock,
}


def model_for(kind: ResourceKind) -> type[Record]:
    """Get the record model for a resource kind."""
    return MODEL_BY_KIND[ResourceKind(kind)]
