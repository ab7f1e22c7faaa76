from __future__ import annotations
import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from errors import ValidationError


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


UTCDateTime = Annotated[datetime.datetime, AfterValidator(as_utc)]


def _domain_error(e: SchemaError) -> Optional[ValidationError]:
    for item in e.errors():
        cause = (item.get("ctx") or {}).get("error")
        if isinstance(cause, ValidationError):
            return cause
    return None


class DomainModel(BaseModel):
    """Immutable base for all entities; JSON uses camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def __init__(self, **data) -> None:
        try:
            super().__init__(**data)
        except SchemaError as e:
            cause = _domain_error(e)
            if cause is None:
                raise
            raise cause from e

    @classmethod
    def model_validate(cls, obj, **kwargs):
        try:
            return super().model_validate(obj, **kwargs)
        except SchemaError as e:
            cause = _domain_error(e)
            if cause is None:
                raise
            raise cause from e

    @classmethod
    def model_validate_json(cls, json_data, **kwargs):
        try:
            return super().model_validate_json(json_data, **kwargs)
        except SchemaError as e:
            cause = _domain_error(e)
            if cause is None:
                raise
            raise cause from e


class MuscleCategory(str, Enum):
    PUSH = "push"
    PULL = "pull"
    LEGS = "legs"
    CORE = "core"


class MuscleGroup(DomainModel):
    id: str
    name: str
    category: MuscleCategory


class MuscleContribution(DomainModel):
    muscle_group_id: str
    # 0-100; contributions of one exercise should sum to 100 but are not renormalized
    percentage: float


class Exercise(DomainModel):
    id: str
    name: str
    muscle_contributions: List[MuscleContribution] = Field(default_factory=list)
    description: Optional[str] = None
    videos: Optional[List[str]] = None
    notes: Optional[str] = None


class PlannedSet(DomainModel):
    id: str
    exercise_id: str
    target_reps: int
    target_weight: Optional[float] = None
    rest_seconds: Optional[int] = None
    order: Optional[int] = None


class WorkoutDay(DomainModel):
    id: str
    name: str
    planned_sets: List[PlannedSet] = Field(default_factory=list)
    order: Optional[int] = None


class WorkoutRoutine(DomainModel):
    id: str
    name: str
    description: Optional[str] = None
    days: List[WorkoutDay] = Field(default_factory=list)
    created_at: UTCDateTime
    updated_at: UTCDateTime


class WorkoutSession(DomainModel):
    id: str
    routine_id: str
    day_id: str
    started_at: UTCDateTime
    completed_at: Optional[UTCDateTime] = None
    notes: Optional[str] = None


class RepGroup(DomainModel):
    """A block of repetitions performed at one weight within a set."""

    reps: int
    weight: float
    order: int = 0

    @field_validator("reps", "weight")
    @classmethod
    def _non_negative(cls, value, info):
        if value < 0:
            raise ValidationError(f"{info.field_name} must be non-negative")
        return value

    @property
    def volume(self) -> float:
        return self.reps * self.weight


class CompletedSet(DomainModel):
    """Recorded outcome of one performed set.

    ``completed_at`` drives every time-windowed statistic; ``planned_set_id``
    links the set to its template and is ``None`` for ad-hoc sets.
    """

    id: str
    session_id: str
    exercise_id: str
    planned_set_id: Optional[str] = None
    rep_groups: List[RepGroup] = Field(default_factory=list)
    completed_at: UTCDateTime
    notes: Optional[str] = None

    @property
    def volume(self) -> float:
        return set_volume(self)


class Units(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class UserSettings(DomainModel):
    units: Units = Units.METRIC
    name: Optional[str] = None
    email: Optional[str] = None


def set_volume(completed: CompletedSet) -> float:
    """Return the sum of reps times weight over all rep groups of a set."""
    return sum(group.reps * group.weight for group in completed.rep_groups)


def sorted_rep_groups(groups: List[RepGroup]) -> List[RepGroup]:
    return sorted(groups, key=lambda g: g.order)
