from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from pydantic import Field

from default_data import default_exercises, default_muscle_groups
from settings_schema import validate_settings
from models import (
    CompletedSet,
    DomainModel,
    Exercise,
    MuscleGroup,
    UserSettings,
    WorkoutDay,
    WorkoutRoutine,
    WorkoutSession,
)

if TYPE_CHECKING:
    from config import YamlConfig
    from db import StateRepository

logger = logging.getLogger(__name__)

UNKNOWN_EXERCISE = "Unknown Exercise"


class AppState(DomainModel):
    """Every collection and pointer the tracker keeps between runs.

    The camelCase JSON form of this model is exactly what gets persisted.
    """

    muscle_groups: List[MuscleGroup] = Field(default_factory=default_muscle_groups)
    exercises: List[Exercise] = Field(default_factory=default_exercises)
    routines: List[WorkoutRoutine] = Field(default_factory=list)
    sessions: List[WorkoutSession] = Field(default_factory=list)
    completed_sets: List[CompletedSet] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)
    active_routine_id: Optional[str] = None
    active_session_id: Optional[str] = None
    current_day_index: int = 0
    current_set_index: int = 0
    is_workout_in_progress: bool = False


Reducer = Callable[..., AppState]


def find_routine(state: AppState, routine_id: Optional[str]) -> Optional[WorkoutRoutine]:
    for routine in state.routines:
        if routine.id == routine_id:
            return routine
    return None


def find_day(
    state: AppState, routine_id: Optional[str], day_id: Optional[str]
) -> Optional[WorkoutDay]:
    routine = find_routine(state, routine_id)
    if routine is None:
        return None
    for day in routine.days:
        if day.id == day_id:
            return day
    return None


def find_exercise(state: AppState, exercise_id: Optional[str]) -> Optional[Exercise]:
    for exercise in state.exercises:
        if exercise.id == exercise_id:
            return exercise
    return None


def find_muscle_group(state: AppState, muscle_group_id: str) -> Optional[MuscleGroup]:
    for group in state.muscle_groups:
        if group.id == muscle_group_id:
            return group
    return None


def find_session(state: AppState, session_id: Optional[str]) -> Optional[WorkoutSession]:
    for session in state.sessions:
        if session.id == session_id:
            return session
    return None


def find_completed_set(state: AppState, set_id: str) -> Optional[CompletedSet]:
    for completed in state.completed_sets:
        if completed.id == set_id:
            return completed
    return None


def active_session(state: AppState) -> Optional[WorkoutSession]:
    if state.active_session_id is None:
        return None
    return find_session(state, state.active_session_id)


def active_day(state: AppState) -> Optional[WorkoutDay]:
    session = active_session(state)
    if session is None:
        return None
    return find_day(state, session.routine_id, session.day_id)


def exercise_display_name(state: AppState, exercise_id: str) -> str:
    exercise = find_exercise(state, exercise_id)
    if exercise is None:
        return UNKNOWN_EXERCISE
    return exercise.name


def update_settings(state: AppState, fields: dict) -> AppState:
    settings = validate_settings({**state.settings.model_dump(), **fields})
    return state.model_copy(update={"settings": settings})


class StateStore:
    """Single writer around an :class:`AppState`.

    Reducers are applied through :meth:`dispatch`; the resulting state
    replaces the old one wholesale and is handed to the repository. A reducer
    that raises leaves the current state untouched.
    """

    def __init__(
        self,
        repo: "StateRepository | None" = None,
        state: AppState | None = None,
        config: "YamlConfig | None" = None,
    ) -> None:
        self.repo = repo
        self.config = config
        self._state = state if state is not None else AppState()

    @classmethod
    def load(
        cls, repo: "StateRepository", config: "YamlConfig | None" = None
    ) -> "StateStore":
        """Revive the persisted state, resuming any in-progress workout as-is."""
        state = repo.load()
        if state is None:
            state = AppState()
        if config is not None:
            data = config.load()
            if data:
                state = update_settings(state, data)
        if state.is_workout_in_progress:
            logger.info(
                "Resuming session %s at set %d",
                state.active_session_id,
                state.current_set_index,
            )
        return cls(repo, state, config)

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, reducer: Reducer, *args, **kwargs) -> AppState:
        new_state = reducer(self._state, *args, **kwargs)
        self._state = new_state
        self._persist()
        return new_state

    def update_settings(self, fields: dict) -> AppState:
        new_state = self.dispatch(update_settings, fields)
        if self.config is not None:
            self.config.save(new_state.settings.model_dump(mode="json", exclude_none=True))
        return new_state

    def _persist(self) -> None:
        if self.repo is None:
            return
        self.repo.save(self._state)
