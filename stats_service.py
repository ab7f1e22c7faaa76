from __future__ import annotations
import datetime
import math
from typing import Dict, Iterable, List, Optional

from models import CompletedSet, Exercise, MuscleGroup, WorkoutSession, as_utc, set_volume, utc_now
from state import StateStore

DEFAULT_DAYS_BACK = 31


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def window_start(
    days_back: int, now: Optional[datetime.datetime] = None
) -> datetime.datetime:
    """Return the instant ``days_back`` calendar days before ``now``."""
    current = as_utc(now) if now is not None else utc_now()
    return current - datetime.timedelta(days=days_back)


def volume_over_time(
    sessions: Iterable[WorkoutSession],
    completed_sets: Iterable[CompletedSet],
    active_routine_id: Optional[str],
    days_back: int = DEFAULT_DAYS_BACK,
    now: Optional[datetime.datetime] = None,
) -> Dict[str, object]:
    """Return per-date volume of the active routine's recent sessions.

    Sessions are selected by routine and ``started_at`` inside the window;
    their sets are grouped by the UTC date of ``completed_at``.
    """
    if not active_routine_id:
        return {"chart_data": [], "total_volume": 0}
    end = as_utc(now) if now is not None else utc_now()
    start = window_start(days_back, end)
    session_ids = {
        s.id
        for s in sessions
        if s.routine_id == active_routine_id and start <= s.started_at <= end
    }
    by_date: Dict[str, float] = {}
    total = 0.0
    for completed in completed_sets:
        if completed.session_id not in session_ids:
            continue
        date_key = completed.completed_at.date().isoformat()
        volume = set_volume(completed)
        by_date[date_key] = by_date.get(date_key, 0.0) + volume
        total += volume
    chart_data = [{"label": d, "value": by_date[d]} for d in sorted(by_date)]
    return {"chart_data": chart_data, "total_volume": total}


def muscle_group_volume(
    completed_sets: Iterable[CompletedSet],
    exercises: Iterable[Exercise],
    muscle_groups: Iterable[MuscleGroup],
    days_back: int = DEFAULT_DAYS_BACK,
    now: Optional[datetime.datetime] = None,
) -> Dict[str, object]:
    """Distribute recent set volume over muscle groups.

    Each contribution is rounded on its own, so the per-muscle values need
    not add up exactly to ``total_volume``. Sets whose exercise no longer
    exists are skipped entirely.
    """
    start = window_start(days_back, now)
    exercise_map: Dict[str, Exercise] = {}
    for ex in exercises:
        exercise_map.setdefault(ex.id, ex)
    names: Dict[str, str] = {}
    for group in muscle_groups:
        names.setdefault(group.id, group.name)

    by_muscle: Dict[str, int] = {}
    total = 0.0
    for completed in completed_sets:
        if completed.completed_at < start:
            continue
        exercise = exercise_map.get(completed.exercise_id)
        if exercise is None:
            continue
        volume = set_volume(completed)
        for contribution in exercise.muscle_contributions:
            share = round_half_up(volume * (contribution.percentage / 100))
            mid = contribution.muscle_group_id
            by_muscle[mid] = by_muscle.get(mid, 0) + share
        total += volume

    chart_data: List[Dict[str, object]] = [
        {"label": names.get(mid, mid), "value": value}
        for mid, value in by_muscle.items()
    ]
    chart_data.sort(key=lambda x: x["value"], reverse=True)
    return {"chart_data": chart_data, "total_volume": total}


class StatisticsService:
    """Compute volume statistics from the live state."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def volume_over_time(
        self,
        days_back: int = DEFAULT_DAYS_BACK,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, object]:
        state = self.store.state
        return volume_over_time(
            state.sessions,
            state.completed_sets,
            state.active_routine_id,
            days_back,
            now,
        )

    def muscle_group_volume(
        self,
        days_back: int = DEFAULT_DAYS_BACK,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, object]:
        state = self.store.state
        return muscle_group_volume(
            state.completed_sets,
            state.exercises,
            state.muscle_groups,
            days_back,
            now,
        )
