import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException, Response

from config import APP_VERSION, YamlConfig, db_path_from_env, settings_path_from_env
from db import StateRepository
from errors import InvalidStateError, NotFoundError
from import_service import HistoryService
from models import DomainModel
from planner_service import PlannerService
from session_service import TrainingSessionController
from state import StateStore
from stats_service import DEFAULT_DAYS_BACK, StatisticsService


def _dump(model: DomainModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidStateError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


class TrackerAPI:
    """Provides REST endpoints for routines, sessions and history."""

    def __init__(
        self,
        db_path: str = "tracker.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.repo = StateRepository(db_path)
        self.config = YamlConfig(yaml_path)
        self.store = StateStore.load(self.repo, self.config)
        self.planner = PlannerService(self.store)
        self.sessions = TrainingSessionController(self.store)
        self.statistics = StatisticsService(self.store)
        self.history = HistoryService(self.store)
        self.app = FastAPI(
            title="Resistance Diary API",
            description="REST API for routine planning and workout logging",
        )
        self._setup_routes()

    def _setup_routes(self) -> None:
        routines_router = APIRouter(prefix="/routines", tags=["Routines"])
        sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"])
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"])
        history_router = APIRouter(prefix="/history", tags=["History"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify the API is up and the state is loaded.",
        )
        def health():
            return {"status": "ok", "version": APP_VERSION}

        @routines_router.get("")
        def list_routines():
            return [_dump(r) for r in self.planner.routines()]

        @routines_router.post("")
        def create_routine(
            name: str = Body(...),
            description: Optional[str] = Body(None),
            days: List[dict] = Body([]),
        ):
            try:
                routine = self.planner.create_routine(name, description, days)
            except ValueError as e:
                raise _http_error(e)
            return _dump(routine)

        @routines_router.put("/active")
        def set_active_routine(
            routine_id: Optional[str] = Body(None, alias="routineId", embed=True)
        ):
            try:
                self.planner.set_active_routine(routine_id)
            except LookupError as e:
                raise _http_error(e)
            return {"activeRoutineId": routine_id}

        @routines_router.post("/import_shared")
        def import_shared_routine(data: dict = Body(...)):
            try:
                routine = self.planner.import_shared(data)
            except ValueError as e:
                raise _http_error(e)
            return _dump(routine)

        @routines_router.get("/{routine_id}")
        def get_routine(routine_id: str):
            try:
                return _dump(self.planner.get_routine(routine_id))
            except LookupError as e:
                raise _http_error(e)

        @routines_router.put("/{routine_id}")
        def update_routine(routine_id: str, fields: dict = Body(...)):
            try:
                routine = self.planner.update_routine(routine_id, fields)
            except (LookupError, ValueError) as e:
                raise _http_error(e)
            return _dump(routine)

        @routines_router.delete("/{routine_id}")
        def delete_routine(routine_id: str):
            try:
                self.planner.delete_routine(routine_id)
            except LookupError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @routines_router.get("/{routine_id}/share")
        def share_routine(routine_id: str):
            try:
                return self.planner.share_routine(routine_id)
            except LookupError as e:
                raise _http_error(e)

        @routines_router.post("/{routine_id}/days")
        def add_day(
            routine_id: str,
            name: str = Body(...),
            order: Optional[int] = Body(None),
        ):
            try:
                day = self.planner.add_day(routine_id, name, order)
            except (LookupError, ValueError) as e:
                raise _http_error(e)
            return _dump(day)

        @routines_router.post("/{routine_id}/days/{day_id}/sets")
        def add_planned_set(
            routine_id: str,
            day_id: str,
            exercise_id: str = Body(..., alias="exerciseId"),
            target_reps: int = Body(..., alias="targetReps"),
            target_weight: Optional[float] = Body(None, alias="targetWeight"),
            rest_seconds: Optional[int] = Body(None, alias="restSeconds"),
            order: Optional[int] = Body(None),
        ):
            try:
                planned = self.planner.add_planned_set(
                    routine_id,
                    day_id,
                    exercise_id,
                    target_reps,
                    target_weight,
                    rest_seconds,
                    order,
                )
            except (LookupError, ValueError) as e:
                raise _http_error(e)
            return _dump(planned)

        @routines_router.put("/{routine_id}/days/{day_id}/reorder")
        def reorder_planned_sets(
            routine_id: str,
            day_id: str,
            ordered_ids: List[str] = Body(..., alias="orderedIds", embed=True),
        ):
            try:
                day = self.planner.reorder_planned_sets(routine_id, day_id, ordered_ids)
            except LookupError as e:
                raise _http_error(e)
            return _dump(day)

        @self.app.get("/exercises")
        def list_exercises():
            return [_dump(e) for e in self.planner.exercises()]

        @self.app.get("/muscle_groups")
        def list_muscle_groups():
            return [_dump(g) for g in self.planner.muscle_groups()]

        @sessions_router.get("")
        def list_sessions():
            return [_dump(s) for s in self.store.state.sessions]

        @sessions_router.post("/start")
        def start_session(
            routine_id: str = Body(..., alias="routineId"),
            day_id: str = Body(..., alias="dayId"),
        ):
            try:
                session = self.sessions.start_session(routine_id, day_id)
            except (LookupError, InvalidStateError) as e:
                raise _http_error(e)
            return _dump(session)

        @sessions_router.post("/sets")
        def record_set(
            rep_groups: List[dict] = Body(..., alias="repGroups"),
            exercise_id: Optional[str] = Body(None, alias="exerciseId"),
            planned_set_id: Optional[str] = Body(None, alias="plannedSetId"),
            notes: Optional[str] = Body(None),
        ):
            try:
                completed = self.sessions.record_set(
                    rep_groups, exercise_id, planned_set_id, notes
                )
            except (InvalidStateError, ValueError) as e:
                raise _http_error(e)
            return _dump(completed)

        @sessions_router.post("/next")
        def next_set():
            return {"currentSetIndex": self.sessions.advance_set()}

        @sessions_router.post("/previous")
        def previous_set():
            return {"currentSetIndex": self.sessions.retreat_set()}

        @sessions_router.post("/complete")
        def complete_session(notes: Optional[str] = Body(None, embed=True)):
            try:
                session = self.sessions.complete_session(notes)
            except InvalidStateError as e:
                raise _http_error(e)
            return _dump(session)

        @sessions_router.post("/cancel")
        def cancel_session():
            self.sessions.cancel_session()
            return {"status": "cancelled"}

        @sessions_router.get("/progress")
        def session_progress():
            return _dump(self.sessions.progress())

        @self.app.get("/completed_sets")
        def list_completed_sets():
            return [_dump(cs) for cs in self.store.state.completed_sets]

        @self.app.delete("/completed_sets/{set_id}")
        def delete_completed_set(set_id: str):
            try:
                self.sessions.remove_completed_set(set_id)
            except LookupError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @stats_router.get("/volume")
        def volume_over_time(days_back: int = DEFAULT_DAYS_BACK):
            return self.statistics.volume_over_time(days_back)

        @stats_router.get("/muscle_groups")
        def muscle_group_volume(days_back: int = DEFAULT_DAYS_BACK):
            return self.statistics.muscle_group_volume(days_back)

        @history_router.get("/export_csv")
        def export_csv():
            filename = self.history.export_filename(datetime.date.today())
            return Response(
                content=self.history.export_csv(),
                media_type="text/csv",
                headers={"Content-Disposition": f"attachment; filename={filename}"},
            )

        @history_router.post("/import_csv")
        def import_csv(
            csv_text: str = Body(..., media_type="text/csv"), mode: str = "merge"
        ):
            try:
                count = self.history.import_csv(csv_text, mode)
            except ValueError as e:
                raise _http_error(e)
            return {"imported": count, "mode": mode}

        @self.app.get("/settings")
        def get_settings():
            return _dump(self.store.state.settings)

        @self.app.put("/settings")
        def update_settings(fields: dict = Body(...)):
            try:
                state = self.store.update_settings(fields)
            except ValueError as e:
                raise _http_error(e)
            return _dump(state.settings)

        self.app.include_router(routines_router)
        self.app.include_router(sessions_router)
        self.app.include_router(stats_router)
        self.app.include_router(history_router)


api = TrackerAPI(db_path_from_env(), settings_path_from_env())
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
