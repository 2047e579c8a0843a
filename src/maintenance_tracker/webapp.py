"""FastAPI application exposing the maintenance planner over HTTP."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .db import (
    database_connection,
    fetch_activities,
    fetch_audit_entries,
    fetch_batches,
)
from .filters import ActivityFilter, filter_activities, sort_by_deadline
from .models import Activity, ActivityStatus, ImportBatch, ImportMapping
from .paths import get_db_path
from .reporting import format_hhmm, manpower_rows, status_counts, total_man_minutes
from .service import (
    create_activity,
    delete_import_batch,
    generate_recurrences,
    import_rows,
    reimport_batch,
    remove_activity,
    update_status,
)

logger = logging.getLogger(__name__)


class ActivityCreate(BaseModel):
    activity: Dict[str, Any]
    recurrence_limit: Optional[date] = None
    user: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class StatusUpdate(BaseModel):
    status: ActivityStatus
    user: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class RecurrenceRequest(BaseModel):
    until: date
    user: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class ImportPayload(BaseModel):
    rows: List[Dict[str, Any]]
    headers: List[str]
    mapping: Dict[str, Any]
    batch_id: Optional[str] = None
    user: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class MappingUpdate(BaseModel):
    mapping: Dict[str, Any]
    user: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or TrackerSettings()

    app = FastAPI(title="Maintenance Tracker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.settings = resolved_settings

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "database_path": str(request.app.state.db_path),
            "max_recurrences": resolved_settings.max_recurrences,
            "default_duration_minutes": resolved_settings.default_duration.total_seconds() / 60.0,
        }

    @app.get("/api/activities")
    def list_activities(
        request: Request,
        start: Optional[str] = Query(default=None, description="First day (YYYY-MM-DD), inclusive."),
        end: Optional[str] = Query(default=None, description="Last day (YYYY-MM-DD), inclusive."),
        shift: Optional[str] = Query(default=None),
        responsible: Optional[str] = Query(default=None),
        supervisor: Optional[str] = Query(default=None),
        mp_id: Optional[str] = Query(default=None),
        mine: Optional[str] = Query(default=None, description="Only activities naming this person."),
        sort: str = Query(default="default", pattern="^(default|deadline)$"),
    ) -> Dict[str, Any]:
        start_day = _parse_date(start) if start else None
        end_exclusive = _parse_date(end) + timedelta(days=1) if end else None
        if start_day and end_exclusive and end_exclusive <= start_day:
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )
        flt = ActivityFilter(
            shift=shift,
            responsible=responsible,
            supervisor=supervisor,
            mp_id=mp_id,
            only_mine_for=mine,
        )
        with database_connection(request.app.state.db_path) as conn:
            activities = filter_activities(
                fetch_activities(conn, start_day, end_exclusive), flt
            )
        if sort == "deadline":
            activities = sort_by_deadline(activities)
        return {"activities": [activity.to_record() for activity in activities]}

    @app.post("/api/activities", status_code=201)
    def create_activity_endpoint(payload: ActivityCreate, request: Request) -> Dict[str, Any]:
        record = dict(payload.activity)
        record.setdefault("id", f"act_{int(datetime.now().timestamp() * 1000)}_0")
        record.setdefault("duracao", "")
        try:
            activity = Activity.from_record(record)
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        with database_connection(request.app.state.db_path) as conn:
            try:
                created = create_activity(
                    conn,
                    activity,
                    recurrence_limit=payload.recurrence_limit,
                    settings=resolved_settings,
                    user=payload.user,
                )
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"activities": [item.to_record() for item in created]}

    @app.patch("/api/activities/{activity_id}/status")
    def update_status_endpoint(
        activity_id: str, payload: StatusUpdate, request: Request
    ) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            try:
                activity = update_status(conn, activity_id, payload.status, user=payload.user)
            except ValueError as exc:
                raise HTTPException(status_code=404, detail="Activity not found") from exc
        return activity.to_record()

    @app.delete("/api/activities/{activity_id}", status_code=204)
    def delete_activity_endpoint(
        activity_id: str, request: Request, user: Optional[str] = Query(default=None)
    ) -> None:
        with database_connection(request.app.state.db_path) as conn:
            try:
                remove_activity(conn, activity_id, user=user)
            except ValueError as exc:
                raise HTTPException(status_code=404, detail="Activity not found") from exc

    @app.post("/api/activities/{activity_id}/recurrences", status_code=201)
    def generate_recurrences_endpoint(
        activity_id: str, payload: RecurrenceRequest, request: Request
    ) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            try:
                generated = generate_recurrences(
                    conn,
                    activity_id,
                    payload.until,
                    settings=resolved_settings,
                    user=payload.user,
                )
            except ValueError as exc:
                raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"activities": [item.to_record() for item in generated]}

    @app.get("/api/imports")
    def list_imports(request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            batches = fetch_batches(conn)
        return {"batches": [_batch_payload(batch) for batch in batches]}

    @app.post("/api/imports", status_code=201)
    def create_import(payload: ImportPayload, request: Request) -> Dict[str, Any]:
        mapping = _mapping_from_payload(payload.mapping)
        with database_connection(request.app.state.db_path) as conn:
            batch, activities = import_rows(
                conn,
                payload.rows,
                payload.headers,
                mapping,
                batch_id=payload.batch_id,
                settings=resolved_settings,
                user=payload.user,
            )
        return {
            "batch": _batch_payload(batch),
            "rejected": len(payload.rows) - len(activities),
            "activities": [item.to_record() for item in activities],
        }

    @app.put("/api/imports/{batch_id}")
    def update_import(batch_id: str, payload: MappingUpdate, request: Request) -> Dict[str, Any]:
        mapping = _mapping_from_payload(payload.mapping)
        with database_connection(request.app.state.db_path) as conn:
            try:
                batch, activities = reimport_batch(
                    conn, batch_id, mapping, settings=resolved_settings, user=payload.user
                )
            except ValueError as exc:
                raise HTTPException(status_code=404, detail="Import batch not found") from exc
        return {
            "batch": _batch_payload(batch),
            "activities": [item.to_record() for item in activities],
        }

    @app.delete("/api/imports/{batch_id}")
    def delete_import(
        batch_id: str, request: Request, user: Optional[str] = Query(default=None)
    ) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            try:
                removed = delete_import_batch(conn, batch_id, user=user)
            except ValueError as exc:
                raise HTTPException(status_code=404, detail="Import batch not found") from exc
        return {"batch_id": batch_id, "deleted_activities": removed}

    @app.get("/api/manpower")
    def manpower(
        request: Request,
        shift: Optional[str] = Query(default=None),
        mine: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        flt = ActivityFilter(shift=shift, only_mine_for=mine)
        with database_connection(request.app.state.db_path) as conn:
            activities = filter_activities(fetch_activities(conn), flt)
        rows = manpower_rows(activities)
        total = total_man_minutes(rows)
        return {
            "entries": [
                {
                    "id": row.activity.id,
                    "tag": row.activity.tag,
                    "responsavel": row.activity.responsible,
                    "headcount": row.headcount,
                    "duration_minutes": row.duration_minutes,
                    "man_minutes": row.man_minutes,
                }
                for row in rows
            ],
            "total_man_minutes": total,
            "total_man_hours": format_hhmm(total),
            "status_counts": {
                status.value: count for status, count in status_counts(activities).items()
            },
        }

    @app.get("/api/audit")
    def audit(
        request: Request, limit: int = Query(default=100, ge=1, le=1000)
    ) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            entries = fetch_audit_entries(conn, limit)
        return {
            "entries": [
                {
                    "id": entry.id,
                    "timestamp": entry.timestamp.isoformat(),
                    "user": entry.user,
                    "action": entry.action,
                    "details": entry.details,
                    "entityId": entry.entity_id,
                }
                for entry in entries
            ]
        }

    return app


def _parse_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _mapping_from_payload(data: Dict[str, Any]) -> ImportMapping:
    try:
        return ImportMapping.from_record(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _batch_payload(batch: ImportBatch) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "date": batch.created_at.isoformat(),
        "count": batch.count,
        "headers": batch.headers,
        "mapping": batch.mapping.to_record(),
    }
