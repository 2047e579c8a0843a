"""Workflows that combine the pure generators with persistence and auditing."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date, datetime
from typing import Any, Optional, Union

from .config import TrackerSettings
from .db import (
    delete_activities_by_prefix,
    delete_activity,
    delete_batch,
    fetch_activity,
    fetch_batch,
    insert_audit_entry,
    save_batch,
    transaction,
    update_activity_status,
    upsert_activities,
)
from .importer import batch_prefix, normalize
from .models import Activity, ActivityStatus, AuditEntry, ImportBatch, ImportMapping, Recurrence
from .recurrence import expand
from .timeparse import duration_between, format_duration

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Desconhecido"


def record_audit(
    conn: sqlite3.Connection,
    action: str,
    details: str,
    *,
    user: Optional[str] = None,
    entity_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AuditEntry:
    now = now or datetime.now()
    entry = AuditEntry(
        id=f"log_{uuid.uuid4().hex}",
        timestamp=now,
        user=user or UNKNOWN_USER,
        action=action,
        details=details,
        entity_id=entity_id,
    )
    insert_audit_entry(conn, entry)
    return entry


def create_activity(
    conn: sqlite3.Connection,
    activity: Activity,
    *,
    recurrence_limit: Optional[Union[date, datetime]] = None,
    settings: Optional[TrackerSettings] = None,
    user: Optional[str] = None,
) -> list[Activity]:
    """Store a new activity and, when requested, its future occurrences."""
    settings = settings or TrackerSettings()
    if activity.end_time <= activity.start_time:
        raise ValueError("end_time must be after start_time")
    activity = activity.copy(
        duration=format_duration(duration_between(activity.start_time, activity.end_time))
    )
    created = [activity]
    if recurrence_limit is not None and activity.recurrence is not Recurrence.NONE:
        created.extend(
            expand(activity, recurrence_limit, max_instances=settings.max_recurrences)
        )
    with transaction(conn):
        upsert_activities(conn, created)
        record_audit(
            conn, "CRIAR", f"Criou {len(created)} atividades", user=user, entity_id=activity.id
        )
    logger.info("Created activity %s with %d occurrences", activity.id, len(created) - 1)
    return created


def generate_recurrences(
    conn: sqlite3.Connection,
    activity_id: str,
    limit: Union[date, datetime],
    *,
    settings: Optional[TrackerSettings] = None,
    user: Optional[str] = None,
) -> list[Activity]:
    """Expand a stored activity into occurrences up to ``limit``."""
    settings = settings or TrackerSettings()
    template = fetch_activity(conn, activity_id)
    if template is None:
        raise ValueError(f"No activity found for id={activity_id}")
    generated = expand(template, limit, max_instances=settings.max_recurrences)
    if not generated:
        return []
    with transaction(conn):
        upsert_activities(conn, generated)
        record_audit(
            conn,
            "RECORRÊNCIA",
            f"Gerou {len(generated)} ocorrências de {template.tag or template.id}",
            user=user,
            entity_id=template.id,
        )
    logger.info("Generated %d occurrences for %s", len(generated), template.id)
    return generated


def update_status(
    conn: sqlite3.Connection,
    activity_id: str,
    status: ActivityStatus,
    *,
    user: Optional[str] = None,
) -> Activity:
    activity = update_activity_status(conn, activity_id, status)
    record_audit(
        conn, "STATUS", f"Alterou status para {status.value}", user=user, entity_id=activity_id
    )
    return activity


def import_rows(
    conn: sqlite3.Connection,
    rows: list[dict[str, Any]],
    headers: list[str],
    mapping: ImportMapping,
    *,
    batch_id: Optional[str] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    settings: Optional[TrackerSettings] = None,
    user: Optional[str] = None,
) -> tuple[ImportBatch, list[Activity]]:
    """Normalize rows into a batch, replacing any earlier version of that batch."""
    settings = settings or TrackerSettings()
    now = now or datetime.now()
    batch_id = batch_id or str(int(now.timestamp() * 1000))
    activities = normalize(
        rows, mapping, batch_id, today=today or now.date(), settings=settings
    )

    rejected = len(rows) - len(activities)
    if rows and rejected / len(rows) > settings.rejection_warning_ratio:
        logger.warning(
            "Batch %s: %d of %d rows had no description and were skipped",
            batch_id,
            rejected,
            len(rows),
        )

    existing = fetch_batch(conn, batch_id)
    batch = ImportBatch(
        id=batch_id,
        created_at=existing.created_at if existing else now,
        count=len(activities),
        headers=list(headers),
        rows=rows,
        mapping=mapping,
    )
    with transaction(conn):
        if existing is not None:
            removed = delete_activities_by_prefix(conn, batch_prefix(batch_id))
            logger.info("Replacing batch %s (%d previous activities)", batch_id, removed)
        upsert_activities(conn, activities)
        save_batch(conn, batch)
        record_audit(
            conn,
            "IMPORTAR",
            f"Importou {len(activities)} atividades de {len(rows)} linhas",
            user=user,
            entity_id=batch_id,
            now=now,
        )
    logger.info("Imported batch %s: %d activities", batch_id, len(activities))
    return batch, activities


def reimport_batch(
    conn: sqlite3.Connection,
    batch_id: str,
    mapping: ImportMapping,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    settings: Optional[TrackerSettings] = None,
    user: Optional[str] = None,
) -> tuple[ImportBatch, list[Activity]]:
    """Re-run an earlier import with a new mapping, keeping its batch id."""
    batch = fetch_batch(conn, batch_id)
    if batch is None:
        raise ValueError(f"No import batch found for id={batch_id}")
    return import_rows(
        conn,
        batch.rows,
        batch.headers,
        mapping,
        batch_id=batch_id,
        today=today,
        now=now,
        settings=settings,
        user=user,
    )


def delete_import_batch(
    conn: sqlite3.Connection, batch_id: str, *, user: Optional[str] = None
) -> int:
    """Remove a batch and every activity it created."""
    with transaction(conn):
        delete_batch(conn, batch_id)
        removed = delete_activities_by_prefix(conn, batch_prefix(batch_id))
        record_audit(
            conn,
            "EXCLUIR",
            f"Excluiu lote de importação {batch_id} ({removed} atividades)",
            user=user,
            entity_id=batch_id,
        )
    logger.info("Deleted batch %s with %d activities", batch_id, removed)
    return removed


def remove_activity(
    conn: sqlite3.Connection, activity_id: str, *, user: Optional[str] = None
) -> None:
    with transaction(conn):
        delete_activity(conn, activity_id)
        record_audit(conn, "EXCLUIR", "Excluiu atividade", user=user, entity_id=activity_id)
