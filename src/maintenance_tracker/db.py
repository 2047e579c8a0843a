"""SQLite persistence for activities, import batches and the audit log."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from .models import Activity, ActivityStatus, AuditEntry, ImportBatch, ImportMapping


DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def open_database(path: Path) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(path: Path) -> Iterator[sqlite3.Connection]:
    conn = open_database(path)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group several statements; the connection runs in autocommit otherwise."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            status TEXT NOT NULL,
            payload TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_activities_start_time
            ON activities(start_time);

        CREATE TABLE IF NOT EXISTS import_batches (
            id TEXT PRIMARY KEY,
            created_at TEXT NOT NULL,
            count INTEGER NOT NULL,
            headers TEXT NOT NULL,
            rows TEXT NOT NULL,
            mapping TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS audit_log (
            id TEXT PRIMARY KEY,
            timestamp TEXT NOT NULL,
            user TEXT NOT NULL,
            action TEXT NOT NULL,
            details TEXT NOT NULL,
            entity_id TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_audit_log_timestamp
            ON audit_log(timestamp);
        """
    )


def upsert_activities(conn: sqlite3.Connection, activities: Iterable[Activity]) -> None:
    conn.executemany(
        """
        INSERT INTO activities (id, start_time, end_time, status, payload)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            start_time = excluded.start_time,
            end_time = excluded.end_time,
            status = excluded.status,
            payload = excluded.payload
        """,
        [
            (
                activity.id,
                activity.start_time.strftime(DATETIME_FMT),
                activity.end_time.strftime(DATETIME_FMT),
                activity.status.value,
                json.dumps(activity.to_record(), ensure_ascii=False),
            )
            for activity in activities
        ],
    )


def fetch_activities(
    conn: sqlite3.Connection,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[Activity]:
    """Return activities starting in ``[start, end)``, ordered by start time."""
    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append("start_time >= ?")
        params.append(start.strftime(DATETIME_FMT))
    if end is not None:
        clauses.append("start_time < ?")
        params.append(end.strftime(DATETIME_FMT))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT payload FROM activities {where} ORDER BY start_time, id",
        params,
    )
    return [Activity.from_record(json.loads(row["payload"])) for row in rows]


def fetch_activity(conn: sqlite3.Connection, activity_id: str) -> Optional[Activity]:
    row = conn.execute(
        "SELECT payload FROM activities WHERE id = ?", (activity_id,)
    ).fetchone()
    if row is None:
        return None
    return Activity.from_record(json.loads(row["payload"]))


def update_activity_status(
    conn: sqlite3.Connection, activity_id: str, status: ActivityStatus
) -> Activity:
    """Change only the status of an activity; its dates stay untouched."""
    activity = fetch_activity(conn, activity_id)
    if activity is None:
        raise ValueError(f"No activity found for id={activity_id}")
    activity.status = status
    upsert_activities(conn, [activity])
    return activity


def delete_activity(conn: sqlite3.Connection, activity_id: str) -> None:
    cur = conn.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
    if cur.rowcount == 0:
        raise ValueError(f"No activity found for id={activity_id}")


def delete_activities_by_prefix(conn: sqlite3.Connection, prefix: str) -> int:
    """Delete every activity whose id starts with ``prefix``."""
    if not prefix:
        raise ValueError("Refusing to delete with an empty id prefix")
    cur = conn.execute(
        "DELETE FROM activities WHERE substr(id, 1, ?) = ?",
        (len(prefix), prefix),
    )
    return cur.rowcount


def save_batch(conn: sqlite3.Connection, batch: ImportBatch) -> None:
    conn.execute(
        """
        INSERT INTO import_batches (id, created_at, count, headers, rows, mapping)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            count = excluded.count,
            headers = excluded.headers,
            rows = excluded.rows,
            mapping = excluded.mapping
        """,
        (
            batch.id,
            batch.created_at.strftime(DATETIME_FMT),
            batch.count,
            json.dumps(batch.headers, ensure_ascii=False),
            encode_rows(batch.rows),
            json.dumps(batch.mapping.to_record(), ensure_ascii=False),
        ),
    )


def fetch_batch(conn: sqlite3.Connection, batch_id: str) -> Optional[ImportBatch]:
    row = conn.execute(
        "SELECT * FROM import_batches WHERE id = ?", (batch_id,)
    ).fetchone()
    return _row_to_batch(row) if row is not None else None


def fetch_batches(conn: sqlite3.Connection) -> list[ImportBatch]:
    rows = conn.execute("SELECT * FROM import_batches ORDER BY created_at DESC, id DESC")
    return [_row_to_batch(row) for row in rows]


def delete_batch(conn: sqlite3.Connection, batch_id: str) -> None:
    cur = conn.execute("DELETE FROM import_batches WHERE id = ?", (batch_id,))
    if cur.rowcount == 0:
        raise ValueError(f"No import batch found for id={batch_id}")


def insert_audit_entry(conn: sqlite3.Connection, entry: AuditEntry) -> None:
    conn.execute(
        """
        INSERT INTO audit_log (id, timestamp, user, action, details, entity_id)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            entry.id,
            entry.timestamp.strftime(DATETIME_FMT),
            entry.user,
            entry.action,
            entry.details,
            entry.entity_id,
        ),
    )


def fetch_audit_entries(conn: sqlite3.Connection, limit: int = 100) -> list[AuditEntry]:
    rows = conn.execute(
        "SELECT * FROM audit_log ORDER BY timestamp DESC, rowid DESC LIMIT ?",
        (limit,),
    )
    return [
        AuditEntry(
            id=row["id"],
            timestamp=datetime.strptime(row["timestamp"], DATETIME_FMT),
            user=row["user"],
            action=row["action"],
            details=row["details"],
            entity_id=row["entity_id"],
        )
        for row in rows
    ]


def encode_rows(rows: list[dict[str, Any]]) -> str:
    """Serialize raw spreadsheet rows, keeping date and time cells typed."""
    return json.dumps(rows, default=_encode_cell, ensure_ascii=False)


def decode_rows(text: str) -> list[dict[str, Any]]:
    return json.loads(text, object_hook=_decode_cell)


def _encode_cell(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, time):
        return {"$time": value.isoformat()}
    if isinstance(value, timedelta):
        return {"$seconds": value.total_seconds()}
    raise TypeError(f"Cannot store cell value of type {type(value).__name__}")


def _decode_cell(obj: dict[str, Any]) -> Any:
    if len(obj) != 1:
        return obj
    if "$datetime" in obj:
        return datetime.fromisoformat(obj["$datetime"])
    if "$date" in obj:
        return date.fromisoformat(obj["$date"])
    if "$time" in obj:
        return time.fromisoformat(obj["$time"])
    if "$seconds" in obj:
        return timedelta(seconds=obj["$seconds"])
    return obj


def _row_to_batch(row: sqlite3.Row) -> ImportBatch:
    return ImportBatch(
        id=row["id"],
        created_at=datetime.strptime(row["created_at"], DATETIME_FMT),
        count=row["count"],
        headers=json.loads(row["headers"]),
        rows=decode_rows(row["rows"]),
        mapping=ImportMapping.from_record(json.loads(row["mapping"])),
    )
