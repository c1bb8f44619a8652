"""SQLite store for the engine's audit trail.

One table, ``audit_log``, in WAL mode, indexed on run, target, keyword, and
timestamp.  Each engine decision is one row; a run is reconstructed by
filtering on ``run_id``.  All queries are parameterized.
"""

from __future__ import annotations

import json
import sqlite3
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from bidding.audit.models import AuditEntry, EventType

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        event_type TEXT NOT NULL,
        run_id TEXT,
        target_id TEXT,
        keyword TEXT,
        platform TEXT,
        landing_page TEXT,
        reason TEXT,
        amount TEXT,
        metadata TEXT
    )
"""

_INDEXED_COLUMNS = {
    "idx_audit_run": "run_id",
    "idx_audit_target": "target_id",
    "idx_audit_keyword": "keyword",
    "idx_audit_timestamp": "timestamp",
}

# Entry fields stored as plain text columns, in insert order
_TEXT_COLUMNS = (
    "run_id",
    "target_id",
    "keyword",
    "platform",
    "landing_page",
    "reason",
    "amount",
)

# query_audit_trail keyword -> SQL condition
_FILTERS = {
    "run_id": "run_id = ?",
    "target_id": "target_id = ?",
    "keyword": "keyword = ? COLLATE NOCASE",
    "from_date": "timestamp >= ?",
    "to_date": "timestamp <= ?",
    "event_type": "event_type = ?",
}


def _utc_timestamp() -> str:
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def init_audit_db(db_path: Path) -> sqlite3.Connection:
    """Open (creating if needed) the audit database at *db_path*.

    Safe to call on an existing database; the schema and indexes are only
    created when missing.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_SCHEMA)
    for index_name, column in _INDEXED_COLUMNS.items():
        conn.execute(f"CREATE INDEX IF NOT EXISTS {index_name} ON audit_log ({column})")
    conn.commit()
    return conn


def insert_audit_entry(conn: sqlite3.Connection, entry: AuditEntry) -> int:
    """Append *entry* to the trail, stamped with the current UTC time.

    Returns:
        The new row id.
    """
    columns = ("timestamp", "event_type", *_TEXT_COLUMNS, "metadata")
    values = (
        _utc_timestamp(),
        entry.event_type.value,
        *(getattr(entry, name) for name in _TEXT_COLUMNS),
        json.dumps(entry.metadata) if entry.metadata is not None else None,
    )
    placeholders = ", ".join("?" for _ in columns)
    cursor = conn.execute(
        f"INSERT INTO audit_log ({', '.join(columns)}) VALUES ({placeholders})", values
    )
    conn.commit()
    return cursor.lastrowid or 0


def query_audit_trail(
    conn: sqlite3.Connection,
    *,
    run_id: str | None = None,
    target_id: str | None = None,
    keyword: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    event_type: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Return matching audit rows, newest first.

    Every filter is optional; ``keyword`` matches case-insensitively and
    the dates are ISO 8601 strings compared against the row timestamp.
    ``metadata`` is decoded back into a dict.
    """
    given = {
        "run_id": run_id,
        "target_id": target_id,
        "keyword": keyword,
        "from_date": from_date,
        "to_date": to_date,
        "event_type": event_type,
    }
    conditions = [_FILTERS[name] for name, value in given.items() if value is not None]
    params: list[str | int] = [value for value in given.values() if value is not None]
    params.append(limit)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    cursor = conn.cursor()
    cursor.row_factory = sqlite3.Row
    rows = cursor.execute(
        f"SELECT * FROM audit_log {where} ORDER BY timestamp DESC, id DESC LIMIT ?", params
    ).fetchall()

    results: list[dict[str, Any]] = []
    for row in rows:
        record = dict(row)
        if record["metadata"] is not None:
            record["metadata"] = json.loads(record["metadata"])
        results.append(record)
    return results


def latest_run_id(conn: sqlite3.Connection) -> str | None:
    """Return the id of the most recently started run, if any."""
    row = conn.execute(
        "SELECT run_id FROM audit_log WHERE event_type = ? ORDER BY id DESC LIMIT 1",
        (EventType.RUN_STARTED.value,),
    ).fetchone()
    return row[0] if row else None


def summarize_run(conn: sqlite3.Connection, run_id: str) -> dict[str, int]:
    """Count a run's audit rows per event type, in event-type order."""
    rows = conn.execute(
        "SELECT event_type, COUNT(*) FROM audit_log WHERE run_id = ? GROUP BY event_type",
        (run_id,),
    ).fetchall()
    counts = Counter({event: count for event, count in rows})
    return {e.value: counts[e.value] for e in EventType if counts[e.value]}


def close_audit_db(conn: sqlite3.Connection) -> None:
    """Close the audit database connection."""
    conn.close()
