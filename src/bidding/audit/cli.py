"""Query the bidding engine's audit trail from the command line.

Usage::

    bidding-audit --run latest --summary
    bidding-audit --run 3f2a... --event-type group_emitted
    bidding-audit --keyword "rome food tour" --last 7d --format json
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from bidding.audit.models import EventType
from bidding.audit.store import (
    close_audit_db,
    init_audit_db,
    latest_run_id,
    query_audit_trail,
    summarize_run,
)

LATEST = "latest"

_DURATION_UNITS = {"d": "days", "h": "hours"}

# (header, row key, width)
_TABLE_COLUMNS = (
    ("Timestamp", "timestamp", 20),
    ("Event", "event_type", 22),
    ("Target", "target_id", 16),
    ("Keyword", "keyword", 30),
    ("Platform", "platform", 13),
    ("Reason", "reason", 24),
)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for audit trail queries."""
    parser = argparse.ArgumentParser(description="Query the bidding engine audit trail")

    parser.add_argument(
        "--run", type=str, dest="run_id", help=f"Engine run id, or '{LATEST}' for the last run"
    )
    parser.add_argument("--target", type=str, help="Site or microsite id")
    parser.add_argument("--keyword", type=str, help="Keyword text (case-insensitive)")
    parser.add_argument("--from-date", type=str, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to-date", type=str, help="End date (YYYY-MM-DD)")
    parser.add_argument(
        "--event-type",
        type=str,
        choices=[e.value for e in EventType],
        help="Event type",
    )
    parser.add_argument("--last", type=str, help='Look back a duration ("7d", "24h")')
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print event counts for the selected run instead of rows",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    parser.add_argument("--limit", type=int, default=50, help="Maximum rows (default: 50)")
    parser.add_argument(
        "--db",
        type=str,
        default="data/audit.db",
        help="Audit database path (default: data/audit.db)",
    )
    return parser


def parse_last_duration(last: str, now: datetime | None = None) -> str:
    """Turn ``7d`` or ``24h`` into the ISO 8601 timestamp that long ago.

    Raises:
        ValueError: If *last* is not a whole number followed by ``d`` or ``h``.
    """
    unit = _DURATION_UNITS.get(last[-1:]) if last else None
    amount = last[:-1]
    if unit is None or not amount.isdigit():
        msg = f"Unrecognized duration format: {last!r}; use e.g. '7d' or '24h'"
        raise ValueError(msg)

    start = (now or datetime.now(tz=UTC)) - timedelta(**{unit: int(amount)})
    return start.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_table(results: list[dict[str, Any]]) -> str:
    """Render rows as a fixed-width table, truncating long cells."""
    if not results:
        return "No results found."

    def cell(value: Any, width: int) -> str:
        text = "" if value is None else str(value)
        return text if len(text) <= width else text[: width - 3] + "..."

    header = "  ".join(title.ljust(width) for title, _, width in _TABLE_COLUMNS)
    lines = [header, "-" * len(header)]
    for row in results:
        lines.append(
            "  ".join(cell(row.get(key), width).ljust(width) for _, key, width in _TABLE_COLUMNS)
        )
    return "\n".join(lines)


def format_json(results: list[dict[str, Any]] | dict[str, Any]) -> str:
    """Render rows or a run summary as indented JSON."""
    return json.dumps(results, indent=2)


def format_summary(run_id: str, counts: dict[str, int]) -> str:
    """Render per-event counts for one run."""
    if not counts:
        return f"No audit entries for run {run_id}."
    width = max(len(event) for event in counts)
    lines = [f"Run {run_id}"]
    lines += [f"  {event.ljust(width)}  {count}" for event, count in counts.items()]
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Run one audit query and print the result.

    Returns:
        0 on success, 2 for an unusable argument combination.
    """
    args = build_parser().parse_args(argv)

    try:
        from_date = parse_last_duration(args.last) if args.last else args.from_date
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    db_path = Path(args.db)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_audit_db(db_path)

    try:
        run_id = args.run_id
        if run_id == LATEST:
            run_id = latest_run_id(conn)
            if run_id is None:
                print("No runs recorded.")
                return 0

        if args.summary:
            if run_id is None:
                print("--summary needs --run", file=sys.stderr)
                return 2
            counts = summarize_run(conn, run_id)
            if args.output_format == "json":
                print(format_json({"run_id": run_id, "events": counts}))
            else:
                print(format_summary(run_id, counts))
            return 0

        results = query_audit_trail(
            conn,
            run_id=run_id,
            target_id=args.target,
            keyword=args.keyword,
            from_date=from_date,
            to_date=args.to_date,
            event_type=args.event_type,
            limit=args.limit,
        )
        print(format_json(results) if args.output_format == "json" else format_table(results))
        return 0
    finally:
        close_audit_db(conn)


if __name__ == "__main__":
    raise SystemExit(main())
