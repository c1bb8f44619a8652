"""Audit trail: models, storage, logger, and CLI for engine decisions."""

from bidding.audit.cli import build_parser
from bidding.audit.logger import AuditLogger
from bidding.audit.models import AuditEntry, EventType
from bidding.audit.store import (
    close_audit_db,
    init_audit_db,
    insert_audit_entry,
    latest_run_id,
    query_audit_trail,
    summarize_run,
)

__all__ = [
    "AuditEntry",
    "AuditLogger",
    "EventType",
    "build_parser",
    "close_audit_db",
    "init_audit_db",
    "insert_audit_entry",
    "latest_run_id",
    "query_audit_trail",
    "summarize_run",
]
