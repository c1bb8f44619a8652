"""Audit trail models for tracking bidding engine decisions.

Each entry records what the engine decided and why: the run it belongs to,
the site or microsite involved, the keyword, and free-form metadata.
"""

from enum import StrEnum

from pydantic import BaseModel


class EventType(StrEnum):
    """Types of events tracked in the audit trail."""

    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"
    PROFILE_CALCULATED = "profile_calculated"
    KEYWORD_ARCHIVED = "keyword_archived"
    KEYWORD_ASSIGNED = "keyword_assigned"
    KEYWORD_UNVIABLE = "keyword_unviable"
    EVALUATION_COMPLETED = "evaluation_completed"
    VALIDATION_FAILED = "validation_failed"
    VALIDATION_FAIL_OPEN = "validation_fail_open"
    COLLABORATOR_FAILURE = "collaborator_failure"
    GROUP_EMITTED = "group_emitted"


class AuditEntry(BaseModel):
    """A single audit trail entry.

    All fields except event_type are optional to accommodate different
    event types (e.g., run_started has no keyword).
    """

    event_type: EventType
    run_id: str | None = None
    target_id: str | None = None
    keyword: str | None = None
    platform: str | None = None
    landing_page: str | None = None
    reason: str | None = None
    amount: str | None = None
    metadata: dict[str, str] | None = None
