"""Convenience class for inserting audit trail entries.

Each method creates a properly structured :class:`AuditEntry` for one kind
of engine decision and inserts it via :func:`insert_audit_entry`.  Every
entry written through a logger carries that logger's run id.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from bidding.audit.models import AuditEntry, EventType
from bidding.audit.store import insert_audit_entry

if TYPE_CHECKING:
    from bidding.domain.models import CampaignGroup, SiteProfile
    from bidding.domain.types import ValidationReason


class AuditLogger:
    """Typed convenience API for inserting audit entries.

    Args:
        conn: An open SQLite connection to the audit database.
        run_id: Engine run id stamped on every entry.
    """

    def __init__(self, conn: sqlite3.Connection, run_id: str | None = None) -> None:
        self._conn = conn
        self.run_id = run_id

    def for_run(self, run_id: str) -> AuditLogger:
        """Return a logger sharing this connection but stamping *run_id*."""
        return AuditLogger(self._conn, run_id=run_id)

    def _insert(self, event_type: EventType, **fields: object) -> int:
        entry = AuditEntry(
            event_type=event_type, run_id=self.run_id, **fields  # type: ignore[arg-type]
        )
        return insert_audit_entry(self._conn, entry)

    def log_run_started(self, mode: str, max_daily_budget: str) -> int:
        """Log the start of an engine run.

        Args:
            mode: The run mode.
            max_daily_budget: Global daily cap for the run.

        Returns:
            The row ID of the inserted audit entry.
        """
        return self._insert(
            EventType.RUN_STARTED,
            amount=max_daily_budget,
            metadata={"mode": mode},
        )

    def log_run_completed(self, stage: str, metadata: dict[str, str]) -> int:
        """Log the end of an engine run with its summary counts.

        Args:
            stage: The last stage the run reached.
            metadata: Summary counts, already stringified.

        Returns:
            The row ID of the inserted audit entry.
        """
        return self._insert(EventType.RUN_COMPLETED, reason=stage, metadata=metadata)

    def log_run_failed(self, stage: str, error_message: str) -> int:
        """Log a run-fatal error."""
        return self._insert(
            EventType.RUN_FAILED,
            reason=stage,
            metadata={"error_message": error_message},
        )

    def log_profile_calculated(self, profile: SiteProfile) -> int:
        """Log a computed profitability profile and its data-quality tiers.

        Args:
            profile: The computed profile.

        Returns:
            The row ID of the inserted audit entry.
        """
        quality = profile.data_quality
        return self._insert(
            EventType.PROFILE_CALCULATED,
            target_id=profile.target_id,
            amount=str(profile.max_profitable_cpc),
            metadata={
                "target_kind": profile.target_kind.value,
                "avg_order_value": str(profile.avg_order_value),
                "commission_rate": str(profile.commission_rate),
                "conversion_rate": str(profile.conversion_rate),
                "revenue_per_click": str(profile.revenue_per_click),
                "target_roas": str(profile.target_roas),
                "aov_source": quality.aov_source.value,
                "commission_source": quality.commission_source.value,
                "conversion_source": quality.conversion_source.value,
                "booking_sample_size": str(quality.booking_sample_size),
                "session_sample_size": str(quality.session_sample_size),
            },
        )

    def log_keyword_archived(
        self, keyword: str, reason: str, keyword_id: str | None = None
    ) -> int:
        """Log a keyword permanently archived from the biddable pool."""
        return self._insert(
            EventType.KEYWORD_ARCHIVED,
            keyword=keyword,
            reason=reason,
            metadata={"keyword_id": keyword_id} if keyword_id else None,
        )

    def log_keyword_assigned(
        self,
        keyword: str,
        site_id: str,
        *,
        keyword_id: str | None = None,
        score: int = 0,
        used_default: bool = False,
    ) -> int:
        """Log a keyword assigned to a site.

        Args:
            keyword: The keyword text.
            site_id: The site that now owns the keyword.
            keyword_id: The keyword record id.
            score: The winning match score.
            used_default: Whether the default site was used.

        Returns:
            The row ID of the inserted audit entry.
        """
        meta = {"score": str(score), "used_default": str(used_default).lower()}
        if keyword_id:
            meta["keyword_id"] = keyword_id
        return self._insert(
            EventType.KEYWORD_ASSIGNED,
            target_id=site_id,
            keyword=keyword,
            reason="default_site" if used_default else "best_match",
            metadata=meta,
        )

    def log_keyword_unviable(
        self, keyword: str, reason: str, keyword_id: str | None = None
    ) -> int:
        """Log a keyword rejected by an economic gate."""
        return self._insert(
            EventType.KEYWORD_UNVIABLE,
            keyword=keyword,
            reason=reason,
            metadata={"keyword_id": keyword_id} if keyword_id else None,
        )

    def log_evaluation_completed(
        self,
        total_evaluated: int,
        bid_count: int,
        review_count: int,
        skip_count: int,
        archived_count: int,
    ) -> int:
        """Log the outcome of the AI keyword quality evaluation."""
        return self._insert(
            EventType.EVALUATION_COMPLETED,
            metadata={
                "total_evaluated": str(total_evaluated),
                "bid": str(bid_count),
                "review": str(review_count),
                "skip": str(skip_count),
                "archived": str(archived_count),
            },
        )

    def log_validation_failed(
        self, owner_id: str, path: str, product_count: int, min_products: int
    ) -> int:
        """Log a landing page that showed too few products."""
        return self._insert(
            EventType.VALIDATION_FAILED,
            target_id=owner_id,
            landing_page=path,
            reason="INSUFFICIENT_PRODUCTS",
            metadata={"product_count": str(product_count), "min_products": str(min_products)},
        )

    def log_validation_fail_open(
        self, owner_id: str, path: str, reason: ValidationReason
    ) -> int:
        """Log a landing page accepted without a successful inventory check."""
        return self._insert(
            EventType.VALIDATION_FAIL_OPEN,
            target_id=owner_id,
            landing_page=path,
            reason=reason.value,
        )

    def log_collaborator_failure(
        self, collaborator: str, error_message: str, stage: str | None = None
    ) -> int:
        """Log a non-fatal collaborator failure.

        Args:
            collaborator: Name of the collaborator that failed.
            error_message: The error message.
            stage: The engine stage where it failed.

        Returns:
            The row ID of the inserted audit entry.
        """
        meta: dict[str, str] = {"error_message": error_message}
        if stage is not None:
            meta["stage"] = stage
        return self._insert(
            EventType.COLLABORATOR_FAILURE,
            reason=collaborator,
            metadata=meta,
        )

    def log_group_emitted(self, group: CampaignGroup) -> int:
        """Log a campaign group handed to deployment."""
        return self._insert(
            EventType.GROUP_EMITTED,
            target_id=group.target_id,
            platform=group.platform.value,
            landing_page=group.landing_page.url,
            amount=str(group.daily_budget),
            metadata={
                "keywords": ", ".join(group.keywords),
                "max_bid": str(group.max_bid),
                "total_expected_daily_cost": str(group.total_expected_daily_cost),
                "total_expected_daily_revenue": str(group.total_expected_daily_revenue),
                "mean_score": f"{group.mean_score:.1f}",
            },
        )
