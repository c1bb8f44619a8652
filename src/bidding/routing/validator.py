"""Inventory validation of landing pages under a per-run call budget.

The validator fails open: when the budget is spent or the inventory checker
errors, the page is accepted and tagged with a reason code instead of being
dropped.  One validator instance belongs to one engine run.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from bidding.domain.errors import ValidationExhaustedError
from bidding.domain.models import LandingPageTarget
from bidding.domain.types import LandingPageType, ValidationReason
from bidding.engine.collaborators import LandingPageKey

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.engine.collaborators import InventoryChecker

logger = structlog.get_logger()


@dataclass
class ValidationStats:
    """Counters for one run's validation activity."""

    api_calls: int = 0
    cache_hits: int = 0
    limit_reached: int = 0
    api_errors: int = 0
    insufficient: int = 0


class LandingPageValidator:
    """Checks that a landing page will show enough products.

    Args:
        checker: Inventory collaborator, or ``None`` to skip validation.
        call_budget: Maximum number of checker calls for the run.
        min_products: Products required for a page to be valid.
        audit: Optional audit logger.
    """

    def __init__(
        self,
        checker: InventoryChecker | None,
        *,
        call_budget: int = 100,
        min_products: int = 3,
        audit: AuditLogger | None = None,
    ) -> None:
        self._checker = checker
        self._call_budget = call_budget
        self._min_products = min_products
        self._audit = audit
        self._lock = threading.Lock()
        self._cache: dict[str, LandingPageTarget] = {}
        self.stats = ValidationStats()

    @property
    def calls_remaining(self) -> int:
        """Checker calls left in this run's budget."""
        with self._lock:
            return max(0, self._call_budget - self.stats.api_calls)

    def _reserve_call(self) -> None:
        with self._lock:
            if self.stats.api_calls >= self._call_budget:
                raise ValidationExhaustedError(self._call_budget)
            self.stats.api_calls += 1

    def validate(self, target: LandingPageTarget, key: LandingPageKey) -> LandingPageTarget:
        """Return *target* annotated with the inventory outcome.

        Homepages and already-validated pages are returned unchanged, as is
        everything when no checker is configured.

        Returns:
            The annotated target.  ``validated`` is False only when the
            checker answered with fewer than ``min_products`` products.
        """
        if self._checker is None or target.validated or target.type == LandingPageType.HOMEPAGE:
            return target

        cache_key = key.cache_key
        cached = self._cache.get(cache_key)
        if cached is not None:
            with self._lock:
                self.stats.cache_hits += 1
            return target.model_copy(
                update={
                    "validated": cached.validated,
                    "product_count": cached.product_count,
                    "validation_reason": cached.validation_reason,
                }
            )

        try:
            self._reserve_call()
        except ValidationExhaustedError as exc:
            with self._lock:
                self.stats.limit_reached += 1
            logger.debug("validation_limit_reached", path=key.path, budget=exc.budget)
            return self._fail_open(target, key, ValidationReason.VALIDATION_LIMIT_REACHED)

        try:
            result = self._checker.check(key)
        except Exception as exc:
            with self._lock:
                self.stats.api_errors += 1
            logger.warning(
                "validation_api_error",
                owner_id=key.owner_id,
                path=key.path,
                error=str(exc),
            )
            accepted = self._fail_open(target, key, ValidationReason.VALIDATION_API_ERROR)
            self._cache[cache_key] = accepted
            return accepted

        if result.valid and result.product_count >= self._min_products:
            outcome = target.model_copy(
                update={"validated": True, "product_count": result.product_count}
            )
        else:
            with self._lock:
                self.stats.insufficient += 1
            outcome = target.model_copy(
                update={
                    "validated": False,
                    "product_count": result.product_count,
                    "validation_reason": ValidationReason.INSUFFICIENT_PRODUCTS,
                }
            )
            logger.info(
                "landing_page_insufficient_products",
                owner_id=key.owner_id,
                path=key.path,
                product_count=result.product_count,
            )
            if self._audit is not None:
                self._audit.log_validation_failed(
                    key.owner_id, key.path, result.product_count, self._min_products
                )

        self._cache[cache_key] = outcome
        return outcome

    def _fail_open(
        self, target: LandingPageTarget, key: LandingPageKey, reason: ValidationReason
    ) -> LandingPageTarget:
        if self._audit is not None:
            self._audit.log_validation_fail_open(key.owner_id, key.path, reason)
        return target.model_copy(update={"validated": True, "validation_reason": reason})
