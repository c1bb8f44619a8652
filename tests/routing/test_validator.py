"""Tests for the fail-open landing page validator."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from bidding.domain.errors import InventoryValidationError
from bidding.domain.models import LandingPageTarget
from bidding.domain.types import LandingPageType, ValidationReason
from bidding.engine.collaborators import InventoryResult, LandingPageKey
from bidding.routing.router import homepage
from bidding.routing.validator import LandingPageValidator


def _target(path: str = "/experiences?q=pasta") -> LandingPageTarget:
    return LandingPageTarget(
        url=f"https://rome.example{path}",
        path=path,
        type=LandingPageType.EXPERIENCES_FILTERED,
    )


def _key(path: str = "/experiences?q=pasta") -> LandingPageKey:
    return LandingPageKey(owner_id="site-rome", domain="rome.example", path=path)


@pytest.fixture
def checker() -> MagicMock:
    mock = MagicMock()
    mock.check.return_value = InventoryResult(valid=True, product_count=10)
    return mock


class TestValidate:
    def test_sufficient_products(self, checker) -> None:
        validator = LandingPageValidator(checker)

        result = validator.validate(_target(), _key())

        assert result.validated is True
        assert result.product_count == 10
        assert result.validation_reason is None
        assert validator.stats.api_calls == 1

    def test_insufficient_products(self, checker) -> None:
        checker.check.return_value = InventoryResult(valid=True, product_count=2)
        audit = MagicMock()
        validator = LandingPageValidator(checker, min_products=3, audit=audit)

        result = validator.validate(_target(), _key())

        assert result.validated is False
        assert result.validation_reason == ValidationReason.INSUFFICIENT_PRODUCTS
        audit.log_validation_failed.assert_called_once_with(
            "site-rome", "/experiences?q=pasta", 2, 3
        )

    def test_invalid_answer_rejected(self, checker) -> None:
        checker.check.return_value = InventoryResult(valid=False, product_count=25)
        result = LandingPageValidator(checker).validate(_target(), _key())

        assert result.validated is False

    def test_cache_hit_skips_checker(self, checker) -> None:
        validator = LandingPageValidator(checker)

        validator.validate(_target(), _key())
        second = validator.validate(_target(), _key())

        assert checker.check.call_count == 1
        assert second.validated is True
        assert validator.stats.cache_hits == 1

    @pytest.mark.parametrize(
        "target",
        [homepage("rome.example"), _target().model_copy(update={"validated": True})],
        ids=["homepage", "already_validated"],
    )
    def test_skipped_targets(self, checker, target) -> None:
        result = LandingPageValidator(checker).validate(target, _key(target.path))

        assert result is target
        checker.check.assert_not_called()

    def test_no_checker_leaves_unvalidated(self) -> None:
        target = _target()
        assert LandingPageValidator(None).validate(target, _key()) is target


class TestFailOpen:
    """Budget exhaustion and checker errors accept the page with a reason."""

    def test_budget_exhausted(self, checker) -> None:
        audit = MagicMock()
        validator = LandingPageValidator(checker, call_budget=1, audit=audit)

        validator.validate(_target("/a"), _key("/a"))
        result = validator.validate(_target("/b"), _key("/b"))

        assert checker.check.call_count == 1
        assert result.validated is True
        assert result.validation_reason == ValidationReason.VALIDATION_LIMIT_REACHED
        assert validator.stats.limit_reached == 1
        assert validator.calls_remaining == 0
        audit.log_validation_fail_open.assert_called_once_with(
            "site-rome", "/b", ValidationReason.VALIDATION_LIMIT_REACHED
        )

    def test_limit_outcome_not_cached(self, checker) -> None:
        validator = LandingPageValidator(checker, call_budget=0)

        validator.validate(_target(), _key())
        validator.validate(_target(), _key())

        assert validator.stats.limit_reached == 2
        assert validator.stats.cache_hits == 0

    def test_checker_error_cached(self, checker) -> None:
        checker.check.side_effect = InventoryValidationError("timeout")
        validator = LandingPageValidator(checker)

        first = validator.validate(_target(), _key())
        second = validator.validate(_target(), _key())

        assert first.validated is True
        assert first.validation_reason == ValidationReason.VALIDATION_API_ERROR
        assert second.validation_reason == ValidationReason.VALIDATION_API_ERROR
        assert checker.check.call_count == 1
        assert validator.stats.api_errors == 1


class TestConcurrency:
    def test_budget_never_overspent(self, checker) -> None:
        validator = LandingPageValidator(checker, call_budget=5)

        def work(i: int) -> None:
            validator.validate(_target(f"/p{i}"), _key(f"/p{i}"))

        threads = [threading.Thread(target=work, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert checker.check.call_count == 5
        assert validator.stats.api_calls == 5
        assert validator.stats.limit_reached == 15
