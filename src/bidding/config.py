"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_settings()``
startup gate that enforces collaborator configuration in production mode.

IMPORTANT: This module has ZERO imports from the ``bidding`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Annotated

import structlog
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = structlog.get_logger()

DEFAULT_LOW_INTENT_TERMS: tuple[str, ...] = (
    "free",
    "gratis",
    "no cost",
    "complimentary",
    "freebie",
)

SUPPORTED_PLATFORMS = frozenset({"GOOGLE_SEARCH", "FACEBOOK"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    Economic constants are pure configuration.  ``target_roas`` has one
    canonical default (1.0, break-even) and is never inferred elsewhere.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    sentry_dsn: str = ""

    # -- Audit -----------------------------------------------------------------
    audit_db_path: Path = Path("data/audit.db")

    # -- Profitability ---------------------------------------------------------
    target_roas: Decimal = Decimal("1.0")
    lookback_days: int = 90
    min_bookings_for_real_data: int = 3
    min_portfolio_bookings_for_commission: int = 5
    min_sessions_for_cvr: int = 100
    default_aov: Decimal = Decimal("197")
    default_commission_rate: Decimal = Decimal("18")
    default_conversion_rate: Decimal = Decimal("0.015")

    # -- Budget & bidding ------------------------------------------------------
    max_daily_budget: Decimal = Decimal("1200")
    min_viable_bid: Decimal = Decimal("0.01")
    min_campaign_budget: Decimal = Decimal("1.0")
    max_campaign_budget: Decimal = Decimal("50")
    assumed_ctr: Decimal = Decimal("0.02")
    bid_headroom: Decimal = Decimal("1.2")
    enabled_platforms: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GOOGLE_SEARCH", "FACEBOOK"],
    )

    # -- Keyword hygiene -------------------------------------------------------
    low_intent_terms: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_LOW_INTENT_TERMS),
    )
    default_site_id: str = ""

    # -- Landing pages ---------------------------------------------------------
    validator_call_budget: int = 100
    min_landing_page_products: int = 3
    routing_signals_path: Path | None = None

    # -- Collaborators ---------------------------------------------------------
    inventory_api_url: str = ""
    inventory_api_key: SecretStr = SecretStr("")
    anthropic_api_key: SecretStr = SecretStr("")
    ai_evaluation_enabled: bool = False

    @field_validator("target_roas")
    @classmethod
    def target_roas_must_be_positive(cls, v: Decimal) -> Decimal:
        """Ensure target ROAS is strictly positive (it is a divisor)."""
        if v <= 0:
            raise ValueError("target_roas must be positive")
        return v

    @field_validator("default_conversion_rate")
    @classmethod
    def conversion_rate_in_unit_interval(cls, v: Decimal) -> Decimal:
        """Ensure the default conversion rate lies in (0, 1]."""
        if not Decimal("0") < v <= Decimal("1"):
            raise ValueError("default_conversion_rate must be in (0, 1]")
        return v

    @field_validator("enabled_platforms", "low_intent_terms", mode="before")
    @classmethod
    def split_comma_separated(cls, v: object) -> object:
        """Accept ``ENABLED_PLATFORMS=GOOGLE_SEARCH,FACEBOOK`` style values."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("enabled_platforms")
    @classmethod
    def platforms_must_be_supported(cls, v: list[str]) -> list[str]:
        """Normalize platform names and reject unknown ones."""
        platforms = [p.upper() for p in v]
        unknown = sorted(set(platforms) - SUPPORTED_PLATFORMS)
        if unknown:
            raise ValueError(f"unsupported ad platforms: {', '.join(unknown)}")
        return platforms


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_settings(settings: Settings) -> None:
    """Enforce collaborator configuration at startup.

    In **production** mode the process exits with a clear error block if a
    required setting is missing.  In **development** mode each problem is
    logged as a warning and the run continues (the engine tolerates absent
    collaborators).

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.inventory_api_url:
        errors.append("INVENTORY_API_URL is empty or not set")

    if settings.ai_evaluation_enabled and not settings.anthropic_api_key.get_secret_value():
        errors.append("AI_EVALUATION_ENABLED is set but ANTHROPIC_API_KEY is empty")

    if not settings.default_site_id:
        errors.append("DEFAULT_SITE_ID is empty or not set")

    if settings.min_campaign_budget > settings.max_campaign_budget:
        errors.append(
            f"MIN_CAMPAIGN_BUDGET ({settings.min_campaign_budget}) exceeds "
            f"MAX_CAMPAIGN_BUDGET ({settings.max_campaign_budget})"
        )

    if not errors:
        logger.info("settings_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("setting_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Invalid configuration for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("setting_missing_dev", detail=err)
