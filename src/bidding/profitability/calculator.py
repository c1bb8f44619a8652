"""Profitability model for sites and microsites.

Each profile answers one question: how much can we pay for a click and still
break even at the target ROAS?

    revenue_per_click  = AOV x conversion_rate x (commission_rate / 100)
    max_profitable_cpc = revenue_per_click / target_roas

Real booking and analytics data is used when the sample is large enough;
otherwise each metric walks its own fallback chain.  All arithmetic is
Decimal and unrounded, so the formula above holds exactly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from bidding.domain.errors import MissingProfileError
from bidding.domain.models import (
    BookingAggregate,
    DataQuality,
    MicrositeConfig,
    SiteConfig,
    SiteProfile,
    TrafficAggregate,
)
from bidding.domain.types import AovSource, CommissionSource, ConversionSource, TargetKind

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.config import Settings
    from bidding.engine.collaborators import CatalogueRepository

logger = structlog.get_logger()

HUNDRED = Decimal("100")


def _resolve_aov(
    bookings: BookingAggregate,
    catalogue_avg_price: Decimal | None,
    settings: Settings,
) -> tuple[Decimal, AovSource]:
    if (
        bookings.booking_count >= settings.min_bookings_for_real_data
        and bookings.avg_order_value
        and bookings.avg_order_value > 0
    ):
        return bookings.avg_order_value, AovSource.REAL
    if catalogue_avg_price and catalogue_avg_price > 0:
        return catalogue_avg_price, AovSource.CATALOGUE
    return settings.default_aov, AovSource.DEFAULT


def _resolve_commission(
    bookings: BookingAggregate,
    portfolio: BookingAggregate,
    settings: Settings,
) -> tuple[Decimal, CommissionSource]:
    if (
        bookings.commission_sample_size >= settings.min_bookings_for_real_data
        and bookings.avg_commission_rate
    ):
        return bookings.avg_commission_rate, CommissionSource.REAL
    if (
        portfolio.commission_sample_size >= settings.min_portfolio_bookings_for_commission
        and portfolio.avg_commission_rate
    ):
        return portfolio.avg_commission_rate, CommissionSource.PORTFOLIO
    return settings.default_commission_rate, CommissionSource.DEFAULT


def _resolve_conversion_rate(
    traffic: TrafficAggregate,
    settings: Settings,
) -> tuple[Decimal, ConversionSource]:
    # A ratio outside (0, 1] means the snapshot data is inconsistent.
    if (
        traffic.sessions >= settings.min_sessions_for_cvr
        and 0 < traffic.bookings <= traffic.sessions
    ):
        return Decimal(traffic.bookings) / Decimal(traffic.sessions), ConversionSource.REAL
    return settings.default_conversion_rate, ConversionSource.DEFAULT


def calculate_profile(
    *,
    target_id: str,
    target_kind: TargetKind,
    name: str,
    bookings: BookingAggregate,
    portfolio_bookings: BookingAggregate,
    traffic: TrafficAggregate,
    catalogue_avg_price: Decimal | None,
    settings: Settings,
    commission_bookings: BookingAggregate | None = None,
) -> SiteProfile:
    """Calculate a complete profitability profile from pre-aggregated data.

    Fallback chains:
    - AOV: real bookings (sample >= min) -> catalogue average price -> default
    - Commission: real bookings (sample >= min) -> portfolio average
      (sample >= portfolio min) -> default
    - Conversion rate: bookings / sessions (sessions >= min) -> default

    Microsites have no bookings of their own; callers pass the portfolio
    aggregate as *bookings* and an empty aggregate as *commission_bookings*,
    so their commission comes from the portfolio tier or the default.

    Args:
        target_id: Site or microsite id.
        target_kind: Whether the target is a main site or a microsite.
        name: Display name.
        bookings: Confirmed/completed bookings for the target.
        portfolio_bookings: Confirmed/completed bookings across the portfolio.
        traffic: Summed sessions and bookings from analytics snapshots.
        catalogue_avg_price: Catalogue-wide average product price, if known.
        settings: Economic configuration.
        commission_bookings: Own bookings for the commission tier; defaults
            to *bookings*.

    Returns:
        A ``SiteProfile``.  Never partial.
    """
    aov, aov_source = _resolve_aov(bookings, catalogue_avg_price, settings)
    own = bookings if commission_bookings is None else commission_bookings
    commission, commission_source = _resolve_commission(own, portfolio_bookings, settings)
    cvr, cvr_source = _resolve_conversion_rate(traffic, settings)

    revenue_per_click = aov * cvr * (commission / HUNDRED)
    max_profitable_cpc = revenue_per_click / settings.target_roas

    return SiteProfile(
        target_id=target_id,
        target_kind=target_kind,
        name=name,
        avg_order_value=aov,
        commission_rate=commission,
        conversion_rate=cvr,
        revenue_per_click=revenue_per_click,
        max_profitable_cpc=max_profitable_cpc,
        target_roas=settings.target_roas,
        data_quality=DataQuality(
            booking_sample_size=bookings.booking_count,
            session_sample_size=traffic.sessions,
            aov_source=aov_source,
            commission_source=commission_source,
            conversion_source=cvr_source,
        ),
    )


def lookback_start(settings: Settings, now: datetime | None = None) -> datetime:
    """Return the start of the lookback window ending at *now*."""
    now = now or datetime.now(tz=UTC)
    return now - timedelta(days=settings.lookback_days)


class ProfitabilityCalculator:
    """Computes and persists profiles for every active site and microsite.

    Portfolio-wide aggregates are read once and reused for every target in
    the run.  A target whose data cannot be read is skipped with a warning;
    callers must tolerate partial coverage.

    Args:
        catalogue: Data-access collaborator.
        settings: Economic configuration.
        audit: Optional audit logger.
        now: Reference time for the lookback window (defaults to now).
        on_write_error: Called with the operation name and exception when a
            profile cannot be saved.  The profile is still returned.
    """

    def __init__(
        self,
        catalogue: CatalogueRepository,
        settings: Settings,
        *,
        audit: AuditLogger | None = None,
        now: datetime | None = None,
        on_write_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._catalogue = catalogue
        self._settings = settings
        self._audit = audit
        self._on_write_error = on_write_error
        self._since = lookback_start(settings, now)
        self._portfolio: BookingAggregate | None = None
        self._catalogue_avg_price: Decimal | None = None

    def _load_shared(self) -> tuple[BookingAggregate, Decimal | None]:
        if self._portfolio is None:
            portfolio = self._catalogue.portfolio_booking_aggregate(self._since)
            avg_price = self._catalogue.catalogue_average_price()
            self._portfolio, self._catalogue_avg_price = portfolio, avg_price
        return self._portfolio, self._catalogue_avg_price

    def site_profile(self, site: SiteConfig) -> SiteProfile:
        """Compute the profile for one main site.

        Raises:
            MissingProfileError: If the site is inactive.
        """
        if not site.active:
            raise MissingProfileError(site.id, "site is not active")
        portfolio, avg_price = self._load_shared()
        return calculate_profile(
            target_id=site.id,
            target_kind=TargetKind.SITE,
            name=site.name,
            bookings=self._catalogue.booking_aggregate(site.id, self._since),
            portfolio_bookings=portfolio,
            traffic=self._catalogue.traffic_aggregate(site.id, self._since),
            catalogue_avg_price=avg_price,
            settings=self._settings,
        )

    def microsite_profile(self, microsite: MicrositeConfig) -> SiteProfile:
        """Compute the profile for one microsite.

        AOV comes from the portfolio-wide pool.  Commission never counts as
        real data: it is the portfolio average when that sample is large
        enough, otherwise the default.  Conversion rate uses the microsite's
        own sessions when sufficient.

        Raises:
            MissingProfileError: If the microsite is inactive.
        """
        if not microsite.active:
            raise MissingProfileError(microsite.id, "microsite is not active")
        portfolio, avg_price = self._load_shared()
        return calculate_profile(
            target_id=microsite.id,
            target_kind=TargetKind.MICROSITE,
            name=microsite.name,
            bookings=portfolio,
            portfolio_bookings=portfolio,
            traffic=self._catalogue.traffic_aggregate(microsite.id, self._since),
            catalogue_avg_price=avg_price,
            settings=self._settings,
            commission_bookings=BookingAggregate(),
        )

    def calculate_all(
        self,
        sites: Iterable[SiteConfig],
        microsites: Iterable[MicrositeConfig] = (),
    ) -> dict[str, SiteProfile]:
        """Compute, persist, and return profiles keyed by target id.

        Sites are processed before microsites.  Re-running on unchanged
        inputs yields identical profiles and overwrites the cached copies.
        """
        profiles: dict[str, SiteProfile] = {}
        targets: list[SiteConfig | MicrositeConfig] = [*sites, *microsites]

        for target in targets:
            try:
                if isinstance(target, SiteConfig):
                    profile = self.site_profile(target)
                else:
                    profile = self.microsite_profile(target)
            except MissingProfileError as exc:
                logger.info("profile_skipped", target_id=exc.target_id, reason=exc.reason)
                continue
            except Exception:
                logger.exception("profile_calculation_failed", target_id=target.id)
                continue

            self._save(profile)
            profiles[profile.target_id] = profile

            logger.info(
                "profile_calculated",
                target_id=profile.target_id,
                target_kind=profile.target_kind.value,
                aov=f"{profile.avg_order_value:.2f}",
                commission=f"{profile.commission_rate:.1f}",
                cvr=f"{profile.conversion_rate:.4f}",
                max_cpc=f"{profile.max_profitable_cpc:.4f}",
            )
            if self._audit is not None:
                self._audit.log_profile_calculated(profile)

        return profiles

    def _save(self, profile: SiteProfile) -> None:
        try:
            self._catalogue.save_profile(profile)
        except Exception as exc:
            logger.warning("profile_save_failed", target_id=profile.target_id, error=str(exc))
            if self._on_write_error is not None:
                self._on_write_error("save_profile", exc)
