"""Opportunity scoring: keyword -> per-platform campaign candidates.

For each biddable keyword the scorer resolves a profile (microsite first,
then the assigned main site), routes it to a landing page, computes the
expected daily economics, and emits one candidate per enabled platform.

    max_bid  = min(max_profitable_cpc, cpc x bid_headroom)
    clicks   = (monthly_volume / 30) x assumed_ctr
    cost     = clicks x cpc
    revenue  = clicks x revenue_per_click
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from bidding.domain.errors import MissingProfileError, UnviableCandidateError
from bidding.domain.models import (
    AttributionParams,
    CampaignCandidate,
    CandidateKeyword,
    CollectionEntry,
    LandingPageTarget,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
    SiteProfile,
)
from bidding.domain.types import (
    PLATFORM_UTM_SOURCES,
    AdPlatform,
    KeywordIntent,
    LandingPageType,
    MicrositeEntityType,
    TargetKind,
    ValidationReason,
)
from bidding.engine.collaborators import LandingPageKey
from bidding.routing.classifier import DEFAULT_SIGNAL_TABLES, SignalTables
from bidding.routing.router import RoutingContext, build_landing_page, get_landing_page_bonus

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.config import Settings
    from bidding.routing.validator import LandingPageValidator

logger = structlog.get_logger()

DAYS_PER_MONTH = Decimal("30")

MAX_ROAS_BONUS = 60.0
ROAS_BONUS_PER_UNIT = 20.0
MAX_VOLUME_BONUS = 20.0
VOLUME_BONUS_PER_DECADE = 8.0
MICROSITE_BONUS = 10

INTENT_BONUS: dict[KeywordIntent, int] = {
    KeywordIntent.TRANSACTIONAL: 20,
    KeywordIntent.COMMERCIAL: 15,
}
OTHER_INTENT_BONUS = 5

UTM_CAMPAIGN_PREFIX = "auto_"
UTM_CAMPAIGN_MAX_KEYWORD = 40


@dataclass(frozen=True)
class ScoringTarget:
    """The site or microsite a keyword will be scored against."""

    target_id: str
    target_kind: TargetKind
    name: str
    profile: SiteProfile
    context: RoutingContext
    microsite_match: bool


@dataclass
class ScoringStats:
    """Counters for one scoring pass."""

    keywords_seen: int = 0
    candidates_emitted: int = 0
    microsite_matches: int = 0
    skipped_no_profile: int = 0
    skipped_unviable: int = 0
    dropped_insufficient_products: int = 0
    dropped_unvalidated_listing: int = 0


def compute_score(
    *,
    expected_daily_cost: Decimal,
    expected_daily_revenue: Decimal,
    search_volume: int,
    intent: KeywordIntent,
    microsite_match: bool,
    landing_page_type: LandingPageType,
) -> int:
    """Combine the score components into a rounded 0-100 score.

    Components: ROAS bonus (0-60), volume bonus (0-20), intent bonus
    (20/15/5), microsite bonus (10), and the landing-page bonus (0-12).
    """
    roas_bonus = 0.0
    if expected_daily_cost > 0:
        roas = float(expected_daily_revenue / expected_daily_cost)
        roas_bonus = min(MAX_ROAS_BONUS, roas * ROAS_BONUS_PER_UNIT)

    volume_bonus = min(
        MAX_VOLUME_BONUS, math.log10(max(search_volume, 0) + 1) * VOLUME_BONUS_PER_DECADE
    )
    intent_bonus = INTENT_BONUS.get(intent, OTHER_INTENT_BONUS)
    microsite_bonus = MICROSITE_BONUS if microsite_match else 0

    total = (
        roas_bonus
        + volume_bonus
        + intent_bonus
        + microsite_bonus
        + get_landing_page_bonus(landing_page_type)
    )
    # Half-up rounding, then clamp
    return max(0, min(100, math.floor(total + 0.5)))


def build_attribution(
    keyword: str, platform: AdPlatform, landing_page: LandingPageTarget
) -> AttributionParams:
    """Return the UTM parameters for one keyword on one platform."""
    slug = re.sub(r"\s+", "_", keyword.strip())
    campaign = UTM_CAMPAIGN_PREFIX + slug[:UTM_CAMPAIGN_MAX_KEYWORD]
    return AttributionParams(
        source=PLATFORM_UTM_SOURCES[platform],
        campaign=campaign,
        content=landing_page.type.value.lower(),
    )


class OpportunityScorer:
    """Scores keywords for one engine run.

    Args:
        profiles: Profiles keyed by site or microsite id.
        sites: Active main sites.
        microsites: Active microsites.
        settings: Economic configuration.
        validator: The run's landing-page validator.
        current_month: Month number used for seasonal collections.
        pages: Published pages keyed by owner id.
        collections: Active collections keyed by owner id.
        tables: Routing signal tables.
        audit: Optional audit logger.
    """

    def __init__(
        self,
        profiles: Mapping[str, SiteProfile],
        sites: Sequence[SiteConfig],
        microsites: Sequence[MicrositeConfig],
        *,
        settings: Settings,
        validator: LandingPageValidator,
        current_month: int,
        pages: Mapping[str, Sequence[PageEntry]] | None = None,
        collections: Mapping[str, Sequence[CollectionEntry]] | None = None,
        tables: SignalTables = DEFAULT_SIGNAL_TABLES,
        audit: AuditLogger | None = None,
    ) -> None:
        self._profiles = profiles
        self._sites = {s.id: s for s in sites}
        self._settings = settings
        self._validator = validator
        self._current_month = current_month
        self._pages = pages or {}
        self._collections = collections or {}
        self._tables = tables
        self._audit = audit
        self._platforms = [AdPlatform(p) for p in settings.enabled_platforms]
        self._contexts: dict[str, RoutingContext] = {}
        self.stats = ScoringStats()

        eligible = sorted(
            (m for m in microsites if m.active and m.id in profiles), key=lambda m: m.id
        )
        self._opportunity_microsites = [
            m for m in eligible if m.entity_type == MicrositeEntityType.OPPORTUNITY
        ]
        self._supplier_microsites = [
            m for m in eligible if m.entity_type == MicrositeEntityType.SUPPLIER
        ]

    # -- target resolution -----------------------------------------------------

    def match_microsite(self, keyword: CandidateKeyword) -> MicrositeConfig | None:
        """Find a microsite that should own *keyword*, if any.

        Opportunity microsites are tried first (exact seed match, then
        substring either way).  Then supplier microsites whose cities appear
        in the keyword, preferring the largest product count.
        """
        kw = keyword.keyword.lower().strip()

        for microsite in self._opportunity_microsites:
            if kw in microsite.seed_keywords:
                return microsite
        for microsite in self._opportunity_microsites:
            if any(seed in kw or kw in seed for seed in microsite.seed_keywords):
                return microsite

        suppliers = [
            m
            for m in self._supplier_microsites
            if any(c.strip() and c.lower().strip() in kw for c in m.supplier_cities)
        ]
        if not suppliers:
            return None
        # Largest catalogue wins; the list is already ordered by id
        return max(suppliers, key=lambda m: m.cached_product_count or 0)

    def _context_for_site(self, site: SiteConfig) -> RoutingContext:
        if site.id not in self._contexts:
            self._contexts[site.id] = RoutingContext.for_site(site, self._pages.get(site.id, ()))
        return self._contexts[site.id]

    def _context_for_microsite(self, microsite: MicrositeConfig) -> RoutingContext:
        if microsite.id not in self._contexts:
            self._contexts[microsite.id] = RoutingContext.for_microsite(
                microsite,
                self._pages.get(microsite.id, ()),
                self._collections.get(microsite.id, ()),
            )
        return self._contexts[microsite.id]

    def resolve_target(self, keyword: CandidateKeyword) -> ScoringTarget:
        """Return the scoring target for *keyword*.

        Raises:
            MissingProfileError: If neither a microsite nor the assigned site
                has a profile.
        """
        microsite = self.match_microsite(keyword)
        if microsite is not None:
            return ScoringTarget(
                target_id=microsite.id,
                target_kind=TargetKind.MICROSITE,
                name=microsite.name,
                profile=self._profiles[microsite.id],
                context=self._context_for_microsite(microsite),
                microsite_match=True,
            )

        if not keyword.site_id:
            raise MissingProfileError(
                "unassigned", f"keyword '{keyword.keyword}' has no assigned site"
            )
        site = self._sites.get(keyword.site_id)
        profile = self._profiles.get(keyword.site_id)
        if site is None or profile is None:
            raise MissingProfileError(keyword.site_id, "no profile for assigned site")

        return ScoringTarget(
            target_id=site.id,
            target_kind=TargetKind.SITE,
            name=site.name,
            profile=profile,
            context=self._context_for_site(site),
            microsite_match=False,
        )

    # -- landing pages ---------------------------------------------------------

    def _landing_page(self, keyword: CandidateKeyword, target: ScoringTarget) -> LandingPageTarget:
        page = build_landing_page(
            keyword.keyword,
            keyword.intent,
            keyword.location,
            target.context,
            current_month=self._current_month,
            tables=self._tables,
        )
        if self._is_trusted_listing(page, target.context):
            return page
        key = LandingPageKey(
            owner_id=target.target_id, domain=target.context.domain, path=page.path
        )
        return self._validator.validate(page, key)

    @staticmethod
    def _is_trusted_listing(page: LandingPageTarget, context: RoutingContext) -> bool:
        return page.type == LandingPageType.EXPERIENCES_FILTERED and context.has_known_catalogue

    def _passes_post_filter(
        self, keyword: str, page: LandingPageTarget, context: RoutingContext
    ) -> bool:
        if page.validation_reason == ValidationReason.INSUFFICIENT_PRODUCTS:
            self.stats.dropped_insufficient_products += 1
            logger.debug("candidate_dropped_insufficient_products", keyword=keyword, path=page.path)
            return False
        if (
            page.type == LandingPageType.EXPERIENCES_FILTERED
            and not page.validated
            and not self._is_trusted_listing(page, context)
        ):
            self.stats.dropped_unvalidated_listing += 1
            logger.debug("candidate_dropped_unvalidated_listing", keyword=keyword, path=page.path)
            return False
        return True

    # -- scoring ---------------------------------------------------------------

    def score_keyword(self, keyword: CandidateKeyword) -> list[CampaignCandidate]:
        """Emit one candidate per enabled platform for *keyword*.

        Returns an empty list when the landing page fails the post-filter.

        Raises:
            MissingProfileError: If no profile covers the keyword.
            UnviableCandidateError: If the CPC or the resulting bid is too low.
        """
        if keyword.cpc <= 0:
            raise UnviableCandidateError(keyword.keyword, "estimated CPC is not positive")

        target = self.resolve_target(keyword)
        profile = target.profile

        max_bid = min(profile.max_profitable_cpc, keyword.cpc * self._settings.bid_headroom)
        if max_bid < self._settings.min_viable_bid:
            raise UnviableCandidateError(
                keyword.keyword, f"max bid {max_bid:.4f} below minimum viable bid"
            )

        page = self._landing_page(keyword, target)
        if not self._passes_post_filter(keyword.keyword, page, target.context):
            return []

        clicks = Decimal(keyword.search_volume) / DAYS_PER_MONTH * self._settings.assumed_ctr
        cost = clicks * keyword.cpc
        revenue = clicks * profile.revenue_per_click

        score = compute_score(
            expected_daily_cost=cost,
            expected_daily_revenue=revenue,
            search_volume=keyword.search_volume,
            intent=keyword.intent,
            microsite_match=target.microsite_match,
            landing_page_type=page.type,
        )

        return [
            CampaignCandidate(
                keyword_id=keyword.id,
                keyword=keyword.keyword,
                target_id=target.target_id,
                target_kind=target.target_kind,
                target_name=target.name,
                platform=platform,
                estimated_cpc=keyword.cpc,
                max_bid=max_bid,
                search_volume=keyword.search_volume,
                expected_daily_clicks=clicks,
                expected_daily_cost=cost,
                expected_daily_revenue=revenue,
                score=score,
                intent=keyword.intent,
                location=keyword.location,
                landing_page=page,
                attribution=build_attribution(keyword.keyword, platform, page),
                microsite_match=target.microsite_match,
            )
            for platform in self._platforms
        ]

    def score_all(self, keywords: Sequence[CandidateKeyword]) -> list[CampaignCandidate]:
        """Score every keyword and return candidates sorted by score descending.

        Keywords without a profile or with unviable economics are skipped.
        """
        candidates: list[CampaignCandidate] = []

        for keyword in keywords:
            self.stats.keywords_seen += 1
            try:
                emitted = self.score_keyword(keyword)
            except MissingProfileError as exc:
                self.stats.skipped_no_profile += 1
                logger.debug(
                    "keyword_skipped_no_profile", keyword=keyword.keyword, reason=exc.reason
                )
                continue
            except UnviableCandidateError as exc:
                self.stats.skipped_unviable += 1
                logger.debug("keyword_skipped_unviable", keyword=exc.keyword, reason=exc.reason)
                if self._audit is not None:
                    self._audit.log_keyword_unviable(exc.keyword, exc.reason, keyword_id=keyword.id)
                continue

            if emitted and emitted[0].microsite_match:
                self.stats.microsite_matches += 1
            candidates.extend(emitted)

        candidates.sort(key=lambda c: c.score, reverse=True)
        self.stats.candidates_emitted = len(candidates)

        logger.info(
            "scoring_complete",
            keywords=self.stats.keywords_seen,
            candidates=len(candidates),
            microsite_matches=self.stats.microsite_matches,
            skipped_no_profile=self.stats.skipped_no_profile,
            skipped_unviable=self.stats.skipped_unviable,
        )
        return candidates
