"""Tests for opportunity scoring, microsite matching, and attribution."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from bidding.domain.errors import MissingProfileError, UnviableCandidateError
from bidding.domain.models import MicrositeConfig
from bidding.domain.types import (
    AdPlatform,
    KeywordIntent,
    LandingPageType,
    MicrositeEntityType,
    TargetKind,
)
from bidding.engine.collaborators import InventoryResult
from bidding.routing.router import homepage
from bidding.routing.validator import LandingPageValidator
from bidding.scoring.scorer import OpportunityScorer, build_attribution, compute_score


@pytest.fixture
def checker() -> MagicMock:
    mock = MagicMock()
    mock.check.return_value = InventoryResult(valid=True, product_count=20)
    return mock


@pytest.fixture
def make_scorer(settings, make_profile, london_site, rome_site):
    """Build a scorer with profiles for both main sites and any given microsites."""

    def _make(*, microsites=(), checker=None, audit=None, scorer_settings=None, profiles=None):
        if profiles is None:
            profiles = {
                "site-london": make_profile("site-london", "1.00"),
                "site-rome": make_profile("site-rome", "1.00", name="Rome Experiences"),
            }
            for ms in microsites:
                profiles[ms.id] = make_profile(
                    ms.id, "1.00", target_kind=TargetKind.MICROSITE, name=ms.name
                )
        return OpportunityScorer(
            profiles,
            [london_site, rome_site],
            list(microsites),
            settings=scorer_settings or settings,
            validator=LandingPageValidator(checker),
            current_month=6,
            audit=audit,
        )

    return _make


class TestComputeScore:
    def test_clamped_to_hundred(self) -> None:
        score = compute_score(
            expected_daily_cost=Decimal("1"),
            expected_daily_revenue=Decimal("2"),
            search_volume=999,
            intent=KeywordIntent.TRANSACTIONAL,
            microsite_match=True,
            landing_page_type=LandingPageType.CATEGORY,
        )
        assert score == 100

    def test_zero_cost_earns_no_roas_bonus(self) -> None:
        score = compute_score(
            expected_daily_cost=Decimal("0"),
            expected_daily_revenue=Decimal("5"),
            search_volume=0,
            intent=KeywordIntent.INFORMATIONAL,
            microsite_match=False,
            landing_page_type=LandingPageType.HOMEPAGE,
        )
        assert score == 5

    def test_rounds_half_up(self) -> None:
        # ROAS 0.125 -> 2.5, intent 5, blog 5 -> 12.5
        score = compute_score(
            expected_daily_cost=Decimal("8"),
            expected_daily_revenue=Decimal("1"),
            search_volume=0,
            intent=KeywordIntent.NAVIGATIONAL,
            microsite_match=False,
            landing_page_type=LandingPageType.BLOG,
        )
        assert score == 13

    def test_roas_bonus_capped(self) -> None:
        score = compute_score(
            expected_daily_cost=Decimal("1"),
            expected_daily_revenue=Decimal("100"),
            search_volume=0,
            intent=KeywordIntent.NAVIGATIONAL,
            microsite_match=False,
            landing_page_type=LandingPageType.HOMEPAGE,
        )
        assert score == 65


class TestBuildAttribution:
    def test_campaign_slug(self) -> None:
        params = build_attribution(
            "  rome   food tour ", AdPlatform.GOOGLE_SEARCH, homepage("rome.example")
        )
        assert params.source == "google_ads"
        assert params.medium == "cpc"
        assert params.campaign == "auto_rome_food_tour"
        assert params.content == "homepage"

    def test_long_keyword_truncated(self) -> None:
        params = build_attribution("x" * 60, AdPlatform.FACEBOOK, homepage("rome.example"))
        assert params.source == "facebook_ads"
        assert params.campaign == "auto_" + "x" * 40


class TestScoreKeyword:
    def test_bid_capped_at_profile_ceiling(self, make_scorer, make_keyword) -> None:
        """CPC 2.00 against a 1.00 ceiling bids 1.00, not 2.40."""
        kw = make_keyword("london tours", cpc=Decimal("2.00"), intent=KeywordIntent.NAVIGATIONAL)

        candidates = make_scorer().score_keyword(kw)

        assert [c.platform for c in candidates] == [AdPlatform.GOOGLE_SEARCH, AdPlatform.FACEBOOK]
        assert all(c.max_bid == Decimal("1.00") for c in candidates)

    def test_headroom_below_ceiling(self, make_scorer, make_keyword) -> None:
        kw = make_keyword("london tours", cpc=Decimal("0.50"), intent=KeywordIntent.NAVIGATIONAL)

        candidate = make_scorer().score_keyword(kw)[0]

        assert candidate.max_bid == Decimal("0.600")

    def test_daily_economics(self, make_scorer, make_keyword) -> None:
        kw = make_keyword(
            "london tours",
            cpc=Decimal("0.50"),
            search_volume=3000,
            intent=KeywordIntent.NAVIGATIONAL,
        )

        candidate = make_scorer().score_keyword(kw)[0]

        # 3000 / 30 x 0.02 = 2 clicks
        assert candidate.expected_daily_clicks == Decimal("2")
        assert candidate.expected_daily_cost == Decimal("1")
        assert candidate.expected_daily_revenue == Decimal("2")
        assert candidate.landing_page.type == LandingPageType.HOMEPAGE

    def test_enabled_platforms_respected(self, make_scorer, make_keyword, make_settings) -> None:
        scorer = make_scorer(scorer_settings=make_settings(enabled_platforms=["FACEBOOK"]))
        kw = make_keyword("london tours", intent=KeywordIntent.NAVIGATIONAL)

        candidates = scorer.score_keyword(kw)

        assert [c.platform for c in candidates] == [AdPlatform.FACEBOOK]

    @pytest.mark.parametrize("cpc", ["0", "-0.10"], ids=["zero", "negative"])
    def test_non_positive_cpc_unviable(self, make_scorer, make_keyword, cpc: str) -> None:
        with pytest.raises(UnviableCandidateError, match="not positive"):
            make_scorer().score_keyword(make_keyword(cpc=Decimal(cpc)))

    def test_bid_below_minimum_unviable(self, make_scorer, make_keyword) -> None:
        with pytest.raises(UnviableCandidateError, match="below minimum viable bid"):
            make_scorer().score_keyword(make_keyword(cpc=Decimal("0.005")))

    def test_unassigned_keyword_missing_profile(self, make_scorer, make_keyword) -> None:
        with pytest.raises(MissingProfileError):
            make_scorer().score_keyword(make_keyword("paris museum", site_id=None))

    def test_site_without_profile(self, make_scorer, make_keyword, make_profile) -> None:
        scorer = make_scorer(profiles={"site-rome": make_profile("site-rome")})
        with pytest.raises(MissingProfileError, match="no profile for assigned site"):
            scorer.score_keyword(make_keyword("london tours"))


class TestPostFilter:
    """Filtered listings must be validated, or trusted from a known catalogue."""

    def test_unvalidated_listing_dropped_without_checker(self, make_scorer, make_keyword) -> None:
        scorer = make_scorer()
        kw = make_keyword("london walking tour", location="london")

        assert scorer.score_keyword(kw) == []
        assert scorer.stats.dropped_unvalidated_listing == 1

    def test_validated_listing_kept(self, make_scorer, make_keyword, checker) -> None:
        kw = make_keyword("london walking tour", location="london")

        candidates = make_scorer(checker=checker).score_keyword(kw)

        assert candidates[0].landing_page.type == LandingPageType.EXPERIENCES_FILTERED
        assert candidates[0].landing_page.validated is True
        assert candidates[0].landing_page.product_count == 20
        checker.check.assert_called_once()

    def test_insufficient_products_dropped(self, make_scorer, make_keyword, checker) -> None:
        checker.check.return_value = InventoryResult(valid=True, product_count=1)
        scorer = make_scorer(checker=checker)
        kw = make_keyword("london walking tour", location="london")

        assert scorer.score_keyword(kw) == []
        assert scorer.stats.dropped_insufficient_products == 1

    def test_supplier_listing_trusted(
        self, make_scorer, make_keyword, checker, supplier_microsite
    ) -> None:
        scorer = make_scorer(microsites=[supplier_microsite], checker=checker)
        kw = make_keyword("rome walking tours", site_id="site-rome")

        candidates = scorer.score_keyword(kw)

        assert candidates[0].target_id == "ms-supplier"
        assert candidates[0].landing_page.validated is False
        checker.check.assert_not_called()


class TestMicrositeMatching:
    def test_exact_seed(self, make_scorer, make_keyword, opportunity_microsite) -> None:
        scorer = make_scorer(microsites=[opportunity_microsite])
        assert scorer.match_microsite(make_keyword("Harry Potter Tour London")) is not None

    def test_substring_either_way(self, make_scorer, make_keyword, opportunity_microsite) -> None:
        scorer = make_scorer(microsites=[opportunity_microsite])
        assert scorer.match_microsite(make_keyword("warner bros studio tour tickets")) is not None
        assert scorer.match_microsite(make_keyword("harry potter tour")) is not None

    def test_microsite_without_profile_ignored(
        self, make_scorer, make_keyword, make_profile, opportunity_microsite
    ) -> None:
        scorer = make_scorer(
            microsites=[opportunity_microsite],
            profiles={"site-london": make_profile("site-london")},
        )
        assert scorer.match_microsite(make_keyword("harry potter tour london")) is None

    def test_largest_supplier_wins(self, make_scorer, make_keyword, supplier_microsite) -> None:
        bigger = MicrositeConfig(
            id="ms-zz-bigger",
            name="Rome Food Co",
            domain="romefood.example",
            entity_type=MicrositeEntityType.SUPPLIER,
            cached_product_count=200,
            supplier_cities=["Rome"],
        )
        scorer = make_scorer(microsites=[supplier_microsite, bigger])

        match = scorer.match_microsite(make_keyword("rome pasta class"))

        assert match is not None
        assert match.id == "ms-zz-bigger"

    def test_microsite_candidates_flagged(
        self, make_scorer, make_keyword, opportunity_microsite
    ) -> None:
        scorer = make_scorer(microsites=[opportunity_microsite])
        kw = make_keyword("harry potter tour london", intent=KeywordIntent.NAVIGATIONAL)

        candidates = scorer.score_all([kw])

        assert all(c.microsite_match for c in candidates)
        assert all(c.target_kind == TargetKind.MICROSITE for c in candidates)
        assert scorer.stats.microsite_matches == 1


class TestScoreAll:
    def test_sorted_and_skips_logged(self, make_scorer, make_keyword) -> None:
        audit = MagicMock()
        scorer = make_scorer(audit=audit)
        weak = make_keyword("london tours", search_volume=10, intent=KeywordIntent.NAVIGATIONAL)
        strong = make_keyword(
            "rome experiences",
            site_id="site-rome",
            search_volume=100000,
            intent=KeywordIntent.NAVIGATIONAL,
        )
        unviable = make_keyword("london cheap", cpc=Decimal("0"))
        orphan = make_keyword("paris museum", site_id=None)

        candidates = scorer.score_all([weak, strong, unviable, orphan])

        assert [c.keyword for c in candidates] == [
            "rome experiences",
            "rome experiences",
            "london tours",
            "london tours",
        ]
        assert scorer.stats.skipped_unviable == 1
        assert scorer.stats.skipped_no_profile == 1
        audit.log_keyword_unviable.assert_called_once_with(
            "london cheap", "estimated CPC is not positive", keyword_id=unviable.id
        )
