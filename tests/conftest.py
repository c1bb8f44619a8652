"""Shared pytest fixtures for the bidding engine test suite."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest

from bidding.config import Settings, get_settings
from bidding.domain.models import (
    AttributionParams,
    CampaignCandidate,
    CandidateKeyword,
    DataQuality,
    DiscoveryConfig,
    LandingPageTarget,
    MicrositeConfig,
    SiteConfig,
    SiteProfile,
)
from bidding.domain.types import (
    PLATFORM_UTM_SOURCES,
    AdPlatform,
    AovSource,
    CommissionSource,
    ConversionSource,
    KeywordIntent,
    LandingPageType,
    MicrositeEntityType,
    TargetKind,
)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Clear get_settings lru_cache before each test."""
    get_settings.cache_clear()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings that ignore any local ``.env`` file."""

    def _make(**overrides: Any) -> Settings:
        return Settings(_env_file=None, **overrides)  # type: ignore[call-arg]

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    """Default settings with a configured default site."""
    return make_settings(default_site_id="site-london")


@pytest.fixture
def london_site() -> SiteConfig:
    """A main site covering London tours."""
    return SiteConfig(
        id="site-london",
        name="London Tours",
        domain="london-tours.example",
        destinations=["London"],
        categories=["walking tour", "food tour"],
        search_terms=["thames cruise"],
    )


@pytest.fixture
def rome_site() -> SiteConfig:
    """A main site covering Rome experiences."""
    return SiteConfig(
        id="site-rome",
        name="Rome Experiences",
        domain="rome-experiences.example",
        destinations=["Rome"],
        categories=["food tour", "colosseum tour"],
        search_terms=["vatican"],
    )


@pytest.fixture
def supplier_microsite() -> MicrositeConfig:
    """A supplier microsite with a small known catalogue in Rome."""
    return MicrositeConfig(
        id="ms-supplier",
        name="Roma Walks",
        domain="romawalks.example",
        entity_type=MicrositeEntityType.SUPPLIER,
        cached_product_count=80,
        supplier_cities=["Rome"],
        supplier_categories=["Walking Tours"],
    )


@pytest.fixture
def opportunity_microsite() -> MicrositeConfig:
    """An opportunity microsite built around one seed keyword."""
    return MicrositeConfig(
        id="ms-opportunity",
        name="Harry Potter London",
        domain="harrypotter-tours.example",
        entity_type=MicrositeEntityType.OPPORTUNITY,
        discovery=DiscoveryConfig(
            keyword="harry potter tour london",
            destination="London",
            search_terms=["warner bros studio tour"],
        ),
    )


@pytest.fixture
def make_keyword() -> Callable[..., CandidateKeyword]:
    """Build a candidate keyword with sensible defaults."""

    def _make(keyword: str = "london food tour", **overrides: Any) -> CandidateKeyword:
        fields: dict[str, Any] = {
            "id": f"kw-{keyword.replace(' ', '-')}",
            "keyword": keyword,
            "search_volume": 1000,
            "cpc": Decimal("0.50"),
            "intent": KeywordIntent.COMMERCIAL,
            "location": None,
            "site_id": "site-london",
        }
        fields.update(overrides)
        return CandidateKeyword(**fields)

    return _make


@pytest.fixture
def make_profile() -> Callable[..., SiteProfile]:
    """Build a profile with a chosen max profitable CPC."""

    def _make(
        target_id: str = "site-london",
        max_cpc: str = "1.00",
        *,
        target_kind: TargetKind = TargetKind.SITE,
        name: str = "London Tours",
    ) -> SiteProfile:
        ceiling = Decimal(max_cpc)
        return SiteProfile(
            target_id=target_id,
            target_kind=target_kind,
            name=name,
            avg_order_value=Decimal("150"),
            commission_rate=Decimal("20"),
            conversion_rate=Decimal("0.25"),
            revenue_per_click=ceiling,
            max_profitable_cpc=ceiling,
            target_roas=Decimal("1.0"),
            data_quality=DataQuality(
                booking_sample_size=5,
                session_sample_size=200,
                aov_source=AovSource.REAL,
                commission_source=CommissionSource.REAL,
                conversion_source=ConversionSource.REAL,
            ),
        )

    return _make


@pytest.fixture
def make_candidate() -> Callable[..., CampaignCandidate]:
    """Build a campaign candidate with chosen economics and landing page."""

    def _make(
        keyword: str = "london food tour",
        *,
        cost: str = "10",
        revenue: str = "20",
        score: int = 50,
        target_id: str = "site-london",
        platform: AdPlatform = AdPlatform.GOOGLE_SEARCH,
        path: str = "/",
        max_bid: str = "0.60",
    ) -> CampaignCandidate:
        return CampaignCandidate(
            keyword_id=f"kw-{keyword.replace(' ', '-')}",
            keyword=keyword,
            target_id=target_id,
            target_kind=TargetKind.SITE,
            target_name="London Tours",
            platform=platform,
            estimated_cpc=Decimal("0.50"),
            max_bid=Decimal(max_bid),
            search_volume=1000,
            expected_daily_clicks=Decimal("20"),
            expected_daily_cost=Decimal(cost),
            expected_daily_revenue=Decimal(revenue),
            score=score,
            intent=KeywordIntent.COMMERCIAL,
            landing_page=LandingPageTarget(
                url=f"https://london-tours.example{path}",
                path=path,
                type=LandingPageType.HOMEPAGE if path == "/" else LandingPageType.CATEGORY,
                validated=True,
            ),
            attribution=AttributionParams(
                source=PLATFORM_UTM_SOURCES[platform],
                campaign="auto_" + keyword.replace(" ", "_"),
            ),
        )

    return _make


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    """A small catalogue snapshot covering every pipeline branch."""
    return {
        "sites": [
            {
                "id": "site-london",
                "name": "London Tours",
                "domain": "london-tours.example",
                "destinations": ["London"],
                "categories": ["walking tour", "food tour"],
                "search_terms": ["thames cruise"],
            },
            {
                "id": "site-rome",
                "name": "Rome Experiences",
                "domain": "rome-experiences.example",
                "destinations": ["Rome"],
                "categories": ["food tour"],
                "search_terms": ["vatican"],
            },
            {
                "id": "site-closed",
                "name": "Closed Site",
                "domain": "closed.example",
                "active": False,
            },
        ],
        "microsites": [
            {
                "id": "ms-supplier",
                "name": "Tuscany Wine Co",
                "domain": "tuscanywine.example",
                "entity_type": "SUPPLIER",
                "cached_product_count": 80,
                "supplier_cities": ["Florence"],
                "supplier_categories": ["Wine Tasting"],
            },
        ],
        "bookings": {
            "site-london": {
                "booking_count": 5,
                "avg_order_value": "150",
                "commission_sample_size": 5,
                "avg_commission_rate": "20",
            },
        },
        "portfolio_bookings": {
            "booking_count": 12,
            "avg_order_value": "160",
            "commission_sample_size": 12,
            "avg_commission_rate": "18",
        },
        "traffic": {
            "site-london": {"sessions": 200, "bookings": 50},
            "site-rome": {"sessions": 1000, "bookings": 30},
        },
        "catalogue_average_price": "140",
        "keywords": [
            {
                "id": "kw-free",
                "keyword": "free walking tour london",
                "search_volume": 9000,
                "cpc": "0.80",
                "site_id": "site-london",
                "priority_score": 9.0,
            },
            {
                "id": "kw-london",
                "keyword": "london tours",
                "search_volume": 5000,
                "cpc": "1.00",
                "intent": "NAVIGATIONAL",
                "site_id": "site-london",
                "priority_score": 8.0,
            },
            {
                "id": "kw-rome-food",
                "keyword": "rome food tour",
                "search_volume": 3000,
                "cpc": "0.40",
                "priority_score": 7.0,
            },
            {
                "id": "kw-florence",
                "keyword": "florence wine tasting",
                "search_volume": 1500,
                "cpc": "0.30",
                "site_id": "site-rome",
                "priority_score": 6.0,
            },
            {
                "id": "kw-paris",
                "keyword": "paris museum pass",
                "search_volume": 2000,
                "cpc": "0.50",
                "priority_score": 5.0,
            },
            {
                "id": "kw-zero-cpc",
                "keyword": "london thames cruise",
                "search_volume": 800,
                "cpc": "0",
                "site_id": "site-london",
                "priority_score": 4.0,
            },
            {
                "id": "kw-old",
                "keyword": "old archived keyword",
                "status": "ARCHIVED",
            },
        ],
        "pages": [
            {
                "owner_id": "site-rome",
                "slug": "food-tours",
                "kind": "CATEGORY",
                "title": "Food Tours",
                "category_id": "cat-food",
            },
        ],
        "collections": [],
    }
