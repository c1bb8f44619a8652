"""Tests for API-aware landing-page routing."""

from __future__ import annotations

import pytest

from bidding.domain.models import CollectionEntry, MicrositeConfig, PageEntry
from bidding.domain.types import (
    KeywordIntent,
    LandingPageType,
    MicrositeEntityType,
    PageKind,
    SiteType,
)
from bidding.routing.router import (
    RoutingContext,
    build_landing_page,
    filtered_listing,
    get_landing_page_bonus,
    homepage,
)

DOMAIN = "rome-experiences.example"


def _main_context(pages=(), collections=(), product_count=None) -> RoutingContext:
    return RoutingContext(
        owner_id="site-rome",
        domain=DOMAIN,
        site_type=SiteType.MAIN,
        cached_product_count=product_count,
        pages=tuple(pages),
        collections=tuple(collections),
    )


def _route(keyword, context, *, intent=KeywordIntent.COMMERCIAL, location=None, month=6):
    return build_landing_page(keyword, intent, location, context, current_month=month)


class TestFastExits:
    """Navigational, small-catalogue, and single-product cases go home."""

    def test_navigational(self) -> None:
        target = _route("rome experiences", _main_context(), intent=KeywordIntent.NAVIGATIONAL)
        assert target == homepage(DOMAIN)
        assert target.validated is True
        assert target.path == "/"

    def test_small_catalogue(self) -> None:
        target = _route("things to do in rome", _main_context(product_count=49), location="rome")
        assert target.type == LandingPageType.HOMEPAGE

    def test_product_microsite(self) -> None:
        ms = MicrositeConfig(
            id="ms-product",
            name="Colosseum Night Tour",
            domain="colosseum-night.example",
            entity_type=MicrositeEntityType.PRODUCT,
        )
        target = _route("colosseum night tour", RoutingContext.for_microsite(ms))
        assert target.url == "https://colosseum-night.example"


class TestDiscoveryRouting:
    """Main sites and opportunity microsites."""

    def test_destination_falls_through_to_filtered_listing(self) -> None:
        target = _route("things to do in rome", _main_context(), location="rome")

        assert target.type == LandingPageType.EXPERIENCES_FILTERED
        assert target.path == "/experiences?destination=rome"
        assert target.validated is False

    def test_destination_page_matched(self) -> None:
        page = PageEntry(
            owner_id="site-rome", slug="rome", kind=PageKind.LANDING, title="Rome",
            location_id="loc-rome",
        )
        target = _route("things to do in rome", _main_context(pages=[page]), location="rome")

        assert target.type == LandingPageType.DESTINATION
        assert target.url == f"https://{DOMAIN}/destinations/rome"

    def test_category_page_matched(self) -> None:
        page = PageEntry(
            owner_id="site-rome", slug="food-tours", kind=PageKind.CATEGORY,
            title="Food Tours & Tastings", category_id="cat-food",
        )
        target = _route("rome food tour", _main_context(pages=[page]))

        assert target.type == LandingPageType.CATEGORY
        assert target.path == "/categories/food-tours"

    def test_blog_requires_two_title_words(self) -> None:
        weak = PageEntry(owner_id="site-rome", slug="blog/rome-weather", kind=PageKind.BLOG,
                         title="Rome weather")
        strong = PageEntry(owner_id="site-rome", slug="blog/best-time-rome", kind=PageKind.BLOG,
                           title="When is the best time to visit Rome?")
        target = _route("best time to visit rome", _main_context(pages=[weak, strong]))

        assert target.type == LandingPageType.BLOG
        assert target.path == "/blog/best-time-rome"
        assert target.validated is True

    def test_collection_matched_with_product_count(self) -> None:
        collection = CollectionEntry(
            owner_id="site-rome", slug="romantic-rome", name="Romantic", product_count=12
        )
        target = _route("romantic rome tours", _main_context(collections=[collection]))

        assert target.type == LandingPageType.COLLECTION
        assert target.path == "/collections/romantic-rome"
        assert target.product_count == 12
        assert target.validated is True

    @pytest.mark.parametrize(
        ("collection", "month"),
        [
            (CollectionEntry(owner_id="site-rome", slug="x", name="Romantic", product_count=2), 6),
            (
                CollectionEntry(
                    owner_id="site-rome", slug="x", name="Romantic", product_count=9,
                    seasonal_months=[12],
                ),
                6,
            ),
        ],
        ids=["too_few_products", "out_of_season"],
    )
    def test_collection_skipped(self, collection, month) -> None:
        target = _route("romantic rome tours", _main_context(collections=[collection]),
                        month=month)

        assert target.type == LandingPageType.EXPERIENCES_FILTERED

    def test_filtered_listing_query(self) -> None:
        target = filtered_listing(DOMAIN, "book colosseum skip the line", "rome")
        assert target.path == "/experiences?destination=rome&q=colosseum+skip+line"

    def test_filtered_listing_without_params(self) -> None:
        assert filtered_listing(DOMAIN, "the best", None).path == "/experiences"


class TestSupplierRouting:
    """Supplier microsites only filter by owned cities and categories."""

    def test_city_and_category(self, supplier_microsite) -> None:
        ctx = RoutingContext.for_microsite(supplier_microsite)
        target = _route("rome walking tours", ctx)

        assert target.type == LandingPageType.EXPERIENCES_FILTERED
        assert target.path == "/experiences?cities=Rome&categories=Walking+Tours"
        assert ctx.has_known_catalogue is True

    def test_no_match_goes_home(self, supplier_microsite) -> None:
        target = _route("florence wine tasting", RoutingContext.for_microsite(supplier_microsite))

        assert target.type == LandingPageType.HOMEPAGE

    def test_never_free_text(self, supplier_microsite) -> None:
        target = _route("things to do in rome", RoutingContext.for_microsite(supplier_microsite),
                        location="rome")

        assert "q=" not in target.path
        assert "destination=" not in target.path


class TestLandingPageBonus:
    @pytest.mark.parametrize(
        ("page_type", "bonus"),
        [
            (LandingPageType.DESTINATION, 12),
            (LandingPageType.CATEGORY, 12),
            (LandingPageType.COLLECTION, 10),
            (LandingPageType.EXPERIENCE_DETAIL, 10),
            (LandingPageType.EXPERIENCES_FILTERED, 8),
            (LandingPageType.BLOG, 5),
            (LandingPageType.HOMEPAGE, 0),
        ],
        ids=lambda v: str(v),
    )
    def test_bonus(self, page_type, bonus) -> None:
        assert get_landing_page_bonus(page_type) == bonus


class TestRoutingContext:
    def test_main_site_has_no_known_catalogue(self, london_site) -> None:
        ctx = RoutingContext.for_site(london_site)
        assert ctx.site_type == SiteType.MAIN
        assert ctx.has_known_catalogue is False

    def test_opportunity_microsite(self, opportunity_microsite) -> None:
        ctx = RoutingContext.for_microsite(opportunity_microsite)
        assert ctx.site_type == SiteType.OPPORTUNITY_MICROSITE
