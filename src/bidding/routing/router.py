"""API-aware keyword -> landing page routing.

Which pages can be built depends on the product API behind the site:

- **Supplier microsites** can only filter their product list by a city or a
  category the supplier owns.  Free-text queries are never generated for
  them; without a city/category match the homepage is used.
- **Main sites and opportunity microsites** have free-text product discovery
  and can route to blog posts, collections, destination pages, category
  pages, or a filtered experiences listing.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from urllib.parse import urlencode

from bidding.domain.models import (
    CollectionEntry,
    LandingPageTarget,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
)
from bidding.domain.types import (
    KeywordIntent,
    LandingPageType,
    MicrositeEntityType,
    PageKind,
    SiteType,
    site_type_for_microsite,
)
from bidding.routing.classifier import (
    DEFAULT_SIGNAL_TABLES,
    SignalTables,
    classify_keyword_page_type,
    extract_search_query,
    significant_words,
)

SMALL_CATALOGUE_THRESHOLD = 50
MIN_COLLECTION_PRODUCTS = 3
MIN_BLOG_TITLE_MATCHES = 2

# Relevance bonus per landing-page type (0-12)
LANDING_PAGE_BONUS: dict[LandingPageType, int] = {
    LandingPageType.DESTINATION: 12,
    LandingPageType.CATEGORY: 12,
    LandingPageType.COLLECTION: 10,
    LandingPageType.EXPERIENCE_DETAIL: 10,
    LandingPageType.EXPERIENCES_FILTERED: 8,
    LandingPageType.BLOG: 5,
    LandingPageType.HOMEPAGE: 0,
}


def get_landing_page_bonus(page_type: LandingPageType) -> int:
    """Return the score bonus (0-12) earned by routing to *page_type*."""
    return LANDING_PAGE_BONUS.get(page_type, 0)


@dataclass(frozen=True)
class RoutingContext:
    """Everything the router needs to know about one site or microsite."""

    owner_id: str
    domain: str
    site_type: SiteType
    microsite_entity_type: MicrositeEntityType | None = None
    cached_product_count: int | None = None
    supplier_cities: tuple[str, ...] = ()
    supplier_categories: tuple[str, ...] = ()
    pages: tuple[PageEntry, ...] = field(default=())
    collections: tuple[CollectionEntry, ...] = field(default=())

    @classmethod
    def for_site(cls, site: SiteConfig, pages: Sequence[PageEntry] = ()) -> RoutingContext:
        """Build the context for a main site."""
        return cls(
            owner_id=site.id,
            domain=site.domain,
            site_type=SiteType.MAIN,
            cached_product_count=site.product_count,
            pages=tuple(pages),
        )

    @classmethod
    def for_microsite(
        cls,
        microsite: MicrositeConfig,
        pages: Sequence[PageEntry] = (),
        collections: Sequence[CollectionEntry] = (),
    ) -> RoutingContext:
        """Build the context for a microsite."""
        return cls(
            owner_id=microsite.id,
            domain=microsite.domain,
            site_type=site_type_for_microsite(microsite.entity_type),
            microsite_entity_type=microsite.entity_type,
            cached_product_count=microsite.cached_product_count,
            supplier_cities=tuple(microsite.supplier_cities),
            supplier_categories=tuple(microsite.supplier_categories),
            pages=tuple(pages),
            collections=tuple(collections),
        )

    @property
    def has_known_catalogue(self) -> bool:
        """Whether this is a supplier microsite with a cached product count."""
        return (
            self.site_type == SiteType.SUPPLIER_MICROSITE
            and self.cached_product_count is not None
        )


def homepage(domain: str) -> LandingPageTarget:
    """Return the always-valid homepage target for *domain*."""
    return LandingPageTarget(
        url=f"https://{domain}",
        path="/",
        type=LandingPageType.HOMEPAGE,
        validated=True,
    )


def _page(
    domain: str, path: str, page_type: LandingPageType, **kwargs: object
) -> LandingPageTarget:
    return LandingPageTarget(
        url=f"https://{domain}{path}", path=path, type=page_type, **kwargs  # type: ignore[arg-type]
    )


def build_landing_page(
    keyword: str,
    intent: KeywordIntent,
    location: str | None,
    context: RoutingContext,
    *,
    current_month: int,
    tables: SignalTables = DEFAULT_SIGNAL_TABLES,
) -> LandingPageTarget:
    """Determine the best landing page for *keyword* on the given site.

    Fast exits, in order: navigational intent, a known catalogue under 50
    products, and single-product microsites all go to the homepage.

    Args:
        keyword: The keyword text.
        intent: The keyword's search intent.
        location: The keyword's location field, if any.
        context: Site type, published pages, and collections.
        current_month: Month number (1-12) used for seasonal collections.
        tables: Signal tables for classification.

    Returns:
        A ``LandingPageTarget``.  Never raises for unmatched keywords.
    """
    if intent == KeywordIntent.NAVIGATIONAL:
        return homepage(context.domain)

    if (
        context.cached_product_count is not None
        and context.cached_product_count < SMALL_CATALOGUE_THRESHOLD
    ):
        return homepage(context.domain)

    if context.microsite_entity_type == MicrositeEntityType.PRODUCT:
        return homepage(context.domain)

    if context.site_type == SiteType.SUPPLIER_MICROSITE:
        return _supplier_landing_page(keyword, context)

    return _discovery_landing_page(
        keyword, intent, location, context, current_month=current_month, tables=tables
    )


def _supplier_landing_page(keyword: str, context: RoutingContext) -> LandingPageTarget:
    kw = keyword.lower()
    params: dict[str, str] = {}

    city = next((c for c in context.supplier_cities if c.lower() in kw), None)
    if city:
        params["cities"] = city

    category = next((c for c in context.supplier_categories if c.lower() in kw), None)
    if category:
        params["categories"] = category

    if not params:
        return homepage(context.domain)

    return _page(
        context.domain,
        f"/experiences?{urlencode(params)}",
        LandingPageType.EXPERIENCES_FILTERED,
        validated=False,
    )


def _discovery_landing_page(
    keyword: str,
    intent: KeywordIntent,
    location: str | None,
    context: RoutingContext,
    *,
    current_month: int,
    tables: SignalTables,
) -> LandingPageTarget:
    kw = keyword.lower()
    affinity = classify_keyword_page_type(keyword, intent, location, tables)
    matched: LandingPageTarget | None = None

    if affinity == LandingPageType.BLOG:
        matched = _match_blog(kw, context, tables)
    elif affinity == LandingPageType.COLLECTION:
        matched = _match_collection(kw, location, context, current_month, tables)
    elif affinity == LandingPageType.DESTINATION:
        matched = _match_destination(kw, location, context)
    elif affinity == LandingPageType.CATEGORY:
        matched = _match_category(kw, context, tables)

    if matched is not None:
        return matched

    return filtered_listing(context.domain, keyword, location, tables)


def filtered_listing(
    domain: str,
    keyword: str,
    location: str | None,
    tables: SignalTables = DEFAULT_SIGNAL_TABLES,
) -> LandingPageTarget:
    """Build the ``/experiences`` listing filtered by location and a cleaned query."""
    params: dict[str, str] = {}
    if location:
        params["destination"] = location
    query = extract_search_query(keyword, location, tables)
    if query:
        params["q"] = query

    path = f"/experiences?{urlencode(params)}" if params else "/experiences"
    return _page(domain, path, LandingPageType.EXPERIENCES_FILTERED, validated=False)


def _match_blog(kw: str, context: RoutingContext, tables: SignalTables) -> LandingPageTarget | None:
    words = significant_words(kw, tables)
    for page in context.pages:
        if page.kind != PageKind.BLOG:
            continue
        title = page.title.lower()
        if sum(1 for w in words if w in title) >= MIN_BLOG_TITLE_MATCHES:
            slug = page.slug.removeprefix("blog/")
            return _page(context.domain, f"/blog/{slug}", LandingPageType.BLOG, validated=True)
    return None


def _match_collection(
    kw: str,
    location: str | None,
    context: RoutingContext,
    current_month: int,
    tables: SignalTables,
) -> LandingPageTarget | None:
    query = extract_search_query(kw, location, tables)
    for collection in context.collections:
        if collection.product_count < MIN_COLLECTION_PRODUCTS:
            continue
        if collection.seasonal_months and current_month not in collection.seasonal_months:
            continue
        name = collection.name.lower()
        if name in kw or (query and query in name):
            return _page(
                context.domain,
                f"/collections/{collection.slug}",
                LandingPageType.COLLECTION,
                validated=True,
                product_count=collection.product_count,
            )
    return None


def _match_destination(
    kw: str, location: str | None, context: RoutingContext
) -> LandingPageTarget | None:
    loc = (location or "").lower().strip()
    for page in context.pages:
        if page.kind != PageKind.LANDING or not page.location_id:
            continue
        title = page.title.lower().strip()
        if title and (title in kw or title == loc):
            return _page(
                context.domain,
                f"/destinations/{page.slug}",
                LandingPageType.DESTINATION,
                validated=False,
            )
    return None


def _match_category(
    kw: str, context: RoutingContext, tables: SignalTables
) -> LandingPageTarget | None:
    stems = [stem for stem in tables.category_stems if stem in kw]
    if not stems:
        return None
    for page in context.pages:
        if page.kind != PageKind.CATEGORY or not page.category_id:
            continue
        title = page.title.lower()
        if any(stem.split()[0] in title for stem in stems):
            return _page(
                context.domain,
                f"/categories/{page.slug}",
                LandingPageType.CATEGORY,
                validated=False,
            )
    return None
