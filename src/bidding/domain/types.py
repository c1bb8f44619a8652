"""Domain enumerations for the bidding engine."""

from enum import StrEnum


class KeywordIntent(StrEnum):
    """Search intent classification attached to a candidate keyword."""

    TRANSACTIONAL = "TRANSACTIONAL"
    COMMERCIAL = "COMMERCIAL"
    NAVIGATIONAL = "NAVIGATIONAL"
    INFORMATIONAL = "INFORMATIONAL"


class KeywordStatus(StrEnum):
    """Lifecycle status of a candidate keyword record."""

    PAID_CANDIDATE = "PAID_CANDIDATE"
    ARCHIVED = "ARCHIVED"


class AdPlatform(StrEnum):
    """Ad platforms the engine emits candidates for."""

    GOOGLE_SEARCH = "GOOGLE_SEARCH"
    FACEBOOK = "FACEBOOK"


class TargetKind(StrEnum):
    """Whether a profile or candidate belongs to a main site or a microsite."""

    SITE = "SITE"
    MICROSITE = "MICROSITE"


class SiteType(StrEnum):
    """Routing-relevant site type; decides which product API backs the pages."""

    MAIN = "MAIN"
    OPPORTUNITY_MICROSITE = "OPPORTUNITY_MICROSITE"
    SUPPLIER_MICROSITE = "SUPPLIER_MICROSITE"


class MicrositeEntityType(StrEnum):
    """What a microsite is built around."""

    SUPPLIER = "SUPPLIER"
    OPPORTUNITY = "OPPORTUNITY"
    PRODUCT = "PRODUCT"


class LandingPageType(StrEnum):
    """Kinds of landing page a keyword can be routed to."""

    HOMEPAGE = "HOMEPAGE"
    DESTINATION = "DESTINATION"
    CATEGORY = "CATEGORY"
    COLLECTION = "COLLECTION"
    EXPERIENCE_DETAIL = "EXPERIENCE_DETAIL"
    BLOG = "BLOG"
    EXPERIENCES_FILTERED = "EXPERIENCES_FILTERED"


class PageKind(StrEnum):
    """Published page kinds stored in the catalogue."""

    LANDING = "LANDING"
    CATEGORY = "CATEGORY"
    BLOG = "BLOG"
    PRODUCT = "PRODUCT"
    OTHER = "OTHER"


class ValidationReason(StrEnum):
    """Audit reason codes attached to landing-page validation outcomes."""

    VALIDATION_LIMIT_REACHED = "VALIDATION_LIMIT_REACHED"
    VALIDATION_API_ERROR = "VALIDATION_API_ERROR"
    INSUFFICIENT_PRODUCTS = "INSUFFICIENT_PRODUCTS"


class AovSource(StrEnum):
    """Fallback tier used for average order value."""

    REAL = "REAL"
    CATALOGUE = "CATALOGUE"
    DEFAULT = "DEFAULT"


class CommissionSource(StrEnum):
    """Fallback tier used for commission rate."""

    REAL = "REAL"
    PORTFOLIO = "PORTFOLIO"
    DEFAULT = "DEFAULT"


class ConversionSource(StrEnum):
    """Fallback tier used for conversion rate."""

    REAL = "REAL"
    DEFAULT = "DEFAULT"


class EvaluationDecision(StrEnum):
    """Decision returned by the keyword quality evaluator."""

    BID = "BID"
    REVIEW = "REVIEW"
    SKIP = "SKIP"


# Attribution source per platform
PLATFORM_UTM_SOURCES: dict[AdPlatform, str] = {
    AdPlatform.GOOGLE_SEARCH: "google_ads",
    AdPlatform.FACEBOOK: "facebook_ads",
}


def site_type_for_microsite(entity_type: MicrositeEntityType) -> SiteType:
    """Map a microsite's entity type to its routing site type.

    Supplier microsites can only filter their product list by owned cities or
    categories; every other microsite uses free-text product discovery.

    Args:
        entity_type: The microsite's entity type.

    Returns:
        The routing ``SiteType``.
    """
    if entity_type == MicrositeEntityType.SUPPLIER:
        return SiteType.SUPPLIER_MICROSITE
    return SiteType.OPPORTUNITY_MICROSITE
