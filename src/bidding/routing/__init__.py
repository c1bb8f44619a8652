"""Landing-page classification, URL building, and inventory validation."""

from bidding.routing.classifier import (
    DEFAULT_SIGNAL_TABLES,
    SignalTables,
    classify_keyword_page_type,
    extract_search_query,
    load_signal_tables,
)
from bidding.routing.router import (
    RoutingContext,
    build_landing_page,
    get_landing_page_bonus,
    homepage,
)
from bidding.routing.validator import LandingPageValidator, ValidationStats

__all__ = [
    "DEFAULT_SIGNAL_TABLES",
    "LandingPageValidator",
    "RoutingContext",
    "SignalTables",
    "ValidationStats",
    "build_landing_page",
    "classify_keyword_page_type",
    "extract_search_query",
    "get_landing_page_bonus",
    "homepage",
    "load_signal_tables",
]
