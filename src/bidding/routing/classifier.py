"""Keyword -> landing-page-type classification driven by signal tables.

Classification is a pure function of ``(keyword, intent, location, tables)``.
The default tables below can be overridden from a YAML file with the same
top-level keys, so signal phrases are data rather than code.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml  # type: ignore[import-untyped]

from bidding.domain.types import KeywordIntent, LandingPageType

CATEGORY_STEMS: tuple[str, ...] = (
    "walking tour", "walking tours", "guided walk",
    "food tour", "food tours", "food tasting", "food experience",
    "cooking class", "cooking classes", "cooking experience",
    "water sports", "kayaking", "snorkeling",
    "boat tour", "boat trips", "sailing tour", "boat cruise",
    "sightseeing tour", "city tour", "city sightseeing",
    "cultural tour", "historical tour", "history tour",
    "wine tasting", "wine tour", "winery tour",
    "adventure tour", "adventure activities", "outdoor activities",
    "bike tour", "cycling tour", "bike rental",
    "nature tour", "nature walk", "nature experience",
    "art class", "art workshop", "craft workshop",
    "spa experience", "wellness experience",
    "nightlife tour", "pub crawl", "bar tour", "night tour",
    "photo tour", "photography tour",
    "family activities", "family tour", "kids activities",
    "hop on hop off", "bus tour",
    "museum tour", "museum tickets", "museum visit",
    "snorkeling tour", "diving experience", "scuba diving",
    "hiking tour", "hiking experience", "guided hike",
    "street food tour", "street food experience", "market tour", "food market tour",
    "shore excursion", "port excursion", "cruise excursion",
    "day trip", "day trips", "excursion",
)  # fmt: skip

DESTINATION_SIGNALS: tuple[str, ...] = (
    "things to do in",
    "what to do in",
    "best tours in",
    "activities in",
    "experiences in",
    "places to visit in",
    "what to see in",
    "attractions in",
    "tours in",
    "book activities in",
)

BLOG_SIGNALS: tuple[str, ...] = (
    "best time to visit",
    "how to get to",
    "tips for",
    "guide to",
    "is it worth",
    "worth it",
    "how much does",
    "cost of",
    "budget for",
    "vs ",
    " or ",
    "compare",
    "review of",
    "what to wear",
    "what to bring",
    "how long does",
)

AUDIENCE_SIGNALS: tuple[str, ...] = (
    "romantic", "couples", "honeymoon", "family", "kids", "children",
    "senior", "elderly", "solo", "group", "friends", "accessible",
    "wheelchair", "luxury", "budget",
)  # fmt: skip

SEASONAL_SIGNALS: tuple[str, ...] = (
    "christmas", "halloween", "easter", "new year", "valentine",
    "summer", "winter", "spring", "autumn", "fall", "festive", "holiday season",
)  # fmt: skip

STOP_WORDS: frozenset[str] = frozenset(
    {
        "book", "buy", "get", "find", "best", "top", "cheap", "affordable",
        "popular", "recommended", "tickets", "ticket", "online", "near", "me",
        "the", "a", "an", "in", "at", "for", "to", "of", "and", "or",
        "things", "do", "what", "where", "how",
    }
)  # fmt: skip


@dataclass(frozen=True)
class SignalTables:
    """Phrase tables consulted by :func:`classify_keyword_page_type`.

    All entries are matched as lower-case substrings of the keyword, except
    ``stop_words`` which are matched as whole words.
    """

    category_stems: tuple[str, ...] = CATEGORY_STEMS
    destination_signals: tuple[str, ...] = DESTINATION_SIGNALS
    blog_signals: tuple[str, ...] = BLOG_SIGNALS
    audience_signals: tuple[str, ...] = AUDIENCE_SIGNALS
    seasonal_signals: tuple[str, ...] = SEASONAL_SIGNALS
    stop_words: frozenset[str] = field(default=STOP_WORDS)

    def has_category_stem(self, keyword: str) -> bool:
        """Return True if any category stem appears in *keyword* (lower-case)."""
        return any(stem in keyword for stem in self.category_stems)


DEFAULT_SIGNAL_TABLES = SignalTables()

_TABLE_KEYS = (
    "category_stems",
    "destination_signals",
    "blog_signals",
    "audience_signals",
    "seasonal_signals",
    "stop_words",
)


def load_signal_tables(config_path: Path | None = None) -> SignalTables:
    """Load signal tables from YAML, falling back to the defaults per table.

    Keys missing from the file keep their default values, so a file may
    override a single table.

    Args:
        config_path: Path to the YAML file.  ``None`` returns the defaults.

    Returns:
        The resolved ``SignalTables``.

    Raises:
        FileNotFoundError: If *config_path* is given but does not exist.
    """
    if config_path is None:
        return DEFAULT_SIGNAL_TABLES
    if not config_path.exists():
        raise FileNotFoundError(f"Routing signals config not found: {config_path}")

    with config_path.open() as f:
        config = yaml.safe_load(f) or {}

    overrides: dict[str, object] = {}
    for key in _TABLE_KEYS:
        values = config.get(key)
        if values is None:
            continue
        cleaned = [str(v).lower() for v in values if str(v).strip()]
        overrides[key] = frozenset(cleaned) if key == "stop_words" else tuple(cleaned)

    return replace(DEFAULT_SIGNAL_TABLES, **overrides)  # type: ignore[arg-type]


def classify_keyword_page_type(
    keyword: str,
    intent: KeywordIntent,
    location: str | None,
    tables: SignalTables = DEFAULT_SIGNAL_TABLES,
) -> LandingPageType:
    """Classify which kind of landing page best serves *keyword*.

    Priority (first match wins):
    1. INFORMATIONAL intent or a blog signal -> BLOG
    2. Audience or seasonal signal -> COLLECTION
    3. Destination-discovery phrase without a category stem -> DESTINATION
    4. Category stem without a location -> CATEGORY
    5. Category stem with a location -> EXPERIENCES_FILTERED
    6. Otherwise -> EXPERIENCES_FILTERED

    Args:
        keyword: The keyword text.
        intent: The keyword's search intent.
        location: The keyword's location field, if any.
        tables: Signal tables to match against.

    Returns:
        The landing-page affinity.
    """
    kw = keyword.lower()

    if intent == KeywordIntent.INFORMATIONAL or any(s in kw for s in tables.blog_signals):
        return LandingPageType.BLOG

    if any(s in kw for s in tables.audience_signals) or any(
        s in kw for s in tables.seasonal_signals
    ):
        return LandingPageType.COLLECTION

    has_discovery_phrase = any(s in kw for s in tables.destination_signals)
    has_category = tables.has_category_stem(kw)

    if has_discovery_phrase and not has_category:
        return LandingPageType.DESTINATION

    if has_category and not location:
        return LandingPageType.CATEGORY

    return LandingPageType.EXPERIENCES_FILTERED


def extract_search_query(
    keyword: str,
    location: str | None,
    tables: SignalTables = DEFAULT_SIGNAL_TABLES,
) -> str:
    """Strip location words and stop-words from *keyword* to form a search query.

    Examples:
        "book london walking tour" with location "london" -> "walking tour"
        "things to do in rome" with location "rome" -> ""
    """
    words = keyword.lower().split()

    if location:
        location_words = set(location.lower().split())
        words = [w for w in words if w not in location_words]

    words = [w for w in words if w not in tables.stop_words]
    return " ".join(words).strip()


def significant_words(keyword: str, tables: SignalTables = DEFAULT_SIGNAL_TABLES) -> list[str]:
    """Return the keyword's non-stop-words longer than two characters."""
    return [w for w in keyword.lower().split() if w not in tables.stop_words and len(w) > 2]
