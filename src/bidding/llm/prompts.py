"""Prompt templates and formatting for keyword quality evaluation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from bidding.domain.models import CandidateKeyword, SiteConfig

KEYWORD_EVALUATION_SYSTEM_PROMPT = """You are a paid search strategist evaluating keywords for \
a travel experiences marketplace (tours, activities, attractions).

Evaluate each numbered keyword for paid advertising worthiness on four signals (each 0-100):

1. relevance: Does the keyword relate to bookable travel experiences? Flights, hotels, visa \
info, general travel planning, or DIY activities score low. Tours, tickets, activities, \
attractions, and things to do score high.
2. commercial_intent: Is the searcher likely to book? "best kayaking tours london" is high, \
"what is kayaking" is low, "things to do in <city>" is medium-high. Informational queries \
about history, facts, distances, or weather are low.
3. competition_viability: Given the CPC, can a small marketplace compete? Low CPC is high \
viability; high CPC against big brands is low viability.
4. landing_page_fit: Does the assigned site have matching destinations and categories?

SCORING:
- 80-100: clear buying intent for bookable experiences matching the site
- 60-79: good potential, relevant, moderate intent
- 40-59: uncertain, risky to bid on
- 20-39: poor fit, informational, wrong niche, or too competitive
- 0-19: not suitable

Return one verdict per keyword. Match "id" to the keyword's line number (1-based). Keep \
reasoning under 30 words.
"""


def format_keyword_line(
    index: int, keyword: CandidateKeyword, site: SiteConfig | None
) -> str:
    """Render one keyword and its site context as a numbered prompt line."""
    if site is not None:
        destinations = ", ".join(site.destinations) or "general"
        categories = ", ".join(site.categories) or "general"
        site_context = (
            f'Site: "{site.name}" (destinations: {destinations}, categories: {categories})'
        )
    else:
        site_context = "Site: Unassigned"

    return (
        f'{index}. "{keyword.keyword}" | vol={keyword.search_volume} | CPC={keyword.cpc:.2f} '
        f"| intent={keyword.intent.value} | loc={keyword.location or 'global'} | {site_context}"
    )


def build_evaluation_request(
    batch: Sequence[CandidateKeyword], sites: Mapping[str, SiteConfig]
) -> str:
    """Build the user message listing every keyword of *batch*."""
    lines = [
        format_keyword_line(i, kw, sites.get(kw.site_id) if kw.site_id else None)
        for i, kw in enumerate(batch, start=1)
    ]
    return "Evaluate these keywords:\n\n" + "\n".join(lines)
