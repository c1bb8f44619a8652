"""Keyword hygiene and site assignment."""

from bidding.keywords.hygiene import (
    SiteAssignment,
    archive_low_intent,
    assign_unassigned,
    best_site,
    choose_site,
    compile_low_intent_pattern,
    is_low_intent,
    score_site_match,
)

__all__ = [
    "SiteAssignment",
    "archive_low_intent",
    "assign_unassigned",
    "best_site",
    "choose_site",
    "compile_low_intent_pattern",
    "is_low_intent",
    "score_site_match",
]
