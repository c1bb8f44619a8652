"""Keyword hygiene: archive zero-intent keywords and assign the rest to a site.

Both operations write through the catalogue and are NOT idempotent: archived
keywords leave the biddable pool permanently and assignments persist.  Two
runs over the same keyword pool must not execute concurrently.

A failed write does not stop the run.  The in-memory pool is returned as if
the write had succeeded and the failure goes to *on_write_error*.  Returned
counts only include persisted changes.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from bidding.domain.errors import AssignmentAmbiguousError
from bidding.domain.models import CandidateKeyword, SiteConfig

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.engine.collaborators import CatalogueRepository

logger = structlog.get_logger()

# Additive match weights
DESTINATION_WEIGHT = 10
LOCATION_WEIGHT = 8
SITE_NAME_WEIGHT = 7
CATEGORY_WEIGHT = 5
SEARCH_TERM_WEIGHT = 3

MIN_ASSIGNMENT_SCORE = 3

ARCHIVE_REASON = "low_intent_term"


def compile_low_intent_pattern(terms: Iterable[str]) -> re.Pattern[str] | None:
    """Build one whole-word, case-insensitive pattern for all *terms*.

    Returns:
        The compiled pattern, or ``None`` when *terms* is empty.
    """
    cleaned = [t.strip() for t in terms if t.strip()]
    if not cleaned:
        return None
    alternation = "|".join(re.escape(t) for t in cleaned)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


def is_low_intent(keyword: str, pattern: re.Pattern[str] | None) -> bool:
    """Return True if *keyword* contains a zero-intent term as a whole word."""
    return pattern is not None and pattern.search(keyword) is not None


def archive_low_intent(
    keywords: Sequence[CandidateKeyword],
    catalogue: CatalogueRepository,
    terms: Iterable[str],
    *,
    audit: AuditLogger | None = None,
    on_write_error: Callable[[str, Exception], None] | None = None,
) -> tuple[list[CandidateKeyword], int]:
    """Archive keywords containing zero-intent terms.

    Args:
        keywords: The current biddable pool.
        catalogue: Data-access collaborator used to persist the archive.
        terms: Zero-intent terms ("free", "gratis", ...).
        audit: Optional audit logger.
        on_write_error: Called with the operation name and exception when the
            archive write fails.

    Returns:
        The keywords that remain biddable, and the number archived.  Keywords
        whose archive write failed are still left out of the pool.
    """
    pattern = compile_low_intent_pattern(terms)
    kept: list[CandidateKeyword] = []
    archived: list[CandidateKeyword] = []

    for kw in keywords:
        if is_low_intent(kw.keyword, pattern):
            archived.append(kw)
        else:
            kept.append(kw)

    persisted = 0
    if archived:
        try:
            catalogue.archive_keywords([kw.id for kw in archived], ARCHIVE_REASON)
        except Exception as exc:
            logger.warning("keyword_archive_failed", keywords=len(archived), error=str(exc))
            if on_write_error is not None:
                on_write_error("archive_keywords", exc)
            archived = []
        persisted = len(archived)
        for kw in archived:
            logger.debug("keyword_archived", keyword=kw.keyword, reason=ARCHIVE_REASON)
            if audit is not None:
                audit.log_keyword_archived(kw.keyword, ARCHIVE_REASON, keyword_id=kw.id)

    logger.info("low_intent_archive_complete", archived=persisted, remaining=len(kept))
    return kept, persisted


def score_site_match(keyword: CandidateKeyword, site: SiteConfig) -> int:
    """Score how well *keyword* fits *site*'s match profile.

    Weights are additive across every matching entry:
    destination substring 10, location overlap with a destination 8,
    site-name substring 7, category substring 5, search-term substring 3.
    """
    kw = keyword.keyword.lower()
    location = (keyword.location or "").lower().strip()
    score = 0

    for destination in site.destinations:
        dest = destination.lower().strip()
        if not dest:
            continue
        if dest in kw:
            score += DESTINATION_WEIGHT
        if location and (dest in location or location in dest):
            score += LOCATION_WEIGHT

    name = site.name.lower().strip()
    if name and name in kw:
        score += SITE_NAME_WEIGHT

    for category in site.categories:
        cat = category.lower().strip()
        if cat and cat in kw:
            score += CATEGORY_WEIGHT

    for term in site.search_terms:
        t = term.lower().strip()
        if t and t in kw:
            score += SEARCH_TERM_WEIGHT

    return score


@dataclass(frozen=True)
class SiteAssignment:
    """Outcome of assigning one keyword.

    Attributes:
        site_id: The site that now owns the keyword.
        score: The winning match score (0 when routed to the default site).
        used_default: Whether no site reached the minimum score.
    """

    site_id: str
    score: int
    used_default: bool


def best_site(keyword: CandidateKeyword, sites: Sequence[SiteConfig]) -> tuple[str, int]:
    """Return the highest-scoring site id and its score.

    Ties on score resolve to the lowest site id so repeated runs agree.

    Raises:
        AssignmentAmbiguousError: If no site reaches the minimum score.
    """
    best_id: str | None = None
    best_score = 0
    for site in sorted(sites, key=lambda s: s.id):
        score = score_site_match(keyword, site)
        if best_id is None or score > best_score:
            best_id, best_score = site.id, score

    if best_id is None or best_score < MIN_ASSIGNMENT_SCORE:
        raise AssignmentAmbiguousError(keyword.keyword, best_score)
    return best_id, best_score


def choose_site(
    keyword: CandidateKeyword,
    sites: Sequence[SiteConfig],
    default_site_id: str,
) -> SiteAssignment:
    """Pick the best site for *keyword*, routing to *default_site_id* when ambiguous."""
    try:
        site_id, score = best_site(keyword, sites)
    except AssignmentAmbiguousError as exc:
        logger.debug("keyword_routed_to_default", keyword=exc.keyword, best_score=exc.best_score)
        return SiteAssignment(site_id=default_site_id, score=0, used_default=True)
    return SiteAssignment(site_id=site_id, score=score, used_default=False)


def resolve_default_site(sites: Sequence[SiteConfig], configured_id: str) -> str | None:
    """Return the configured default site id, or the lowest active id if unusable."""
    site_ids = sorted(s.id for s in sites)
    if configured_id and configured_id in site_ids:
        return configured_id
    if not site_ids:
        return None
    logger.warning(
        "default_site_not_active",
        configured=configured_id or None,
        fallback=site_ids[0],
    )
    return site_ids[0]


def assign_unassigned(
    keywords: Sequence[CandidateKeyword],
    sites: Sequence[SiteConfig],
    catalogue: CatalogueRepository,
    default_site_id: str,
    *,
    audit: AuditLogger | None = None,
    on_write_error: Callable[[str, Exception], None] | None = None,
) -> tuple[list[CandidateKeyword], int]:
    """Assign every keyword without a site to the best-matching active site.

    Args:
        keywords: The biddable pool (after archiving).
        sites: Active sites.
        catalogue: Data-access collaborator used to persist assignments.
        default_site_id: Configured fallback site id.
        audit: Optional audit logger.
        on_write_error: Called with the operation name and exception for
            each assignment that cannot be saved.

    Returns:
        The pool with assignments applied, and the number persisted.
    """
    default_id = resolve_default_site(sites, default_site_id)
    if default_id is None:
        logger.warning("assignment_skipped_no_active_sites", keywords=len(keywords))
        return list(keywords), 0

    updated: list[CandidateKeyword] = []
    assigned = 0
    defaulted = 0

    for kw in keywords:
        if kw.site_id:
            updated.append(kw)
            continue

        choice = choose_site(kw, sites, default_id)
        updated.append(kw.model_copy(update={"site_id": choice.site_id}))
        try:
            catalogue.assign_keyword(kw.id, choice.site_id)
        except Exception as exc:
            logger.warning("keyword_assign_failed", keyword_id=kw.id, error=str(exc))
            if on_write_error is not None:
                on_write_error("assign_keyword", exc)
            continue
        assigned += 1
        if choice.used_default:
            defaulted += 1

        if audit is not None:
            audit.log_keyword_assigned(
                kw.keyword,
                choice.site_id,
                keyword_id=kw.id,
                score=choice.score,
                used_default=choice.used_default,
            )

    logger.info("keyword_assignment_complete", assigned=assigned, defaulted=defaulted)
    return updated, assigned
