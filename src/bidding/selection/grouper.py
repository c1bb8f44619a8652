"""Group selected candidates into deployable campaign units.

A group is keyed by (target id, platform, landing-page path), so every
keyword in a group lands on the same page.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from bidding.domain.models import CampaignCandidate, CampaignGroup
from bidding.domain.types import AdPlatform

GroupKey = tuple[str, AdPlatform, str]


def group_key(candidate: CampaignCandidate) -> GroupKey:
    """Return the grouping key for *candidate*."""
    return candidate.target_id, candidate.platform, candidate.landing_page.path


def clamp_budget(value: Decimal, minimum: Decimal, maximum: Decimal) -> Decimal:
    """Clamp a proposed daily budget to the per-campaign bounds."""
    return max(minimum, min(maximum, value))


def build_group(
    members: Sequence[CampaignCandidate],
    *,
    min_budget: Decimal,
    max_budget: Decimal,
) -> CampaignGroup:
    """Aggregate *members* (all sharing one key) into a ``CampaignGroup``."""
    first = members[0]
    total_cost = sum((c.expected_daily_cost for c in members), Decimal("0"))
    total_revenue = sum((c.expected_daily_revenue for c in members), Decimal("0"))

    return CampaignGroup(
        target_id=first.target_id,
        target_kind=first.target_kind,
        target_name=first.target_name,
        platform=first.platform,
        landing_page=first.landing_page,
        candidates=list(members),
        keywords=[c.keyword for c in members],
        max_bid=max(c.max_bid for c in members),
        total_expected_daily_cost=total_cost,
        total_expected_daily_revenue=total_revenue,
        mean_score=sum(c.score for c in members) / len(members),
        daily_budget=clamp_budget(total_cost, min_budget, max_budget),
    )


def group_candidates(
    candidates: Sequence[CampaignCandidate],
    *,
    min_budget: Decimal,
    max_budget: Decimal,
) -> list[CampaignGroup]:
    """Group *candidates* and return groups sorted by mean score descending."""
    buckets: dict[GroupKey, list[CampaignCandidate]] = {}
    for candidate in candidates:
        buckets.setdefault(group_key(candidate), []).append(candidate)

    groups = [
        build_group(members, min_budget=min_budget, max_budget=max_budget)
        for members in buckets.values()
    ]
    groups.sort(key=lambda g: g.mean_score, reverse=True)
    return groups
