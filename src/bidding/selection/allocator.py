"""Greedy budget allocation over score-ordered candidates.

Single pass, no lookahead or backtracking: a candidate that does not fit is
skipped and a later, smaller one may still be accepted, but an accepted
candidate is never swapped out for a better-fitting combination.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from bidding.domain.models import CampaignCandidate

logger = structlog.get_logger()


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of one allocation pass.

    Attributes:
        selected: Accepted candidates in input order.
        allocated: Sum of accepted candidates' expected daily cost.
        remaining: Cap minus allocated.
        rejected_unprofitable: Candidates with revenue below cost.
        rejected_over_budget: Candidates that did not fit under the cap.
    """

    selected: list[CampaignCandidate] = field(default_factory=list)
    allocated: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    rejected_unprofitable: int = 0
    rejected_over_budget: int = 0


def allocate_budget(candidates: Sequence[CampaignCandidate], cap: Decimal) -> AllocationResult:
    """Select candidates within the global daily *cap*.

    Args:
        candidates: Candidates sorted by score descending.
        cap: Global daily budget.

    Returns:
        An ``AllocationResult``.  The sum of selected costs never exceeds
        *cap*, and every selected candidate has revenue >= cost.
    """
    selected: list[CampaignCandidate] = []
    allocated = Decimal("0")
    unprofitable = 0
    over_budget = 0

    for candidate in candidates:
        if candidate.expected_daily_revenue < candidate.expected_daily_cost:
            unprofitable += 1
            continue
        if allocated + candidate.expected_daily_cost > cap:
            over_budget += 1
            continue
        selected.append(candidate)
        allocated += candidate.expected_daily_cost

    logger.info(
        "budget_allocated",
        selected=len(selected),
        allocated=f"{allocated:.2f}",
        remaining=f"{cap - allocated:.2f}",
        rejected_unprofitable=unprofitable,
        rejected_over_budget=over_budget,
    )
    return AllocationResult(
        selected=selected,
        allocated=allocated,
        remaining=cap - allocated,
        rejected_unprofitable=unprofitable,
        rejected_over_budget=over_budget,
    )
