"""Budget allocation and campaign grouping."""

from bidding.selection.allocator import AllocationResult, allocate_budget
from bidding.selection.grouper import build_group, clamp_budget, group_candidates, group_key

__all__ = [
    "AllocationResult",
    "allocate_budget",
    "build_group",
    "clamp_budget",
    "group_candidates",
    "group_key",
]
