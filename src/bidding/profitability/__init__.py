"""Per-site and per-microsite profitability profiles.

Re-exports key functions and types for convenient access:
    from bidding.profitability import ProfitabilityCalculator, calculate_profile
"""

from bidding.profitability.calculator import (
    ProfitabilityCalculator,
    calculate_profile,
    lookback_start,
)

__all__ = [
    "ProfitabilityCalculator",
    "calculate_profile",
    "lookback_start",
]
