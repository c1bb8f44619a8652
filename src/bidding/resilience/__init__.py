"""Retry infrastructure for outbound API calls."""

from bidding.resilience.retry import resilient_api_call

__all__ = [
    "resilient_api_call",
]
