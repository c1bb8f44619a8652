"""Logging, Sentry, and Prometheus metrics for the bidding engine."""

from bidding.observability.logging_setup import configure_logging
from bidding.observability.metrics import export_metrics
from bidding.observability.sentry import get_sentry_processor, init_sentry, tag_run

__all__ = [
    "configure_logging",
    "export_metrics",
    "get_sentry_processor",
    "init_sentry",
    "tag_run",
]
