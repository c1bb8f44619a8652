"""Optional Sentry error reporting for engine runs.

Without a DSN nothing is initialized.  With one, ERROR log events (a fatal
catalogue read, an outbound call that exhausted its retries) reach Sentry
through the structlog-sentry processor, tagged with the run that emitted
them.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor

# Log keys promoted to Sentry tags so events can be filtered per run
RUN_TAG_KEYS = ["run_id", "mode"]


def init_sentry(dsn: str, *, environment: str = "development") -> bool:
    """Initialize the Sentry SDK for a batch run.

    Tracing is off; the engine is a short-lived process and only errors
    are reported.

    Args:
        dsn: Sentry DSN.  Empty disables reporting.
        environment: Sentry environment name.

    Returns:
        Whether Sentry was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.0,
        send_default_pii=False,
        # structlog-sentry captures; the stdlib integration would double-report
        integrations=[LoggingIntegration(event_level=None, level=None)],
    )
    sentry_sdk.set_tag("service", "bidding-engine")
    return True


def tag_run(run_id: str, mode: str) -> None:
    """Attach the current run to later Sentry events.  No-op when disabled."""
    sentry_sdk.set_tag("run_id", run_id)
    sentry_sdk.set_tag("mode", mode)


def get_sentry_processor() -> structlog.types.Processor:
    """Processor that sends ERROR events to Sentry with run tags.

    Goes after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR, tag_keys=RUN_TAG_KEYS)
