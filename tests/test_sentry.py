"""Tests for optional Sentry reporting."""

from __future__ import annotations

from unittest.mock import call, patch

from structlog_sentry import SentryProcessor

from bidding.observability.sentry import (
    RUN_TAG_KEYS,
    get_sentry_processor,
    init_sentry,
    tag_run,
)


def test_init_sentry_noop_with_empty_dsn() -> None:
    """Without a DSN the SDK is never initialized."""
    with patch("bidding.observability.sentry.sentry_sdk.init") as mock_init:
        assert init_sentry("") is False
        mock_init.assert_not_called()


def test_init_sentry_error_only() -> None:
    """A DSN initializes the SDK without tracing or PII and tags the service."""
    test_dsn = "https://examplePublicKey@o0.ingest.sentry.io/0"
    with (
        patch("bidding.observability.sentry.sentry_sdk.init") as mock_init,
        patch("bidding.observability.sentry.sentry_sdk.set_tag") as mock_tag,
    ):
        assert init_sentry(test_dsn, environment="production") is True

    kwargs = mock_init.call_args.kwargs
    assert kwargs["dsn"] == test_dsn
    assert kwargs["environment"] == "production"
    assert kwargs["traces_sample_rate"] == 0.0
    assert kwargs["send_default_pii"] is False
    mock_tag.assert_called_once_with("service", "bidding-engine")


def test_tag_run_sets_run_tags() -> None:
    with patch("bidding.observability.sentry.sentry_sdk.set_tag") as mock_tag:
        tag_run("abc123", "dry_run")

    assert mock_tag.call_args_list == [call("run_id", "abc123"), call("mode", "dry_run")]


def test_processor_forwards_run_tags() -> None:
    processor = get_sentry_processor()

    assert isinstance(processor, SentryProcessor)
    assert RUN_TAG_KEYS == ["run_id", "mode"]
