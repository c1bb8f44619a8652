"""Tests for the engine's Prometheus registry and textfile export."""

from __future__ import annotations

from pathlib import Path

from bidding.observability.metrics import (
    GROUPS_EMITTED,
    REGISTRY,
    RUNS,
    VALIDATION_FAIL_OPEN,
    export_metrics,
)


def _value(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_run_counter_labels() -> None:
    """RUNS increments per (mode, outcome) pair."""
    before = _value("bidding_runs_total", {"mode": "dry_run", "outcome": "completed"})
    RUNS.labels(mode="dry_run", outcome="completed").inc()
    after = _value("bidding_runs_total", {"mode": "dry_run", "outcome": "completed"})
    assert after - before == 1


def test_fail_open_counter_by_reason() -> None:
    before = _value(
        "bidding_validation_fail_open_total", {"reason": "VALIDATION_LIMIT_REACHED"}
    )
    VALIDATION_FAIL_OPEN.labels(reason="VALIDATION_LIMIT_REACHED").inc(3)
    after = _value("bidding_validation_fail_open_total", {"reason": "VALIDATION_LIMIT_REACHED"})
    assert after - before == 3


def test_export_metrics_writes_textfile(tmp_path: Path) -> None:
    """export_metrics writes the registry in Prometheus text format."""
    GROUPS_EMITTED.set(4)
    path = tmp_path / "collector" / "bidding.prom"

    export_metrics(path)

    text = path.read_text()
    assert "bidding_groups_emitted_last_run 4.0" in text
    assert "bidding_runs_total" in text
    assert "# HELP bidding_last_run_timestamp_seconds" in text
