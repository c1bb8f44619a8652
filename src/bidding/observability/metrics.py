"""Prometheus metrics for bidding engine runs.

The engine is a batch job, so metrics live in a dedicated registry that is
written to a node-exporter textfile-collector file at the end of each run.

Provides:
- ``RUNS``: Counter of runs by mode and outcome.
- ``KEYWORDS_ARCHIVED``: Counter of keywords archived as zero-intent.
- ``VALIDATION_FAIL_OPEN``: Counter of landing pages accepted fail-open, by reason.
- ``CANDIDATES``, ``GROUPS_EMITTED``, ``BUDGET_ALLOCATED``: Gauges for the last run.
- ``LAST_RUN_TIMESTAMP``: Gauge of the last completed run's end time.
"""

from __future__ import annotations

from pathlib import Path

from prometheus_client import CollectorRegistry, Counter, Gauge, write_to_textfile

REGISTRY = CollectorRegistry()

RUNS: Counter = Counter(
    "bidding_runs_total",
    "Bidding engine runs by mode and outcome",
    ["mode", "outcome"],
    registry=REGISTRY,
)

KEYWORDS_ARCHIVED: Counter = Counter(
    "bidding_keywords_archived_total",
    "Keywords archived for containing a zero-intent term",
    registry=REGISTRY,
)

VALIDATION_FAIL_OPEN: Counter = Counter(
    "bidding_validation_fail_open_total",
    "Landing pages accepted without a successful inventory check",
    ["reason"],
    registry=REGISTRY,
)

PROFILES: Gauge = Gauge(
    "bidding_profiles_last_run",
    "Profiles computed in the last run",
    registry=REGISTRY,
)

CANDIDATES: Gauge = Gauge(
    "bidding_candidates_last_run",
    "Campaign candidates in the last run",
    ["stage"],
    registry=REGISTRY,
)

GROUPS_EMITTED: Gauge = Gauge(
    "bidding_groups_emitted_last_run",
    "Campaign groups emitted in the last run",
    registry=REGISTRY,
)

BUDGET_ALLOCATED: Gauge = Gauge(
    "bidding_budget_allocated_last_run",
    "Expected daily spend allocated in the last run",
    registry=REGISTRY,
)

LAST_RUN_TIMESTAMP: Gauge = Gauge(
    "bidding_last_run_timestamp_seconds",
    "Unix time the last run finished",
    registry=REGISTRY,
)


def export_metrics(path: Path) -> None:
    """Write the engine registry to a textfile-collector file at *path*.

    Args:
        path: Destination ``.prom`` file.  Parent directories are created.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
