"""Command-line entry point for one bidding engine run.

Wires settings, logging, Sentry, the audit database, and the concrete
collaborators, then runs the engine against a catalogue snapshot.

Usage::

    bidding --snapshot data/catalogue.yaml --mode dry_run
    bidding --snapshot data/catalogue.yaml --output out/groups.json --max-budget 800
"""

from __future__ import annotations

import argparse
import signal
import threading
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import structlog

from bidding.adapters import HttpInventoryChecker, JsonDeploymentSink, SnapshotCatalogue
from bidding.audit.logger import AuditLogger
from bidding.audit.store import close_audit_db, init_audit_db
from bidding.config import Settings, get_settings, validate_settings
from bidding.domain.errors import CatalogueUnavailableError
from bidding.engine.orchestrator import BiddingEngine, RunMode, RunSummary
from bidding.llm.client import get_anthropic_client
from bidding.llm.evaluator import AnthropicKeywordEvaluator
from bidding.observability import configure_logging, export_metrics, init_sentry
from bidding.routing.classifier import load_signal_tables

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


def _decimal_arg(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value!r}") from exc
    if amount < 0:
        raise argparse.ArgumentTypeError("budget must not be negative")
    return amount


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for an engine run.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Run the paid-traffic bidding engine")
    parser.add_argument(
        "--snapshot",
        type=Path,
        required=True,
        help="Catalogue snapshot (YAML or JSON)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in RunMode],
        default=RunMode.FULL.value,
        help="Run mode (default: full)",
    )
    parser.add_argument(
        "--max-budget",
        type=_decimal_arg,
        default=None,
        help="Global daily budget cap (default: MAX_DAILY_BUDGET)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("out/campaign_groups.json"),
        help="Where FULL runs write campaign groups",
    )
    parser.add_argument(
        "--state-out",
        type=Path,
        default=None,
        help="Write keyword and profile state after the run",
    )
    parser.add_argument(
        "--metrics-textfile",
        type=Path,
        default=None,
        help="Prometheus textfile-collector path",
    )
    parser.add_argument(
        "--audit-db",
        type=Path,
        default=None,
        help="Audit database path (default: AUDIT_DB_PATH)",
    )
    return parser


def initialize_services(
    settings: Settings,
    catalogue: SnapshotCatalogue,
    args: argparse.Namespace,
) -> dict[str, Any]:
    """Create the audit database and the optional collaborators.

    A collaborator whose configuration is missing is left out; the engine
    runs without it.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    services: dict[str, Any] = {}

    audit_db_path: Path = args.audit_db or settings.audit_db_path
    audit_db_path.parent.mkdir(parents=True, exist_ok=True)
    audit_conn = init_audit_db(audit_db_path)
    services["audit_conn"] = audit_conn
    audit_logger = AuditLogger(audit_conn)
    services["audit_logger"] = audit_logger

    inventory_checker = None
    if settings.inventory_api_url:
        inventory_checker = HttpInventoryChecker(
            settings.inventory_api_url,
            settings.inventory_api_key.get_secret_value(),
        )
        logger.info("inventory_checker_enabled", base_url=settings.inventory_api_url)
    else:
        logger.info("inventory_checker_disabled")
    services["inventory_checker"] = inventory_checker

    evaluator = None
    if settings.ai_evaluation_enabled:
        try:
            client = get_anthropic_client(settings.anthropic_api_key.get_secret_value() or None)
            evaluator = AnthropicKeywordEvaluator(client, catalogue, audit=audit_logger)
            logger.info("keyword_evaluator_enabled")
        except Exception:
            logger.warning("keyword_evaluator_init_failed", exc_info=True)
    services["evaluator"] = evaluator

    services["deployment"] = JsonDeploymentSink(args.output)
    services["signal_tables"] = load_signal_tables(settings.routing_signals_path)
    return services


def _install_stop_handler() -> threading.Event:
    stop = threading.Event()

    def _request_stop(signum: int, frame: object) -> None:
        logger.warning("stop_requested", signal=signum)
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)
    return stop


def print_summary(summary: RunSummary) -> None:
    """Print a short human-readable run summary to stdout."""
    print(f"Run {summary.run_id} ({summary.mode.value})")
    print(f"  stage reached:  {summary.stage_reached.value}")
    if summary.cancelled:
        print("  cancelled:      yes")
    print(f"  archived:       {summary.keywords_archived}")
    print(f"  assigned:       {summary.keywords_assigned}")
    print(f"  profiles:       {len(summary.profiles)}")
    print(f"  candidates:     {summary.candidates_scored}")
    print(f"  selected:       {len(summary.selected)}")
    print(f"  groups:         {len(summary.groups)}")
    print(f"  allocated:      {summary.budget_allocated:.2f} / {summary.max_daily_budget:.2f}")
    if summary.collaborator_failures:
        print(f"  failures:       {', '.join(summary.collaborator_failures)}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the engine once.

    Args:
        argv: Command-line arguments (defaults to ``sys.argv[1:]``).

    Returns:
        Process exit code: 0 on completion, 1 on a fatal catalogue error,
        130 when stopped early.
    """
    args = build_parser().parse_args(argv)

    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn, environment="production" if settings.production else "development"
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    validate_settings(settings)

    try:
        catalogue = SnapshotCatalogue.from_file(args.snapshot)
    except CatalogueUnavailableError as exc:
        logger.error("snapshot_unavailable", error=str(exc))
        return EXIT_FATAL

    services = initialize_services(settings, catalogue, args)
    engine = BiddingEngine(
        catalogue,
        settings,
        inventory_checker=services["inventory_checker"],
        evaluator=services["evaluator"],
        deployment=services["deployment"],
        audit=services["audit_logger"],
        signal_tables=services["signal_tables"],
    )
    stop = _install_stop_handler()

    try:
        summary = engine.run(
            RunMode(args.mode),
            max_daily_budget=args.max_budget,
            should_stop=stop.is_set,
        )
    except CatalogueUnavailableError:
        return EXIT_FATAL
    finally:
        if args.metrics_textfile is not None:
            export_metrics(args.metrics_textfile)
        checker = services["inventory_checker"]
        if checker is not None:
            checker.close()
        close_audit_db(services["audit_conn"])

    if args.state_out is not None:
        catalogue.save(args.state_out)
    print_summary(summary)
    return EXIT_CANCELLED if summary.cancelled else EXIT_OK
