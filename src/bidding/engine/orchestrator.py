"""Bidding engine: sequences hygiene, evaluation, profitability, scoring,
selection, grouping, and deployment for one run.

Per-run state (validator cache and call counter, page caches, run id,
current month) is built at the start of :meth:`BiddingEngine.run` and
dropped when it returns, so nothing leaks between runs.

The hygiene stage writes keyword state permanently.  At most one run may be
active per keyword pool; the engine does not lock.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from bidding.domain.errors import CatalogueUnavailableError, CollaboratorFailureError
from bidding.domain.models import (
    CampaignCandidate,
    CampaignGroup,
    CandidateKeyword,
    CollectionEntry,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
    SiteProfile,
)
from bidding.domain.types import ValidationReason
from bidding.engine.collaborators import EvaluationSummary
from bidding.keywords.hygiene import archive_low_intent, assign_unassigned
from bidding.observability import metrics
from bidding.observability.sentry import tag_run
from bidding.profitability.calculator import ProfitabilityCalculator
from bidding.routing.classifier import DEFAULT_SIGNAL_TABLES, SignalTables
from bidding.routing.validator import LandingPageValidator, ValidationStats
from bidding.scoring.scorer import OpportunityScorer
from bidding.selection.allocator import allocate_budget
from bidding.selection.grouper import group_candidates

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.config import Settings
    from bidding.engine.collaborators import (
        CatalogueRepository,
        DeploymentSink,
        InventoryChecker,
        KeywordEvaluator,
    )

logger = structlog.get_logger()


class RunMode(StrEnum):
    """How far a run goes."""

    FULL = "full"
    REPORT_ONLY = "report_only"
    DRY_RUN = "dry_run"


class Stage(StrEnum):
    """Pipeline stages, in execution order."""

    STARTED = "started"
    HYGIENE = "hygiene"
    EVALUATION = "evaluation"
    PROFITABILITY = "profitability"
    SCORING = "scoring"
    SELECTION = "selection"
    GROUPING = "grouping"
    DEPLOYMENT = "deployment"


@dataclass
class EngineRunState:
    """State owned by exactly one run."""

    run_id: str
    mode: RunMode
    max_daily_budget: Decimal
    started_at: datetime
    validator: LandingPageValidator
    audit: AuditLogger | None = None
    pages: dict[str, list[PageEntry]] = field(default_factory=dict)
    collections: dict[str, list[CollectionEntry]] = field(default_factory=dict)

    @property
    def current_month(self) -> int:
        return self.started_at.month


@dataclass
class RunSummary:
    """What one run did.  Returned by :meth:`BiddingEngine.run`."""

    run_id: str
    mode: RunMode
    max_daily_budget: Decimal
    stage_reached: Stage = Stage.STARTED
    cancelled: bool = False
    keywords_archived: int = 0
    keywords_assigned: int = 0
    evaluation: EvaluationSummary | None = None
    profiles: dict[str, SiteProfile] = field(default_factory=dict)
    candidates_scored: int = 0
    selected: list[CampaignCandidate] = field(default_factory=list)
    groups: list[CampaignGroup] = field(default_factory=list)
    budget_allocated: Decimal = Decimal("0")
    budget_remaining: Decimal = Decimal("0")
    validation: ValidationStats | None = None
    collaborator_failures: list[str] = field(default_factory=list)
    deployed: bool = False

    def as_metadata(self) -> dict[str, str]:
        """Stringified counts for the audit trail."""
        return {
            "mode": self.mode.value,
            "cancelled": str(self.cancelled).lower(),
            "keywords_archived": str(self.keywords_archived),
            "keywords_assigned": str(self.keywords_assigned),
            "profiles": str(len(self.profiles)),
            "candidates_scored": str(self.candidates_scored),
            "selected": str(len(self.selected)),
            "groups": str(len(self.groups)),
            "budget_allocated": str(self.budget_allocated),
            "budget_remaining": str(self.budget_remaining),
            "collaborator_failures": ", ".join(self.collaborator_failures),
            "deployed": str(self.deployed).lower(),
        }


class _RunCancelled(Exception):
    """Internal signal raised between stages when the caller asks to stop."""


class BiddingEngine:
    """Runs the bidding pipeline against a catalogue.

    Args:
        catalogue: Data-access collaborator.
        settings: Economic and routing configuration.
        inventory_checker: Landing-page inventory collaborator (optional).
        evaluator: AI keyword quality collaborator (optional).
        deployment: Sink for emitted campaign groups (optional).
        audit: Audit logger; each run writes through a run-scoped copy.
        signal_tables: Routing signal tables.
        clock: Returns the current time (UTC).
    """

    def __init__(
        self,
        catalogue: CatalogueRepository,
        settings: Settings,
        *,
        inventory_checker: InventoryChecker | None = None,
        evaluator: KeywordEvaluator | None = None,
        deployment: DeploymentSink | None = None,
        audit: AuditLogger | None = None,
        signal_tables: SignalTables = DEFAULT_SIGNAL_TABLES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._catalogue = catalogue
        self._settings = settings
        self._inventory_checker = inventory_checker
        self._evaluator = evaluator
        self._deployment = deployment
        self._audit = audit
        self._signal_tables = signal_tables
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def _new_run_state(self, mode: RunMode, max_daily_budget: Decimal) -> EngineRunState:
        run_id = uuid.uuid4().hex
        audit = self._audit.for_run(run_id) if self._audit is not None else None
        return EngineRunState(
            run_id=run_id,
            mode=mode,
            max_daily_budget=max_daily_budget,
            started_at=self._clock(),
            validator=LandingPageValidator(
                self._inventory_checker,
                call_budget=self._settings.validator_call_budget,
                min_products=self._settings.min_landing_page_products,
                audit=audit,
            ),
            audit=audit,
        )

    def run(
        self,
        mode: RunMode = RunMode.FULL,
        *,
        max_daily_budget: Decimal | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> RunSummary:
        """Execute one run.

        Args:
            mode: ``FULL`` deploys, ``DRY_RUN`` stops before deployment,
                ``REPORT_ONLY`` stops after profitability.
            max_daily_budget: Global daily cap; defaults to the configured cap.
            should_stop: Polled between stages; returning True ends the run
                early with ``cancelled=True``.

        Returns:
            The ``RunSummary``.

        Raises:
            CatalogueUnavailableError: If active sites cannot be read.  Any
                other unexpected error is also recorded as a failed run and
                re-raised.
        """
        cap = max_daily_budget if max_daily_budget is not None else self._settings.max_daily_budget
        state = self._new_run_state(mode, cap)
        summary = RunSummary(
            run_id=state.run_id, mode=mode, max_daily_budget=cap, budget_remaining=cap
        )

        structlog.contextvars.bind_contextvars(run_id=state.run_id)
        tag_run(state.run_id, mode.value)
        logger.info("run_started", mode=mode.value, max_daily_budget=str(cap))
        if state.audit is not None:
            state.audit.log_run_started(mode.value, str(cap))

        try:
            try:
                self._execute(state, summary, should_stop)
            except _RunCancelled:
                summary.cancelled = True
                logger.warning("run_cancelled", stage_reached=summary.stage_reached.value)
            except Exception as exc:
                logger.error("run_failed", stage=summary.stage_reached.value, error=str(exc))
                if state.audit is not None:
                    state.audit.log_run_failed(summary.stage_reached.value, str(exc))
                metrics.RUNS.labels(mode=mode.value, outcome="failed").inc()
                raise

            summary.validation = state.validator.stats
            self._finish(state, summary)
        finally:
            structlog.contextvars.unbind_contextvars("run_id")
        return summary

    # -- stages ------------------------------------------------------------

    def _checkpoint(
        self, summary: RunSummary, stage: Stage, should_stop: Callable[[], bool] | None
    ) -> None:
        summary.stage_reached = stage
        if should_stop is not None and should_stop():
            raise _RunCancelled

    def _execute(
        self,
        state: EngineRunState,
        summary: RunSummary,
        should_stop: Callable[[], bool] | None,
    ) -> None:
        sites = self._read_sites()
        microsites = self._read_microsites(state, summary)

        keywords = self._hygiene(state, summary, sites)
        self._checkpoint(summary, Stage.HYGIENE, should_stop)

        keywords = self._evaluate(state, summary, keywords, sites)
        self._checkpoint(summary, Stage.EVALUATION, should_stop)

        calculator = ProfitabilityCalculator(
            self._catalogue,
            self._settings,
            audit=state.audit,
            now=state.started_at,
            on_write_error=self._write_failure_handler(
                state, summary, "catalogue.profiles_write", Stage.PROFITABILITY
            ),
        )
        summary.profiles = calculator.calculate_all(sites, microsites)
        if state.mode == RunMode.REPORT_ONLY:
            summary.stage_reached = Stage.PROFITABILITY
            return
        self._checkpoint(summary, Stage.PROFITABILITY, should_stop)

        candidates = self._score(state, summary, keywords, sites, microsites)
        summary.candidates_scored = len(candidates)
        self._checkpoint(summary, Stage.SCORING, should_stop)

        allocation = allocate_budget(candidates, state.max_daily_budget)
        summary.selected = allocation.selected
        summary.budget_allocated = allocation.allocated
        summary.budget_remaining = allocation.remaining
        self._checkpoint(summary, Stage.SELECTION, should_stop)

        summary.groups = group_candidates(
            allocation.selected,
            min_budget=self._settings.min_campaign_budget,
            max_budget=self._settings.max_campaign_budget,
        )
        if state.mode == RunMode.DRY_RUN:
            summary.stage_reached = Stage.GROUPING
            logger.info("deployment_skipped_dry_run", groups=len(summary.groups))
            return
        self._checkpoint(summary, Stage.GROUPING, should_stop)

        self._deploy(state, summary)
        summary.stage_reached = Stage.DEPLOYMENT

    def _read_sites(self) -> list[SiteConfig]:
        try:
            return list(self._catalogue.list_active_sites())
        except CatalogueUnavailableError:
            raise
        except Exception as exc:
            msg = f"Cannot read active sites: {exc}"
            raise CatalogueUnavailableError(msg) from exc

    def _read_microsites(self, state: EngineRunState, summary: RunSummary) -> list[MicrositeConfig]:
        try:
            return list(self._catalogue.list_active_microsites())
        except Exception as exc:
            self._record_failure(state, summary, "catalogue.microsites", exc, Stage.STARTED)
            return []

    def _hygiene(
        self, state: EngineRunState, summary: RunSummary, sites: Sequence[SiteConfig]
    ) -> list[CandidateKeyword]:
        try:
            pool = self._catalogue.list_candidate_keywords()
        except Exception as exc:
            self._record_failure(state, summary, "catalogue.keywords", exc, Stage.HYGIENE)
            return []

        on_write_error = self._write_failure_handler(
            state, summary, "catalogue.keywords_write", Stage.HYGIENE
        )
        kept, summary.keywords_archived = archive_low_intent(
            pool,
            self._catalogue,
            self._settings.low_intent_terms,
            audit=state.audit,
            on_write_error=on_write_error,
        )
        assigned, summary.keywords_assigned = assign_unassigned(
            kept,
            sites,
            self._catalogue,
            self._settings.default_site_id,
            audit=state.audit,
            on_write_error=on_write_error,
        )
        return assigned

    def _evaluate(
        self,
        state: EngineRunState,
        summary: RunSummary,
        keywords: list[CandidateKeyword],
        sites: Sequence[SiteConfig],
    ) -> list[CandidateKeyword]:
        if self._evaluator is None or not keywords:
            return keywords
        try:
            result = self._evaluator.evaluate(keywords, sites)
        except Exception as exc:
            self._record_failure(state, summary, "keyword_evaluator", exc, Stage.EVALUATION)
            return keywords

        summary.evaluation = result
        if state.audit is not None:
            state.audit.log_evaluation_completed(
                result.total_evaluated,
                result.bid_count,
                result.review_count,
                result.skip_count,
                result.archived_count,
            )
        if result.archived_count == 0:
            return keywords

        # Drop keywords the evaluator archived
        try:
            still_biddable = {kw.id for kw in self._catalogue.list_candidate_keywords()}
        except Exception as exc:
            self._record_failure(state, summary, "catalogue.keywords", exc, Stage.EVALUATION)
            return keywords
        return [kw for kw in keywords if kw.id in still_biddable]

    def _load_pages(
        self,
        state: EngineRunState,
        summary: RunSummary,
        owner_ids: list[str],
    ) -> None:
        try:
            pages = self._catalogue.list_published_pages(owner_ids)
            collections = self._catalogue.list_active_collections(owner_ids)
        except Exception as exc:
            self._record_failure(state, summary, "catalogue.pages", exc, Stage.SCORING)
            return
        for page in pages:
            state.pages.setdefault(page.owner_id, []).append(page)
        for collection in collections:
            state.collections.setdefault(collection.owner_id, []).append(collection)

    def _score(
        self,
        state: EngineRunState,
        summary: RunSummary,
        keywords: Sequence[CandidateKeyword],
        sites: Sequence[SiteConfig],
        microsites: Sequence[MicrositeConfig],
    ) -> list[CampaignCandidate]:
        self._load_pages(state, summary, [*(s.id for s in sites), *(m.id for m in microsites)])
        scorer = OpportunityScorer(
            summary.profiles,
            sites,
            microsites,
            settings=self._settings,
            validator=state.validator,
            current_month=state.current_month,
            pages=state.pages,
            collections=state.collections,
            tables=self._signal_tables,
            audit=state.audit,
        )
        return scorer.score_all(keywords)

    def _deploy(self, state: EngineRunState, summary: RunSummary) -> None:
        if self._deployment is None:
            logger.info("deployment_skipped_no_sink", groups=len(summary.groups))
            return
        try:
            self._deployment.deploy(summary.groups)
        except Exception as exc:
            self._record_failure(state, summary, "deployment", exc, Stage.DEPLOYMENT)
            return
        summary.deployed = True
        if state.audit is not None:
            for group in summary.groups:
                state.audit.log_group_emitted(group)

    # -- bookkeeping -------------------------------------------------------

    def _record_failure(
        self,
        state: EngineRunState,
        summary: RunSummary,
        collaborator: str,
        exc: Exception,
        stage: Stage,
    ) -> None:
        failure = CollaboratorFailureError(collaborator, str(exc))
        if collaborator not in summary.collaborator_failures:
            summary.collaborator_failures.append(collaborator)
        logger.warning(
            "collaborator_failed",
            collaborator=failure.collaborator,
            stage=stage.value,
            error=str(exc),
        )
        if state.audit is not None:
            state.audit.log_collaborator_failure(collaborator, str(exc), stage=stage.value)

    def _write_failure_handler(
        self,
        state: EngineRunState,
        summary: RunSummary,
        collaborator: str,
        stage: Stage,
    ) -> Callable[[str, Exception], None]:
        def record(_operation: str, exc: Exception) -> None:
            self._record_failure(state, summary, collaborator, exc, stage)

        return record

    def _finish(self, state: EngineRunState, summary: RunSummary) -> None:
        outcome = "cancelled" if summary.cancelled else "completed"
        metrics.RUNS.labels(mode=summary.mode.value, outcome=outcome).inc()
        metrics.KEYWORDS_ARCHIVED.inc(summary.keywords_archived)
        stats = state.validator.stats
        metrics.VALIDATION_FAIL_OPEN.labels(
            reason=ValidationReason.VALIDATION_LIMIT_REACHED.value
        ).inc(stats.limit_reached)
        metrics.VALIDATION_FAIL_OPEN.labels(
            reason=ValidationReason.VALIDATION_API_ERROR.value
        ).inc(stats.api_errors)
        metrics.PROFILES.set(len(summary.profiles))
        metrics.CANDIDATES.labels(stage="scored").set(summary.candidates_scored)
        metrics.CANDIDATES.labels(stage="selected").set(len(summary.selected))
        metrics.GROUPS_EMITTED.set(len(summary.groups))
        metrics.BUDGET_ALLOCATED.set(float(summary.budget_allocated))
        metrics.LAST_RUN_TIMESTAMP.set_to_current_time()

        if state.audit is not None:
            state.audit.log_run_completed(summary.stage_reached.value, summary.as_metadata())

        logger.info(
            "run_complete",
            outcome=outcome,
            stage_reached=summary.stage_reached.value,
            profiles=len(summary.profiles),
            candidates=summary.candidates_scored,
            selected=len(summary.selected),
            groups=len(summary.groups),
            allocated=f"{summary.budget_allocated:.2f}",
            remaining=f"{summary.budget_remaining:.2f}",
            validator_calls=stats.api_calls,
        )
