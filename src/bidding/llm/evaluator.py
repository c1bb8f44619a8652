"""AI keyword quality gate using Claude structured outputs.

Keywords are sent in numbered batches; each verdict's score maps to BID
(>= 60), REVIEW, or SKIP (< 30).  Every verdict is stored on its keyword and
SKIP keywords are archived through the catalogue.  Keywords evaluated within
the cooldown window (72 hours by default) are not sent again.  A failed batch
is logged and skipped, never fatal.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from anthropic import Anthropic

from bidding.domain.models import CandidateKeyword, KeywordEvaluation, SiteConfig
from bidding.domain.types import EvaluationDecision
from bidding.engine.collaborators import EvaluationSummary
from bidding.llm.client import (
    BATCH_SIZE,
    BID_THRESHOLD,
    EVAL_COOLDOWN_HOURS,
    EVALUATION_MODEL,
    MAX_BATCHES,
    MAX_TOKENS,
    SKIP_THRESHOLD,
)
from bidding.llm.models import KeywordVerdict, KeywordVerdictBatch, decide
from bidding.llm.prompts import KEYWORD_EVALUATION_SYSTEM_PROMPT, build_evaluation_request
from bidding.resilience.retry import resilient_api_call

if TYPE_CHECKING:
    from bidding.audit.logger import AuditLogger
    from bidding.engine.collaborators import CatalogueRepository

logger = structlog.get_logger()

ARCHIVE_REASON = "ai_quality_skip"


@resilient_api_call("anthropic")
def request_verdicts(
    client: Anthropic,
    batch: Sequence[CandidateKeyword],
    sites: dict[str, SiteConfig],
    *,
    model: str = EVALUATION_MODEL,
) -> list[KeywordVerdict]:
    """Ask Claude for one verdict per keyword in *batch*.

    Raises:
        RuntimeError: If the structured output is missing.
    """
    response = client.messages.parse(
        model=model,
        max_tokens=MAX_TOKENS,
        system=KEYWORD_EVALUATION_SYSTEM_PROMPT,
        messages=[
            {"role": "user", "content": build_evaluation_request(batch, sites)},
        ],
        output_format=KeywordVerdictBatch,
    )

    parsed = response.parsed_output
    if parsed is None:
        msg = "Anthropic structured output returned None"
        raise RuntimeError(msg)
    return list(parsed.verdicts)


class AnthropicKeywordEvaluator:
    """``KeywordEvaluator`` backed by Claude.

    Args:
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        catalogue: Catalogue that stores verdicts and archives SKIP keywords.
        model: Anthropic model id.
        batch_size: Keywords per request.
        max_batches: Request cap per run.
        audit: Optional audit logger for archived keywords.
        cooldown: Keywords evaluated more recently than this are skipped.
        clock: Returns the current time (UTC).
    """

    def __init__(
        self,
        client: Anthropic,
        catalogue: CatalogueRepository,
        *,
        model: str = EVALUATION_MODEL,
        batch_size: int = BATCH_SIZE,
        max_batches: int = MAX_BATCHES,
        audit: AuditLogger | None = None,
        cooldown: timedelta = timedelta(hours=EVAL_COOLDOWN_HOURS),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._catalogue = catalogue
        self._model = model
        self._batch_size = batch_size
        self._max_batches = max_batches
        self._audit = audit
        self._cooldown = cooldown
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def _is_due(self, keyword: CandidateKeyword, cutoff: datetime) -> bool:
        last = keyword.evaluation
        return last is None or last.evaluated_at < cutoff

    def evaluate(
        self,
        keywords: Sequence[CandidateKeyword],
        sites: Sequence[SiteConfig],
    ) -> EvaluationSummary:
        """Evaluate *keywords* and archive the ones judged SKIP."""
        site_map = {s.id: s for s in sites}
        now = self._clock()
        cutoff = now - self._cooldown
        due = [kw for kw in keywords if self._is_due(kw, cutoff)]
        skipped_recent = len(keywords) - len(due)
        if skipped_recent:
            logger.info("keyword_evaluation_cooldown", skipped=skipped_recent, due=len(due))
        limit = self._batch_size * self._max_batches
        pool = due[:limit]

        counts = dict.fromkeys(EvaluationDecision, 0)
        archived = 0

        for start in range(0, len(pool), self._batch_size):
            batch = pool[start : start + self._batch_size]
            batch_no = start // self._batch_size + 1
            try:
                verdicts = request_verdicts(self._client, batch, site_map, model=self._model)
            except Exception as exc:
                logger.warning("keyword_evaluation_batch_failed", batch=batch_no, error=str(exc))
                continue

            to_archive: list[CandidateKeyword] = []
            for verdict in verdicts:
                if not 1 <= verdict.id <= len(batch):
                    continue
                kw = batch[verdict.id - 1]
                decision = decide(verdict.score, BID_THRESHOLD, SKIP_THRESHOLD)
                counts[decision] += 1
                logger.debug(
                    "keyword_evaluated",
                    keyword=kw.keyword,
                    score=verdict.score,
                    decision=decision.value,
                )
                self._save_evaluation(
                    kw,
                    KeywordEvaluation(
                        score=verdict.score,
                        decision=decision,
                        reasoning=verdict.reasoning,
                        evaluated_at=now,
                    ),
                )
                if decision == EvaluationDecision.SKIP:
                    to_archive.append(kw)

            if to_archive:
                try:
                    archived += self._catalogue.archive_keywords(
                        [kw.id for kw in to_archive], ARCHIVE_REASON
                    )
                except Exception as exc:
                    logger.warning(
                        "keyword_archive_failed", keywords=len(to_archive), error=str(exc)
                    )
                    continue
                if self._audit is not None:
                    for kw in to_archive:
                        self._audit.log_keyword_archived(
                            kw.keyword, ARCHIVE_REASON, keyword_id=kw.id
                        )

        summary = EvaluationSummary(
            total_evaluated=sum(counts.values()),
            bid_count=counts[EvaluationDecision.BID],
            review_count=counts[EvaluationDecision.REVIEW],
            skip_count=counts[EvaluationDecision.SKIP],
            archived_count=archived,
            skipped_recent=skipped_recent,
        )
        logger.info("keyword_evaluation_complete", **summary.model_dump())
        return summary

    def _save_evaluation(self, keyword: CandidateKeyword, evaluation: KeywordEvaluation) -> None:
        try:
            self._catalogue.save_keyword_evaluation(keyword.id, evaluation)
        except Exception as exc:
            logger.warning("keyword_evaluation_save_failed", keyword_id=keyword.id, error=str(exc))
