"""Pydantic models for structured keyword-evaluation output."""

from pydantic import BaseModel, Field, field_validator

from bidding.domain.types import EvaluationDecision


def _clamp_percent(v: object) -> object:
    if isinstance(v, (int, float)):
        return max(0, min(100, int(round(v))))
    return v


class KeywordSignals(BaseModel):
    """Per-dimension sub-scores behind a keyword verdict (each 0-100)."""

    relevance: int = Field(
        default=0, description="How relevant the keyword is to the site's niche (0-100)"
    )
    commercial_intent: int = Field(
        default=0, description="Likelihood that the searcher books (0-100)"
    )
    competition_viability: int = Field(
        default=0, description="Whether a small marketplace can compete at this CPC (0-100)"
    )
    landing_page_fit: int = Field(
        default=0, description="Whether the assigned site has matching content (0-100)"
    )

    @field_validator("*", mode="before")
    @classmethod
    def clamp_scores(cls, v: object) -> object:
        """Clamp sub-scores into 0-100."""
        return _clamp_percent(v)


class KeywordVerdict(BaseModel):
    """The model's verdict on one numbered keyword of the batch."""

    id: int = Field(description="1-based line number of the keyword in the batch")
    score: int = Field(description="Overall bidding worthiness (0-100)")
    reasoning: str = Field(default="", description="Short reason, under 30 words")
    signals: KeywordSignals = Field(default_factory=KeywordSignals)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: object) -> object:
        """Clamp the overall score into 0-100."""
        return _clamp_percent(v)


class KeywordVerdictBatch(BaseModel):
    """Structured output for one evaluation request."""

    verdicts: list[KeywordVerdict] = Field(
        default_factory=list,
        description="One verdict per keyword line",
    )


def decide(score: int, bid_threshold: int, skip_threshold: int) -> EvaluationDecision:
    """Map a 0-100 score to BID / REVIEW / SKIP."""
    if score >= bid_threshold:
        return EvaluationDecision.BID
    if score < skip_threshold:
        return EvaluationDecision.SKIP
    return EvaluationDecision.REVIEW
