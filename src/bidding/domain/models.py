"""Pydantic v2 models for the data the bidding engine reads and the decisions it emits."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bidding.domain.types import (
    AdPlatform,
    AovSource,
    CommissionSource,
    ConversionSource,
    EvaluationDecision,
    KeywordIntent,
    KeywordStatus,
    LandingPageType,
    MicrositeEntityType,
    PageKind,
    TargetKind,
    ValidationReason,
)


def _reject_float(v: object) -> object:
    if isinstance(v, float):
        raise ValueError("Use Decimal or string, not float, for monetary values")
    return v


# ---------------------------------------------------------------------------
# Catalogue inputs
# ---------------------------------------------------------------------------


class SiteConfig(BaseModel):
    """A main portfolio site and its keyword match profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    domain: str
    active: bool = True
    destinations: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    search_terms: list[str] = Field(default_factory=list)
    product_count: int | None = None


class DiscoveryConfig(BaseModel):
    """Seed configuration an opportunity microsite was built from."""

    model_config = ConfigDict(frozen=True)

    keyword: str | None = None
    destination: str | None = None
    search_terms: list[str] = Field(default_factory=list)


class MicrositeConfig(BaseModel):
    """A narrow microsite, built around a supplier, a niche opportunity, or one product."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    domain: str
    entity_type: MicrositeEntityType
    active: bool = True
    cached_product_count: int | None = None
    supplier_cities: list[str] = Field(default_factory=list)
    supplier_categories: list[str] = Field(default_factory=list)
    discovery: DiscoveryConfig | None = None

    @property
    def seed_keywords(self) -> list[str]:
        """Lower-cased seed keyword plus search terms of an opportunity microsite."""
        if self.discovery is None:
            return []
        seeds = [self.discovery.keyword, *self.discovery.search_terms]
        return [s.lower().strip() for s in seeds if s and s.strip()]


class PageEntry(BaseModel):
    """A published page belonging to a site or microsite."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    slug: str
    kind: PageKind
    title: str
    location_id: str | None = None
    category_id: str | None = None


class CollectionEntry(BaseModel):
    """An active curated collection on a microsite."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    slug: str
    name: str
    collection_type: str = "CURATED"
    seasonal_months: list[int] | None = None
    product_count: int = 0


class BookingAggregate(BaseModel):
    """Confirmed/completed bookings over the lookback window."""

    model_config = ConfigDict(frozen=True)

    booking_count: int = 0
    avg_order_value: Decimal | None = None
    commission_sample_size: int = 0
    avg_commission_rate: Decimal | None = None

    @field_validator("avg_order_value", "avg_commission_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        """Reject float inputs for monetary fields to prevent precision errors."""
        return _reject_float(v)


class TrafficAggregate(BaseModel):
    """Summed analytics snapshots over the lookback window."""

    model_config = ConfigDict(frozen=True)

    sessions: int = 0
    bookings: int = 0


# ---------------------------------------------------------------------------
# Profitability
# ---------------------------------------------------------------------------


class DataQuality(BaseModel):
    """Sample sizes and the fallback tier used for each profile metric."""

    model_config = ConfigDict(frozen=True)

    booking_sample_size: int
    session_sample_size: int
    aov_source: AovSource
    commission_source: CommissionSource
    conversion_source: ConversionSource


class SiteProfile(BaseModel):
    """Financial profile of a site or microsite, recomputed once per run.

    Uses Decimal for exact monetary arithmetic -- float inputs are rejected.
    """

    model_config = ConfigDict(frozen=True)

    target_id: str
    target_kind: TargetKind
    name: str
    avg_order_value: Decimal
    commission_rate: Decimal
    conversion_rate: Decimal
    revenue_per_click: Decimal
    max_profitable_cpc: Decimal
    target_roas: Decimal
    data_quality: DataQuality

    @field_validator(
        "avg_order_value",
        "commission_rate",
        "conversion_rate",
        "revenue_per_click",
        "max_profitable_cpc",
        "target_roas",
        mode="before",
    )
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        """Reject float inputs for monetary fields to prevent precision errors."""
        return _reject_float(v)

    @model_validator(mode="after")
    def metrics_must_be_in_range(self) -> "SiteProfile":
        """Ensure AOV is positive and the conversion rate lies in (0, 1]."""
        if self.avg_order_value <= 0:
            raise ValueError(f"avg_order_value must be positive, got {self.avg_order_value}")
        if not Decimal("0") < self.conversion_rate <= Decimal("1"):
            raise ValueError(f"conversion_rate must be in (0, 1], got {self.conversion_rate}")
        return self


# ---------------------------------------------------------------------------
# Keywords and landing pages
# ---------------------------------------------------------------------------


class KeywordEvaluation(BaseModel):
    """The last AI quality verdict stored on a keyword."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    decision: EvaluationDecision
    reasoning: str = ""
    evaluated_at: datetime

    @field_validator("evaluated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class CandidateKeyword(BaseModel):
    """A keyword judged worth evaluating for paid acquisition."""

    model_config = ConfigDict(frozen=True)

    id: str
    keyword: str
    search_volume: int = 0
    cpc: Decimal = Decimal("0")
    intent: KeywordIntent = KeywordIntent.COMMERCIAL
    location: str | None = None
    site_id: str | None = None
    priority_score: float = 0.0
    status: KeywordStatus = KeywordStatus.PAID_CANDIDATE
    evaluation: KeywordEvaluation | None = None

    @field_validator("cpc", mode="before")
    @classmethod
    def reject_float_cpc(cls, v: object) -> object:
        """Reject float inputs for CPC to prevent precision errors."""
        return _reject_float(v)

    @field_validator("keyword")
    @classmethod
    def keyword_must_not_be_empty(cls, v: str) -> str:
        """Ensure keyword text is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("keyword must not be empty")
        return v


class LandingPageTarget(BaseModel):
    """A resolved landing page for a keyword."""

    model_config = ConfigDict(frozen=True)

    url: str
    path: str
    type: LandingPageType
    validated: bool = False
    product_count: int | None = None
    validation_reason: ValidationReason | None = None


class AttributionParams(BaseModel):
    """UTM parameters appended to the landing page for one platform."""

    model_config = ConfigDict(frozen=True)

    source: str
    medium: str = "cpc"
    campaign: str
    content: str | None = None


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------


class CampaignCandidate(BaseModel):
    """One keyword scored for one platform; produced and consumed within a run."""

    model_config = ConfigDict(frozen=True)

    keyword_id: str
    keyword: str
    target_id: str
    target_kind: TargetKind
    target_name: str
    platform: AdPlatform
    estimated_cpc: Decimal
    max_bid: Decimal
    search_volume: int
    expected_daily_clicks: Decimal
    expected_daily_cost: Decimal
    expected_daily_revenue: Decimal
    score: int = Field(ge=0, le=100)
    intent: KeywordIntent
    location: str | None = None
    landing_page: LandingPageTarget
    attribution: AttributionParams
    microsite_match: bool = False


class CampaignGroup(BaseModel):
    """Deployable unit: candidates sharing one target, platform, and landing-page path."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    target_kind: TargetKind
    target_name: str
    platform: AdPlatform
    landing_page: LandingPageTarget
    candidates: list[CampaignCandidate]
    keywords: list[str]
    max_bid: Decimal
    total_expected_daily_cost: Decimal
    total_expected_daily_revenue: Decimal
    mean_score: float
    daily_budget: Decimal

    @model_validator(mode="after")
    def members_share_one_landing_page(self) -> "CampaignGroup":
        """Ensure every member shares this group's target, platform, and path."""
        if not self.candidates:
            raise ValueError("campaign group must have at least one candidate")
        for c in self.candidates:
            if (c.target_id, c.platform, c.landing_page.path) != (
                self.target_id,
                self.platform,
                self.landing_page.path,
            ):
                raise ValueError(
                    f"candidate '{c.keyword}' does not belong to group "
                    f"{self.target_id}/{self.platform}/{self.landing_page.path}"
                )
        return self
