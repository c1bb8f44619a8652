"""Interfaces of the collaborators the engine depends on.

The core never talks to ad platforms, databases, or LLMs directly.  Concrete
adapters live in :mod:`bidding.adapters`; tests use mocks.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from bidding.domain.models import (
    BookingAggregate,
    CampaignGroup,
    CandidateKeyword,
    CollectionEntry,
    KeywordEvaluation,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
    SiteProfile,
    TrafficAggregate,
)


class InventoryResult(BaseModel):
    """Product-count answer for one landing page."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    product_count: int


class EvaluationSummary(BaseModel):
    """Counts returned by a keyword quality evaluation pass."""

    model_config = ConfigDict(frozen=True)

    total_evaluated: int = 0
    bid_count: int = 0
    review_count: int = 0
    skip_count: int = 0
    archived_count: int = 0
    skipped_recent: int = 0


class LandingPageKey(BaseModel):
    """Identifies a landing page for inventory checks and validator caching."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    domain: str
    path: str

    @property
    def cache_key(self) -> str:
        """Stable string used as the validator cache key."""
        return f"{self.owner_id}:{self.path}"


class CatalogueRepository(Protocol):
    """Read/write access to sites, bookings, analytics, keywords, and pages."""

    def list_active_sites(self) -> list[SiteConfig]: ...

    def list_active_microsites(self) -> list[MicrositeConfig]: ...

    def booking_aggregate(self, site_id: str, since: datetime) -> BookingAggregate: ...

    def portfolio_booking_aggregate(self, since: datetime) -> BookingAggregate: ...

    def traffic_aggregate(self, target_id: str, since: datetime) -> TrafficAggregate: ...

    def catalogue_average_price(self) -> Decimal | None: ...

    def save_profile(self, profile: SiteProfile) -> None: ...

    def list_candidate_keywords(self) -> list[CandidateKeyword]: ...

    def archive_keywords(self, keyword_ids: Sequence[str], reason: str) -> int: ...

    def assign_keyword(self, keyword_id: str, site_id: str) -> None: ...

    def save_keyword_evaluation(self, keyword_id: str, evaluation: KeywordEvaluation) -> None: ...

    def list_published_pages(self, owner_ids: Sequence[str]) -> list[PageEntry]: ...

    def list_active_collections(self, owner_ids: Sequence[str]) -> list[CollectionEntry]: ...


class InventoryChecker(Protocol):
    """Answers whether a landing page will show enough products."""

    def check(self, key: LandingPageKey) -> InventoryResult: ...


class KeywordEvaluator(Protocol):
    """Optional AI quality gate run once per engine run."""

    def evaluate(
        self,
        keywords: Sequence[CandidateKeyword],
        sites: Sequence[SiteConfig],
    ) -> EvaluationSummary: ...


class DeploymentSink(Protocol):
    """Consumes emitted campaign groups and creates/updates live campaigns."""

    def deploy(self, groups: Sequence[CampaignGroup]) -> None: ...
