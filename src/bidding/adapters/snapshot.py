"""Catalogue backed by a YAML or JSON snapshot file.

A snapshot holds pre-aggregated data for one lookback window: sites,
microsites, booking and traffic aggregates, candidate keywords, published
pages, and collections.  Keyword and profile writes are applied in memory
and can be written back with :meth:`SnapshotCatalogue.save`.

Monetary values should be quoted strings in YAML; bare floats are converted
through ``str`` so that ``1.2`` becomes ``Decimal("1.2")``.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from bidding.domain.errors import CatalogueUnavailableError
from bidding.domain.models import (
    BookingAggregate,
    CandidateKeyword,
    CollectionEntry,
    KeywordEvaluation,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
    SiteProfile,
    TrafficAggregate,
)
from bidding.domain.types import KeywordStatus

logger = structlog.get_logger()

_MONEY_KEYS = frozenset(
    {"cpc", "avg_order_value", "avg_commission_rate", "catalogue_average_price"}
)


def _to_decimal_tree(value: Any) -> Any:
    """Convert float values under monetary keys to Decimal, recursively."""
    if isinstance(value, dict):
        return {
            k: Decimal(str(v)) if k in _MONEY_KEYS and isinstance(v, float) else _to_decimal_tree(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_to_decimal_tree(v) for v in value]
    return value


def read_snapshot_file(path: Path) -> dict[str, Any]:
    """Read a ``.yaml``/``.yml`` or ``.json`` snapshot into a dict.

    Raises:
        CatalogueUnavailableError: If the file is missing or unparseable.
    """
    if not path.exists():
        raise CatalogueUnavailableError(f"Snapshot not found: {path}")
    try:
        with path.open() as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise CatalogueUnavailableError(f"Snapshot unreadable: {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogueUnavailableError(f"Snapshot must be a mapping: {path}")
    return dict(_to_decimal_tree(data))


class SnapshotCatalogue:
    """In-memory ``CatalogueRepository`` built from a snapshot dict.

    The aggregates in a snapshot already cover one lookback window, so the
    ``since`` argument of the aggregate reads is accepted and ignored.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        try:
            self._sites = [SiteConfig.model_validate(s) for s in data.get("sites", [])]
            self._microsites = [
                MicrositeConfig.model_validate(m) for m in data.get("microsites", [])
            ]
            self._bookings = {
                k: BookingAggregate.model_validate(v) for k, v in data.get("bookings", {}).items()
            }
            self._portfolio = BookingAggregate.model_validate(data.get("portfolio_bookings", {}))
            self._traffic = {
                k: TrafficAggregate.model_validate(v) for k, v in data.get("traffic", {}).items()
            }
            self._keywords = {
                kw.id: kw
                for kw in (CandidateKeyword.model_validate(k) for k in data.get("keywords", []))
            }
            self._pages = [PageEntry.model_validate(p) for p in data.get("pages", [])]
            self._collections = [
                CollectionEntry.model_validate(c) for c in data.get("collections", [])
            ]
        except ValidationError as exc:
            msg = f"Invalid snapshot: {exc.error_count()} validation errors"
            raise CatalogueUnavailableError(msg) from exc

        avg_price = data.get("catalogue_average_price")
        self._avg_price = Decimal(str(avg_price)) if avg_price is not None else None
        self.profiles: dict[str, SiteProfile] = {}
        self.archive_reasons: dict[str, str] = {}

    @classmethod
    def from_file(cls, path: Path) -> SnapshotCatalogue:
        """Load a catalogue from a snapshot file.

        Raises:
            CatalogueUnavailableError: If the file is missing or invalid.
        """
        catalogue = cls(read_snapshot_file(path))
        logger.info(
            "snapshot_loaded",
            path=str(path),
            sites=len(catalogue._sites),
            microsites=len(catalogue._microsites),
            keywords=len(catalogue._keywords),
        )
        return catalogue

    # -- reads -------------------------------------------------------------

    def list_active_sites(self) -> list[SiteConfig]:
        return [s for s in self._sites if s.active]

    def list_active_microsites(self) -> list[MicrositeConfig]:
        return [m for m in self._microsites if m.active]

    def booking_aggregate(self, site_id: str, since: datetime) -> BookingAggregate:
        return self._bookings.get(site_id, BookingAggregate())

    def portfolio_booking_aggregate(self, since: datetime) -> BookingAggregate:
        return self._portfolio

    def traffic_aggregate(self, target_id: str, since: datetime) -> TrafficAggregate:
        return self._traffic.get(target_id, TrafficAggregate())

    def catalogue_average_price(self) -> Decimal | None:
        return self._avg_price

    def list_candidate_keywords(self) -> list[CandidateKeyword]:
        """Return PAID_CANDIDATE keywords, highest priority first."""
        pool = [k for k in self._keywords.values() if k.status == KeywordStatus.PAID_CANDIDATE]
        return sorted(pool, key=lambda k: k.priority_score, reverse=True)

    def list_published_pages(self, owner_ids: Sequence[str]) -> list[PageEntry]:
        wanted = set(owner_ids)
        return [p for p in self._pages if p.owner_id in wanted]

    def list_active_collections(self, owner_ids: Sequence[str]) -> list[CollectionEntry]:
        wanted = set(owner_ids)
        return [c for c in self._collections if c.owner_id in wanted]

    # -- writes ------------------------------------------------------------

    def save_profile(self, profile: SiteProfile) -> None:
        self.profiles[profile.target_id] = profile

    def archive_keywords(self, keyword_ids: Sequence[str], reason: str) -> int:
        archived = 0
        for keyword_id in keyword_ids:
            kw = self._keywords.get(keyword_id)
            if kw is None or kw.status == KeywordStatus.ARCHIVED:
                continue
            self._keywords[keyword_id] = kw.model_copy(update={"status": KeywordStatus.ARCHIVED})
            self.archive_reasons[keyword_id] = reason
            archived += 1
        return archived

    def assign_keyword(self, keyword_id: str, site_id: str) -> None:
        kw = self._keywords.get(keyword_id)
        if kw is not None:
            self._keywords[keyword_id] = kw.model_copy(update={"site_id": site_id})

    def save_keyword_evaluation(self, keyword_id: str, evaluation: KeywordEvaluation) -> None:
        kw = self._keywords.get(keyword_id)
        if kw is not None:
            self._keywords[keyword_id] = kw.model_copy(update={"evaluation": evaluation})

    def keyword(self, keyword_id: str) -> CandidateKeyword | None:
        """Return the current state of one keyword record."""
        return self._keywords.get(keyword_id)

    def save(self, path: Path) -> None:
        """Write the keyword and profile state back to a JSON file."""
        state = {
            "keywords": [k.model_dump(mode="json") for k in self._keywords.values()],
            "archive_reasons": self.archive_reasons,
            "profiles": [p.model_dump(mode="json") for p in self.profiles.values()],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(state, indent=2))
