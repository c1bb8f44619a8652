"""Domain types, models, and errors for the bidding engine."""

from bidding.domain.errors import (
    AssignmentAmbiguousError,
    BiddingError,
    CatalogueUnavailableError,
    CollaboratorFailureError,
    InventoryValidationError,
    MissingProfileError,
    UnviableCandidateError,
    ValidationExhaustedError,
)
from bidding.domain.models import (
    AttributionParams,
    BookingAggregate,
    CampaignCandidate,
    CampaignGroup,
    CandidateKeyword,
    CollectionEntry,
    DataQuality,
    DiscoveryConfig,
    KeywordEvaluation,
    LandingPageTarget,
    MicrositeConfig,
    PageEntry,
    SiteConfig,
    SiteProfile,
    TrafficAggregate,
)
from bidding.domain.types import (
    PLATFORM_UTM_SOURCES,
    AdPlatform,
    KeywordIntent,
    KeywordStatus,
    LandingPageType,
    MicrositeEntityType,
    PageKind,
    SiteType,
    TargetKind,
    ValidationReason,
)

__all__ = [
    "PLATFORM_UTM_SOURCES",
    "AdPlatform",
    "AssignmentAmbiguousError",
    "AttributionParams",
    "BiddingError",
    "BookingAggregate",
    "CampaignCandidate",
    "CampaignGroup",
    "CandidateKeyword",
    "CatalogueUnavailableError",
    "CollaboratorFailureError",
    "CollectionEntry",
    "DataQuality",
    "DiscoveryConfig",
    "KeywordEvaluation",
    "InventoryValidationError",
    "KeywordIntent",
    "KeywordStatus",
    "LandingPageTarget",
    "LandingPageType",
    "MicrositeConfig",
    "MicrositeEntityType",
    "MissingProfileError",
    "PageEntry",
    "PageKind",
    "SiteConfig",
    "SiteProfile",
    "SiteType",
    "TargetKind",
    "TrafficAggregate",
    "UnviableCandidateError",
    "ValidationExhaustedError",
    "ValidationReason",
]
