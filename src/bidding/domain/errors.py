"""Domain-specific exception classes for the bidding engine.

Only ``CatalogueUnavailableError`` is run-fatal.  Every other error is
resolved where it is raised (skipped, accepted fail-open, routed to the
default site, or logged) and surfaces through the run summary and audit trail.
"""


class BiddingError(Exception):
    """Base class for all domain errors in the bidding engine."""


class MissingProfileError(BiddingError):
    """Raised when no profitability profile can be computed for a target.

    Attributes:
        target_id: The site or microsite id.
        reason: Why no profile is available.
    """

    def __init__(self, target_id: str, reason: str) -> None:
        self.target_id = target_id
        self.reason = reason
        super().__init__(f"No profile for '{target_id}': {reason}")


class UnviableCandidateError(BiddingError):
    """Raised when a keyword fails an economic gate.

    Attributes:
        keyword: The keyword text.
        reason: The gate that rejected it.
    """

    def __init__(self, keyword: str, reason: str) -> None:
        self.keyword = keyword
        self.reason = reason
        super().__init__(f"Keyword '{keyword}' is not viable: {reason}")


class InventoryValidationError(BiddingError):
    """Raised by an inventory checker when a product-count lookup fails."""


class ValidationExhaustedError(BiddingError):
    """Raised when the landing-page validator has spent its call budget.

    Attributes:
        budget: The configured call budget.
    """

    def __init__(self, budget: int) -> None:
        self.budget = budget
        super().__init__(f"Landing page validation budget of {budget} calls exhausted")


class AssignmentAmbiguousError(BiddingError):
    """Raised when no site scores high enough to own a keyword.

    Attributes:
        keyword: The keyword text.
        best_score: The highest score any site reached.
    """

    def __init__(self, keyword: str, best_score: int) -> None:
        self.keyword = keyword
        self.best_score = best_score
        super().__init__(f"No site scored >= 3 for '{keyword}' (best {best_score})")


class CollaboratorFailureError(BiddingError):
    """Raised when an optional collaborator (AI evaluation, deployment) fails.

    Attributes:
        collaborator: Name of the collaborator.
    """

    def __init__(self, collaborator: str, detail: str) -> None:
        self.collaborator = collaborator
        super().__init__(f"{collaborator} failed: {detail}")


class CatalogueUnavailableError(BiddingError):
    """Raised when the active-site catalogue cannot be read.  Run-fatal."""
