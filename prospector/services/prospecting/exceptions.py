"""Custom exceptions for the prospecting service."""


class ProspectingError(Exception):
    """Base exception for all prospecting-related errors."""


class SearchValidationError(ProspectingError):
    """Raised when search parameters are rejected at submit time."""


class ProviderError(ProspectingError):
    """Raised when the discovery lookup fails or returns malformed data."""


class ProviderTimeoutError(ProviderError):
    """Raised when the discovery lookup does not finish within its timeout."""


class JobNotFoundError(ProspectingError):
    """Raised when a search job id does not exist."""

    def __init__(self, job_id: int):
        super().__init__(f"Search job {job_id} not found")
        self.job_id = job_id


class ClaimNotFoundError(ProspectingError):
    """Raised when a claimed prospect id does not exist."""

    def __init__(self, claim_id: int):
        super().__init__(f"Claimed prospect {claim_id} not found")
        self.claim_id = claim_id


class InvalidJobStateError(ProspectingError):
    """Raised when a transition is attempted from a state that does not allow it."""


class RetryExhaustedError(ProspectingError):
    """Raised when a failed job has used all of its attempts."""

    def __init__(self, job_id: int, attempts: int):
        super().__init__(
            f"Search job {job_id} has used all {attempts} attempts and cannot be retried"
        )
        self.job_id = job_id
        self.attempts = attempts


class AlreadyClaimedError(ProspectingError):
    """Raised when another agent already claimed the same business.

    Carries the business identity only, never the claiming agent.
    """

    def __init__(self, business_name: str, zip_prefix: str):
        super().__init__(f"{business_name} has already been claimed by another agent")
        self.business_name = business_name
        self.zip_prefix = zip_prefix
