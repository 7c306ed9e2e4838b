from .prospecting import (
    BusinessPayload,
    CategoryResponse,
    ClaimedProspectResponse,
    ClaimRequest,
    ErrorResponse,
    SearchJobResponse,
    SubmitSearchRequest,
    SubmitSearchResponse,
)

__all__ = [
    "BusinessPayload",
    "CategoryResponse",
    "ClaimedProspectResponse",
    "ClaimRequest",
    "ErrorResponse",
    "SearchJobResponse",
    "SubmitSearchRequest",
    "SubmitSearchResponse",
]
