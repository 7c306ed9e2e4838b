"""Prospecting API routes.

Searches run in the background: submitting returns a job id immediately and
clients poll the job until it reaches a terminal state.
"""

from fastapi import APIRouter, HTTPException, Query, Response

from prospector.api.models.prospecting import (
    CategoryResponse,
    ClaimedProspectResponse,
    ClaimRequest,
    ErrorResponse,
    SearchJobResponse,
    SubmitSearchRequest,
    SubmitSearchResponse,
)
from prospector.config import settings
from prospector.services.prospecting.exceptions import (
    AlreadyClaimedError,
    ClaimNotFoundError,
    InvalidJobStateError,
    JobNotFoundError,
    ProspectingError,
    RetryExhaustedError,
    SearchValidationError,
)
from prospector.services.prospecting.models import SearchParams
from prospector.services.prospecting.service import Service

router = APIRouter(prefix="/api/prospecting", tags=["prospecting"])

_ERROR_STATUS = [
    (SearchValidationError, 400, "VALIDATION_ERROR"),
    (JobNotFoundError, 404, "NOT_FOUND"),
    (ClaimNotFoundError, 404, "NOT_FOUND"),
    (RetryExhaustedError, 409, "RETRY_EXHAUSTED"),
    (AlreadyClaimedError, 409, "ALREADY_CLAIMED"),
    (InvalidJobStateError, 409, "INVALID_STATE"),
]


def _get_service() -> Service:
    return Service.from_settings(settings)


def _http_error(e: ProspectingError) -> HTTPException:
    for exc_type, status_code, code in _ERROR_STATUS:
        if isinstance(e, exc_type):
            return HTTPException(
                status_code=status_code, detail={"error": code, "message": str(e)}
            )
    return HTTPException(
        status_code=500, detail={"error": "INTERNAL_ERROR", "message": str(e)}
    )


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories():
    """List the business categories agents can search for."""
    svc = _get_service()
    return [
        CategoryResponse(
            code=code,
            name=entry["name"],
            mcc_code=entry["mcc_code"],
            search_terms=entry["search_terms"],
        )
        for code, entry in svc.list_categories().items()
    ]


# ---------------------------------------------------------------------------
# Search jobs
# ---------------------------------------------------------------------------


@router.post(
    "/jobs",
    response_model=SubmitSearchResponse,
    status_code=202,
    responses={400: {"model": ErrorResponse, "description": "Invalid search parameters"}},
)
async def submit_search(request: SubmitSearchRequest):
    """Queue a prospect search. Returns as soon as the job is persisted."""
    svc = _get_service()
    try:
        job_id = await svc.submit_search(
            agent_id=request.agent_id,
            org_id=request.org_id,
            params=SearchParams(
                location=request.location,
                categories=request.categories,
                radius_miles=request.radius_miles,
                max_results=request.max_results,
            ),
        )
    except ProspectingError as e:
        raise _http_error(e)
    return SubmitSearchResponse(job_id=job_id)


@router.get("/jobs", response_model=list[SearchJobResponse])
async def list_jobs(agent_id: str = Query(..., alias="agentId", min_length=1)):
    """An agent's search jobs, newest first."""
    svc = _get_service()
    jobs = await svc.list_jobs(agent_id)
    return [SearchJobResponse.from_job(job) for job in jobs]


@router.get("/jobs/active", response_model=list[SearchJobResponse])
async def list_active_jobs(org_id: int = Query(..., alias="orgId")):
    """Pending and processing jobs across an organization."""
    svc = _get_service()
    jobs = await svc.get_active_jobs(org_id)
    return [SearchJobResponse.from_job(job) for job in jobs]


@router.get(
    "/jobs/{job_id}",
    response_model=SearchJobResponse,
    responses={404: {"model": ErrorResponse, "description": "Not found"}},
)
async def get_job(job_id: int):
    svc = _get_service()
    try:
        view = await svc.get_job(job_id)
    except ProspectingError as e:
        raise _http_error(e)
    return SearchJobResponse.from_view(view)


@router.post(
    "/jobs/{job_id}/retry",
    response_model=SearchJobResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Not failed, or out of attempts"},
    },
)
async def retry_job(job_id: int):
    """Re-queue a failed job."""
    svc = _get_service()
    try:
        job = await svc.retry_job(job_id)
    except ProspectingError as e:
        raise _http_error(e)
    return SearchJobResponse.from_job(job, poll_after_seconds=settings.poll_interval_seconds)


@router.delete(
    "/jobs/{job_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse, "description": "Not found"}},
)
async def delete_job(job_id: int):
    svc = _get_service()
    try:
        await svc.delete_job(job_id)
    except ProspectingError as e:
        raise _http_error(e)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


@router.post(
    "/claims",
    response_model=ClaimedProspectResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid business"},
        409: {"model": ErrorResponse, "description": "Already claimed"},
    },
)
async def claim_prospect(request: ClaimRequest):
    """Add a discovered business to the agent's pipeline."""
    svc = _get_service()
    try:
        claim = await svc.claim_prospect(
            business=request.business.to_business(),
            agent_id=request.agent_id,
            org_id=request.org_id,
        )
    except ProspectingError as e:
        raise _http_error(e)
    return ClaimedProspectResponse.from_claim(claim)


@router.get(
    "/claims/{claim_id}",
    response_model=ClaimedProspectResponse,
    responses={404: {"model": ErrorResponse, "description": "Not found"}},
)
async def get_claim(claim_id: int):
    svc = _get_service()
    try:
        claim = await svc.get_claim(claim_id)
    except ProspectingError as e:
        raise _http_error(e)
    return ClaimedProspectResponse.from_claim(claim)
