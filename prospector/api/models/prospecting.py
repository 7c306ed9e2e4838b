"""Pydantic models for the prospecting API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from prospector.services.prospecting.models import (
    ClaimedProspect,
    DiscoveredBusiness,
    JobStatusView,
    SearchJob,
)


class CategoryResponse(BaseModel):
    code: str
    name: str
    mcc_code: str = Field(..., alias="mccCode")
    search_terms: list[str] = Field(..., alias="searchTerms")

    model_config = {"populate_by_name": True, "by_alias": True}


class SubmitSearchRequest(BaseModel):
    """POST /api/prospecting/jobs request body."""

    agent_id: str = Field(..., alias="agentId", min_length=1)
    org_id: Optional[int] = Field(None, alias="orgId")
    location: str
    categories: list[str]
    radius_miles: float = Field(10.0, alias="radiusMiles")
    max_results: int = Field(25, alias="maxResults")

    model_config = {"populate_by_name": True}


class SubmitSearchResponse(BaseModel):
    job_id: int = Field(..., alias="jobId")

    model_config = {"populate_by_name": True, "by_alias": True}


class BusinessPayload(BaseModel):
    """A discovered business as clients see and send it."""

    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    category_code: Optional[str] = Field(None, alias="categoryCode")
    mcc_code: Optional[str] = Field(None, alias="mccCode")
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    owner_name: Optional[str] = Field(None, alias="ownerName")
    hours: Optional[str] = None
    year_established: Optional[int] = Field(None, alias="yearEstablished")
    source: str = "unknown"

    model_config = {"populate_by_name": True, "by_alias": True}

    @classmethod
    def from_business(cls, business: DiscoveredBusiness) -> "BusinessPayload":
        return cls.model_validate(business.model_dump())

    def to_business(self) -> DiscoveredBusiness:
        return DiscoveredBusiness.model_validate(self.model_dump(by_alias=False))


class SearchJobResponse(BaseModel):
    job_id: int = Field(..., alias="jobId")
    agent_id: str = Field(..., alias="agentId")
    org_id: Optional[int] = Field(None, alias="orgId")
    location: str
    categories: list[str]
    radius_miles: float = Field(..., alias="radiusMiles")
    max_results: int = Field(..., alias="maxResults")
    status: str
    progress: int
    results: Optional[list[BusinessPayload]] = None
    total_found: Optional[int] = Field(None, alias="totalFound")
    duplicates_skipped: Optional[int] = Field(None, alias="duplicatesSkipped")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    retry_count: int = Field(0, alias="retryCount")
    created_at: datetime = Field(..., alias="createdAt")
    started_at: Optional[datetime] = Field(None, alias="startedAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")
    poll_after_seconds: Optional[int] = Field(None, alias="pollAfterSeconds")

    model_config = {"populate_by_name": True, "by_alias": True}

    @classmethod
    def from_job(
        cls, job: SearchJob, poll_after_seconds: Optional[int] = None
    ) -> "SearchJobResponse":
        return cls(
            job_id=job.id,
            agent_id=job.agent_id,
            org_id=job.org_id,
            location=job.location,
            categories=job.categories,
            radius_miles=job.radius_miles,
            max_results=job.max_results,
            status=job.status.value,
            progress=job.progress,
            results=(
                [BusinessPayload.from_business(b) for b in job.results]
                if job.results is not None
                else None
            ),
            total_found=job.total_found,
            duplicates_skipped=job.duplicates_skipped,
            error_message=job.error_message,
            retry_count=job.retry_count,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            poll_after_seconds=poll_after_seconds,
        )

    @classmethod
    def from_view(cls, view: JobStatusView) -> "SearchJobResponse":
        return cls.from_job(view.job, poll_after_seconds=view.poll_after_seconds)


class ClaimRequest(BaseModel):
    """POST /api/prospecting/claims request body."""

    agent_id: str = Field(..., alias="agentId", min_length=1)
    org_id: Optional[int] = Field(None, alias="orgId")
    business: BusinessPayload

    model_config = {"populate_by_name": True}


class ClaimedProspectResponse(BaseModel):
    claim_id: int = Field(..., alias="claimId")
    agent_id: str = Field(..., alias="agentId")
    org_id: Optional[int] = Field(None, alias="orgId")
    business_name: str = Field(..., alias="businessName")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    category_code: Optional[str] = Field(None, alias="categoryCode")
    mcc_code: Optional[str] = Field(None, alias="mccCode")
    confidence: Optional[float] = None
    pipeline_stage: str = Field(..., alias="pipelineStage")
    claimed_at: datetime = Field(..., alias="claimedAt")

    model_config = {"populate_by_name": True, "by_alias": True}

    @classmethod
    def from_claim(cls, claim: ClaimedProspect) -> "ClaimedProspectResponse":
        return cls(
            claim_id=claim.id,
            agent_id=claim.agent_id,
            org_id=claim.org_id,
            business_name=claim.business_name,
            address=claim.address,
            city=claim.city,
            state=claim.state,
            zip_code=claim.zip_code,
            phone=claim.phone,
            website=claim.website,
            email=claim.email,
            category_code=claim.category_code,
            mcc_code=claim.mcc_code,
            confidence=claim.confidence,
            pipeline_stage=claim.pipeline_stage,
            claimed_at=claim.claimed_at,
        )


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    message: str
