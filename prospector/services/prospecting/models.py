"""Pydantic models for the prospecting service."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class SearchParams(BaseModel):
    """Parameters for a prospect search."""

    location: str
    categories: list[str]
    radius_miles: float = 10.0
    max_results: int = 25


class DiscoveredBusiness(BaseModel):
    """A business snapshot returned by a discovery provider.

    Snapshots are immutable and have no persistent id until claimed.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    category_code: Optional[str] = None
    mcc_code: Optional[str] = None
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    owner_name: Optional[str] = None
    hours: Optional[str] = None
    year_established: Optional[int] = None
    source: str = "unknown"


class SearchJob(BaseModel):
    """A tracked background discovery request."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: str
    org_id: Optional[int] = None
    location: str
    categories: list[str]
    radius_miles: float
    max_results: int
    status: JobStatus
    progress: int = 0
    results: Optional[list[DiscoveredBusiness]] = None
    total_found: Optional[int] = None
    duplicates_skipped: Optional[int] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    worker_id: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def params(self) -> SearchParams:
        return SearchParams(
            location=self.location,
            categories=self.categories,
            radius_miles=self.radius_miles,
            max_results=self.max_results,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class ClaimedProspect(BaseModel):
    """A discovered business converted into an agent-owned pipeline record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: str
    org_id: Optional[int] = None
    normalized_name: str
    zip_prefix: str
    business_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    category_code: Optional[str] = None
    mcc_code: Optional[str] = None
    confidence: Optional[float] = None
    pipeline_stage: str = "discovered"
    claimed_at: datetime


class DedupResult(BaseModel):
    """Provider results left after removing businesses already in the pipeline."""

    businesses: list[DiscoveredBusiness] = []
    duplicates_skipped: int = 0


class JobStatusView(BaseModel):
    """What a polling client needs: the job and when to ask again."""

    job: SearchJob
    poll_after_seconds: Optional[int] = None
