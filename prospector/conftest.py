"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from asyncpg.exceptions import UniqueViolationError

from prospector.services.prospecting.identity import business_identity, scope_key
from prospector.services.prospecting.models import (
    ClaimedProspect,
    DiscoveredBusiness,
    JobStatus,
    SearchJob,
    SearchParams,
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--online",
        action="store_true",
        default=False,
        help="Run tests that call real discovery providers (needs API keys)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "online: mark test as requiring external connectivity"
    )
    config.addinivalue_line("markers", "unit: fast tests with no external services")


def pytest_collection_modifyitems(config, items):
    """Skip online tests if --online flag is not provided."""
    if config.getoption("--online"):
        return

    skip_online = pytest.mark.skip(reason="need --online option to run")
    for item in items:
        if "online" in item.keywords:
            item.add_marker(skip_online)


class InMemoryStore:
    """Stand-in for the repo module with the same conditional-update semantics.

    Each operation checks and writes without awaiting in between, so on a
    single event loop it is as atomic as the SQL statements it mirrors.
    Every call yields to the loop first so concurrent callers interleave.
    """

    def __init__(self):
        self.jobs: dict[int, SearchJob] = {}
        self.claims: dict[int, ClaimedProspect] = {}
        self._claim_keys: dict[tuple[str, str, str], int] = {}
        self._next_job_id = 1
        self._next_claim_id = 1

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _update(self, job_id: int, **changes) -> SearchJob:
        job = self.jobs[job_id].model_copy(update={**changes, "updated_at": self._now()})
        self.jobs[job_id] = job
        return job

    def age(self, job_id: int, seconds: float) -> None:
        """Pretend the job was last touched ``seconds`` ago."""
        job = self.jobs[job_id]
        self.jobs[job_id] = job.model_copy(
            update={"updated_at": self._now() - timedelta(seconds=seconds)}
        )

    async def insert_search_job(
        self, agent_id: str, org_id: Optional[int], params: SearchParams
    ) -> SearchJob:
        await asyncio.sleep(0)
        job = SearchJob(
            id=self._next_job_id,
            agent_id=agent_id,
            org_id=org_id,
            location=params.location,
            categories=params.categories,
            radius_miles=params.radius_miles,
            max_results=params.max_results,
            status=JobStatus.PENDING,
            created_at=self._now(),
            updated_at=self._now(),
        )
        self._next_job_id += 1
        self.jobs[job.id] = job
        return job

    async def get_search_job(self, job_id: int) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        return self.jobs.get(job_id)

    async def list_search_jobs_for_agent(self, agent_id: str) -> list[SearchJob]:
        await asyncio.sleep(0)
        jobs = [j for j in self.jobs.values() if j.agent_id == agent_id]
        return sorted(jobs, key=lambda j: (j.created_at, j.id), reverse=True)

    async def list_active_search_jobs_for_org(self, org_id: int) -> list[SearchJob]:
        await asyncio.sleep(0)
        jobs = [
            j
            for j in self.jobs.values()
            if j.org_id == org_id and not j.is_terminal
        ]
        return sorted(jobs, key=lambda j: (j.created_at, j.id), reverse=True)

    async def claim_next_pending_job(self, worker_id: str) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        pending = [j for j in self.jobs.values() if j.status == JobStatus.PENDING]
        if not pending:
            return None
        job = min(pending, key=lambda j: (j.created_at, j.id))
        return self._update(
            job.id,
            status=JobStatus.PROCESSING,
            progress=0,
            worker_id=worker_id,
            started_at=self._now(),
        )

    async def update_search_job_progress(self, job_id: int, progress: int) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.PROCESSING or job.progress > progress:
            return None
        return self._update(job_id, progress=progress)

    async def complete_search_job(
        self,
        job_id: int,
        results: list[DiscoveredBusiness],
        total_found: int,
        duplicates_skipped: int,
    ) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.PROCESSING:
            return None
        return self._update(
            job_id,
            status=JobStatus.COMPLETED,
            progress=100,
            results=list(results),
            total_found=total_found,
            duplicates_skipped=duplicates_skipped,
            completed_at=self._now(),
        )

    async def fail_search_job(self, job_id: int, error_message: str) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.PROCESSING:
            return None
        return self._update(
            job_id,
            status=JobStatus.FAILED,
            error_message=error_message,
            completed_at=self._now(),
        )

    async def retry_search_job(self, job_id: int, max_attempts: int) -> Optional[SearchJob]:
        await asyncio.sleep(0)
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.FAILED or job.retry_count + 1 >= max_attempts:
            return None
        return self._update(
            job_id,
            status=JobStatus.PENDING,
            progress=0,
            retry_count=job.retry_count + 1,
            error_message=None,
            worker_id=None,
            started_at=None,
            completed_at=None,
        )

    async def delete_search_job(self, job_id: int) -> bool:
        await asyncio.sleep(0)
        return self.jobs.pop(job_id, None) is not None

    async def fail_stale_processing_jobs(
        self, timeout_seconds: float, error_message: str
    ) -> list[SearchJob]:
        await asyncio.sleep(0)
        cutoff = self._now() - timedelta(seconds=timeout_seconds)
        stale = [
            j.id
            for j in self.jobs.values()
            if j.status == JobStatus.PROCESSING and j.updated_at < cutoff
        ]
        return [
            self._update(
                job_id,
                status=JobStatus.FAILED,
                error_message=error_message,
                completed_at=self._now(),
            )
            for job_id in stale
        ]

    async def insert_claimed_prospect(
        self, business: DiscoveredBusiness, agent_id: str, org_id: Optional[int]
    ) -> ClaimedProspect:
        await asyncio.sleep(0)
        normalized_name, zip5 = business_identity(business)
        key = (scope_key(agent_id, org_id), normalized_name, zip5)
        if key in self._claim_keys:
            raise UniqueViolationError(
                'duplicate key value violates unique constraint "claimed_prospects_identity_key"'
            )
        claim = ClaimedProspect(
            id=self._next_claim_id,
            agent_id=agent_id,
            org_id=org_id,
            normalized_name=normalized_name,
            zip_prefix=zip5,
            business_name=business.name,
            address=business.address,
            city=business.city,
            state=business.state,
            zip_code=business.zip_code,
            phone=business.phone,
            website=business.website,
            email=business.email,
            category_code=business.category_code,
            mcc_code=business.mcc_code,
            confidence=business.confidence,
            claimed_at=self._now(),
        )
        self._next_claim_id += 1
        self._claim_keys[key] = claim.id
        self.claims[claim.id] = claim
        return claim

    async def get_claimed_prospect(self, claim_id: int) -> Optional[ClaimedProspect]:
        await asyncio.sleep(0)
        return self.claims.get(claim_id)

    async def list_claim_identities(self, scope: str) -> set[tuple[str, str]]:
        await asyncio.sleep(0)
        return {(name, zip5) for (s, name, zip5) in self._claim_keys if s == scope}


class RecordingDispatcher:
    """Notification dispatcher that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, int, str]] = []
        self.fail = fail

    async def notify(self, agent_id: str, job_id: int, summary: str) -> None:
        self.sent.append((agent_id, job_id, summary))
        if self.fail:
            raise RuntimeError("push gateway unavailable")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)


@pytest.fixture
def patched_repo(store, monkeypatch):
    """Route every service module's repo calls to the in-memory store."""
    for module in ("lifecycle", "arbitrator", "status"):
        monkeypatch.setattr(f"prospector.services.prospecting.{module}.repo", store)
    return store


@pytest.fixture
def business():
    return DiscoveredBusiness(
        name="Pike Auto Care",
        address="5200 W 71st St",
        city="Indianapolis",
        state="IN",
        zip_code="46268",
        phone="(317) 555-0100",
        category_code="auto_repair",
        mcc_code="7538",
        confidence=0.9,
        source="test",
    )
