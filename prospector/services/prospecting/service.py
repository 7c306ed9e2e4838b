"""Prospecting service: the façade the API, CLI and flows talk to."""

from abc import ABC, abstractmethod
from typing import Optional

from prospector.services.prospecting.arbitrator import ClaimArbitrator
from prospector.services.prospecting.categories import BUILTIN_CATEGORIES
from prospector.services.prospecting.lifecycle import JobLifecycleManager
from prospector.services.prospecting.models import (
    ClaimedProspect,
    DiscoveredBusiness,
    JobStatusView,
    SearchJob,
    SearchParams,
)
from prospector.services.prospecting.notifications import (
    NotificationDispatcher,
    build_dispatcher,
)
from prospector.services.prospecting.sources import build_provider
from prospector.services.prospecting.sources.base import DiscoveryProvider
from prospector.services.prospecting.status import StatusService
from prospector.services.prospecting.worker import SearchWorkerPool


class IService(ABC):
    """Interface for the prospecting service."""

    @abstractmethod
    async def submit_search(
        self, agent_id: str, params: SearchParams, org_id: Optional[int] = None
    ) -> int: ...

    @abstractmethod
    async def get_job(self, job_id: int) -> JobStatusView: ...

    @abstractmethod
    async def list_jobs(self, agent_id: str) -> list[SearchJob]: ...

    @abstractmethod
    async def get_active_jobs(self, org_id: int) -> list[SearchJob]: ...

    @abstractmethod
    async def retry_job(self, job_id: int) -> SearchJob: ...

    @abstractmethod
    async def delete_job(self, job_id: int) -> None: ...

    @abstractmethod
    async def claim_prospect(
        self, business: DiscoveredBusiness, agent_id: str, org_id: Optional[int] = None
    ) -> ClaimedProspect: ...

    @abstractmethod
    async def get_claim(self, claim_id: int) -> ClaimedProspect: ...


class Service(IService):
    """Prospecting service: submit searches, poll them, claim results."""

    def __init__(
        self,
        lifecycle: JobLifecycleManager,
        status: StatusService,
        arbitrator: ClaimArbitrator,
    ):
        self.lifecycle = lifecycle
        self.status = status
        self.arbitrator = arbitrator

    @classmethod
    def from_settings(
        cls, settings, dispatcher: Optional[NotificationDispatcher] = None
    ) -> "Service":
        dispatcher = dispatcher or build_dispatcher(
            settings.notification_webhook_url, timeout=settings.notification_timeout_seconds
        )
        return cls(
            lifecycle=JobLifecycleManager(
                dispatcher=dispatcher,
                max_attempts=settings.job_max_attempts,
                processing_timeout_seconds=settings.job_processing_timeout_seconds,
            ),
            status=StatusService(poll_interval_seconds=settings.poll_interval_seconds),
            arbitrator=ClaimArbitrator(),
        )

    def build_worker_pool(
        self,
        settings,
        provider: Optional[DiscoveryProvider] = None,
        concurrency: Optional[int] = None,
    ) -> SearchWorkerPool:
        return SearchWorkerPool(
            lifecycle=self.lifecycle,
            arbitrator=self.arbitrator,
            provider=provider or build_provider(settings),
            concurrency=concurrency or settings.worker_concurrency,
            poll_interval_seconds=settings.worker_poll_interval_seconds,
            sweep_interval_seconds=settings.recovery_sweep_interval_seconds,
            provider_timeout_seconds=settings.provider_timeout_seconds,
        )

    def list_categories(self) -> dict[str, dict]:
        return BUILTIN_CATEGORIES

    async def submit_search(
        self, agent_id: str, params: SearchParams, org_id: Optional[int] = None
    ) -> int:
        """Queue a search and return its job id immediately."""
        job = await self.lifecycle.submit(agent_id, params, org_id=org_id)
        return job.id

    async def get_job(self, job_id: int) -> JobStatusView:
        return await self.status.get_job_view(job_id)

    async def list_jobs(self, agent_id: str) -> list[SearchJob]:
        return await self.status.list_jobs(agent_id)

    async def get_active_jobs(self, org_id: int) -> list[SearchJob]:
        return await self.status.get_active_jobs(org_id)

    async def retry_job(self, job_id: int) -> SearchJob:
        return await self.lifecycle.retry(job_id)

    async def delete_job(self, job_id: int) -> None:
        await self.lifecycle.delete(job_id)

    async def recover_stuck_jobs(self) -> list[SearchJob]:
        return await self.lifecycle.recover_stuck_jobs()

    async def claim_prospect(
        self, business: DiscoveredBusiness, agent_id: str, org_id: Optional[int] = None
    ) -> ClaimedProspect:
        return await self.arbitrator.claim(business, agent_id, org_id)

    async def get_claim(self, claim_id: int) -> ClaimedProspect:
        return await self.arbitrator.get_claim(claim_id)
