"""Read-only views of search jobs for polling clients."""

from loguru import logger

from prospector.services.prospecting import repo
from prospector.services.prospecting.exceptions import JobNotFoundError
from prospector.services.prospecting.models import JobStatusView, SearchJob


class StatusService:
    """Never modifies job state."""

    def __init__(self, poll_interval_seconds: int = 3):
        self.poll_interval_seconds = poll_interval_seconds

    async def get_job(self, job_id: int) -> SearchJob:
        job = await repo.get_search_job(job_id=job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    async def get_job_view(self, job_id: int) -> JobStatusView:
        """The job plus a hint for when to poll again; no hint once terminal."""
        job = await self.get_job(job_id)
        poll_after = None if job.is_terminal else self.poll_interval_seconds
        return JobStatusView(job=job, poll_after_seconds=poll_after)

    async def list_jobs(self, agent_id: str) -> list[SearchJob]:
        """All of an agent's jobs, newest first."""
        jobs = await repo.list_search_jobs_for_agent(agent_id=agent_id)
        logger.debug(f"Agent {agent_id} has {len(jobs)} search jobs")
        return jobs

    async def get_active_jobs(self, org_id: int) -> list[SearchJob]:
        """Pending and processing jobs across an organization."""
        return await repo.list_active_search_jobs_for_org(org_id=org_id)
