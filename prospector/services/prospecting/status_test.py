"""Unit tests for the read-only status service."""

import pytest

from prospector.services.prospecting.exceptions import JobNotFoundError
from prospector.services.prospecting.lifecycle import JobLifecycleManager
from prospector.services.prospecting.models import SearchParams
from prospector.services.prospecting.status import StatusService


@pytest.fixture
def status(patched_repo):
    return StatusService(poll_interval_seconds=3)


@pytest.fixture
def manager(patched_repo, dispatcher):
    return JobLifecycleManager(dispatcher=dispatcher)


def _params(location="46268"):
    return SearchParams(location=location, categories=["restaurant"])


@pytest.mark.unit
class TestStatusService:
    @pytest.mark.asyncio
    async def test_get_job(self, status, manager):
        job = await manager.submit("agent-1", _params())
        assert (await status.get_job(job.id)).id == job.id

    @pytest.mark.asyncio
    async def test_get_missing_job(self, status):
        with pytest.raises(JobNotFoundError):
            await status.get_job(5)

    @pytest.mark.asyncio
    async def test_poll_hint_only_while_active(self, status, manager):
        job = await manager.submit("agent-1", _params())
        assert (await status.get_job_view(job.id)).poll_after_seconds == 3

        await manager.claim_next_pending("worker-1")
        assert (await status.get_job_view(job.id)).poll_after_seconds == 3

        await manager.complete(job.id, [])
        view = await status.get_job_view(job.id)
        assert view.poll_after_seconds is None
        assert view.job.progress == 100

    @pytest.mark.asyncio
    async def test_list_jobs_newest_first(self, status, manager):
        first = await manager.submit("agent-1", _params("46268"))
        second = await manager.submit("agent-1", _params("46032"))
        await manager.submit("agent-2", _params())

        jobs = await status.list_jobs("agent-1")

        assert [j.id for j in jobs] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_active_jobs_for_org(self, status, manager):
        done = await manager.submit("agent-1", _params(), org_id=7)
        waiting = await manager.submit("agent-2", _params(), org_id=7)
        await manager.submit("agent-3", _params(), org_id=8)
        await manager.submit("agent-4", _params())

        claimed = await manager.claim_next_pending("worker-1")
        assert claimed.id == done.id
        await manager.complete(done.id, [])

        active = await status.get_active_jobs(7)

        assert [j.id for j in active] == [waiting.id]
