"""Repository tests against a real PostgreSQL (needs Docker).

Run with:
    pytest tests/integration -m integration
"""

import asyncio

import pytest
from asyncpg.exceptions import UniqueViolationError
from faker import Faker

from prospector.services.prospecting import repo
from prospector.services.prospecting.identity import normalize_name
from prospector.services.prospecting.models import (
    DiscoveredBusiness,
    JobStatus,
    SearchParams,
)

fake = Faker()

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


def _params():
    return SearchParams(location=fake.zipcode(), categories=["auto_repair"], radius_miles=10, max_results=25)


class TestSearchJobsIntegration:
    async def test_insert_and_get(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=7, params=_params())

        fetched = await repo.get_search_job(job.id)

        assert fetched.status == JobStatus.PENDING
        assert fetched.categories == ["auto_repair"]
        assert fetched.org_id == 7

    async def test_concurrent_claims_take_distinct_jobs(self, test_db):
        for _ in range(3):
            await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())

        claimed = await asyncio.gather(
            *[repo.claim_next_pending_job(worker_id=f"w{i}") for i in range(8)]
        )

        winners = [j for j in claimed if j is not None]
        assert len(winners) == 3
        assert len({j.id for j in winners}) == 3

    async def test_progress_is_monotonic(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())
        assert await repo.update_search_job_progress(job.id, 10) is None

        await repo.claim_next_pending_job(worker_id="w1")
        assert (await repo.update_search_job_progress(job.id, 40)).progress == 40
        assert await repo.update_search_job_progress(job.id, 20) is None

    async def test_complete_then_fail_is_rejected(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())
        await repo.claim_next_pending_job(worker_id="w1")

        done = await repo.complete_search_job(
            job.id, [DiscoveredBusiness(name=fake.company())], total_found=1, duplicates_skipped=0
        )

        assert done.status == JobStatus.COMPLETED
        assert len(done.results) == 1
        assert await repo.fail_search_job(job.id, "late") is None

    async def test_retry_cap(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())

        for _ in range(2):
            await repo.claim_next_pending_job(worker_id="w1")
            await repo.fail_search_job(job.id, "boom")
            assert (await repo.retry_search_job(job.id, max_attempts=3)) is not None

        await repo.claim_next_pending_job(worker_id="w1")
        await repo.fail_search_job(job.id, "boom")
        assert await repo.retry_search_job(job.id, max_attempts=3) is None

    async def test_stale_sweep(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())
        await repo.claim_next_pending_job(worker_id="w1")
        async with test_db.acquire() as conn:
            await conn.execute(
                "UPDATE search_jobs SET updated_at = now() - interval '1 hour' WHERE id = $1", job.id
            )

        swept = await repo.fail_stale_processing_jobs(timeout_seconds=300, error_message="stuck")

        assert [j.id for j in swept] == [job.id]
        assert swept[0].error_message == "stuck"

    async def test_delete(self, test_db):
        job = await repo.insert_search_job(agent_id="agent-1", org_id=None, params=_params())
        assert await repo.delete_search_job(job.id) is True
        assert await repo.get_search_job(job.id) is None


class TestClaimedProspectsIntegration:
    async def test_unique_identity_per_scope(self, test_db):
        name = fake.company()
        business = DiscoveredBusiness(name=name, zip_code="46268")

        results = await asyncio.gather(
            *[repo.insert_claimed_prospect(business, agent_id=f"agent-{i}", org_id=7) for i in range(5)],
            return_exceptions=True,
        )

        assert len([r for r in results if not isinstance(r, Exception)]) == 1
        assert all(isinstance(r, UniqueViolationError) for r in results if isinstance(r, Exception))
        assert await repo.list_claim_identities("org:7") == {(normalize_name(name), "46268")}

        # A different org may claim the same business
        await repo.insert_claimed_prospect(business, agent_id="agent-x", org_id=8)
