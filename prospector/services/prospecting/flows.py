"""Prefect flows for draining the search queue and recovering stuck jobs."""

from prefect import flow, task

from prospector.config import settings
from prospector.db.db import close_pool
from prospector.services.prospecting.service import Service


@task(log_prints=True)
async def recover_stuck_jobs_task() -> list[int]:
    svc = Service.from_settings(settings)
    recovered = await svc.recover_stuck_jobs()
    return [job.id for job in recovered]


@task(log_prints=True)
async def drain_pending_jobs_task(concurrency: int) -> int:
    """Run workers until no pending job is left."""
    svc = Service.from_settings(settings)
    pool = svc.build_worker_pool(settings, concurrency=concurrency)
    return await pool.drain()


@flow(name="prospect-search-drain", log_prints=True)
async def drain_search_queue_flow(concurrency: int | None = None) -> dict:
    """Sweep stuck jobs, then process every pending search job.

    Args:
        concurrency: Workers to run in parallel (defaults to WORKER_CONCURRENCY).
    """
    try:
        recovered = await recover_stuck_jobs_task()
        processed = await drain_pending_jobs_task(
            concurrency=concurrency or settings.worker_concurrency
        )
        return {"recovered": recovered, "processed": processed}
    finally:
        await close_pool()


@flow(name="prospect-search-recovery", log_prints=True)
async def recover_stuck_jobs_flow() -> list[int]:
    try:
        return await recover_stuck_jobs_task()
    finally:
        await close_pool()
