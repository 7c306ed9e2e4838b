"""Background search workers.

A worker claims one pending job at a time, runs the discovery provider under
a timeout, removes businesses already claimed in the agent's scope and
records the outcome through the lifecycle manager. Workers never write job
state themselves.
"""

import asyncio
import os
import socket
from typing import Optional

from loguru import logger

from prospector.core.logging import agent_id_var, job_id_var, log_execution_time, worker_id_var
from prospector.services.prospecting.arbitrator import ClaimArbitrator
from prospector.services.prospecting.exceptions import (
    InvalidJobStateError,
    JobNotFoundError,
    ProviderError,
    ProviderTimeoutError,
)
from prospector.services.prospecting.lifecycle import JobLifecycleManager
from prospector.services.prospecting.models import DiscoveredBusiness, SearchJob, SearchParams
from prospector.services.prospecting.sources.base import DiscoveryProvider, ProgressCallback

# Job progress checkpoints
PROGRESS_STARTED = 10
PROGRESS_DISCOVERY_DONE = 80
PROGRESS_DEDUPED = 90


def default_worker_id(index: int = 0) -> str:
    return f"{socket.gethostname()}-{os.getpid()}-{index}"


class SearchWorker:
    def __init__(
        self,
        worker_id: str,
        lifecycle: JobLifecycleManager,
        arbitrator: ClaimArbitrator,
        provider: DiscoveryProvider,
        provider_timeout_seconds: float = 120.0,
    ):
        self.worker_id = worker_id
        self.lifecycle = lifecycle
        self.arbitrator = arbitrator
        self.provider = provider
        self.provider_timeout_seconds = provider_timeout_seconds

    async def run_once(self) -> Optional[SearchJob]:
        """Claim and process the next pending job. Returns None when the queue is empty."""
        job = await self.lifecycle.claim_next_pending(self.worker_id)
        if job is None:
            return None
        await self.process(job)
        return job

    @log_execution_time
    async def process(self, job: SearchJob) -> None:
        agent_token = agent_id_var.set(job.agent_id)
        job_token = job_id_var.set(job.id)
        worker_token = worker_id_var.set(self.worker_id)
        try:
            await self._run(job)
        except (JobNotFoundError, InvalidJobStateError) as e:
            # Deleted or swept while we were working on it
            logger.warning(f"Discarding work on search job #{job.id}: {e}")
        finally:
            job_id_var.reset(job_token)
            worker_id_var.reset(worker_token)
            agent_id_var.reset(agent_token)

    async def _run(self, job: SearchJob) -> None:
        params = job.params
        await self.lifecycle.record_progress(job.id, PROGRESS_STARTED)

        async def on_progress(percent: int) -> None:
            span = PROGRESS_DISCOVERY_DONE - PROGRESS_STARTED
            clamped = max(0, min(100, percent))
            await self.lifecycle.record_progress(
                job.id, PROGRESS_STARTED + span * clamped // 100
            )

        try:
            found = await self._discover(params, on_progress)
        except ProviderError as e:
            await self.lifecycle.fail(job.id, str(e))
            return
        except (JobNotFoundError, InvalidJobStateError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error from {self.provider.name} provider for job #{job.id}")
            await self.lifecycle.fail(job.id, f"Discovery failed: {type(e).__name__}")
            return

        await self.lifecycle.record_progress(job.id, PROGRESS_DEDUPED)
        deduped = await self.arbitrator.prefilter(found, job.agent_id, job.org_id)
        results = deduped.businesses[: params.max_results]

        await self.lifecycle.complete(
            job.id,
            results,
            total_found=len(found),
            duplicates_skipped=deduped.duplicates_skipped,
        )

    async def _discover(
        self, params: SearchParams, on_progress: ProgressCallback
    ) -> list[DiscoveredBusiness]:
        try:
            return await asyncio.wait_for(
                self.provider.discover(params, on_progress=on_progress),
                timeout=self.provider_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(
                f"Discovery timed out after {self.provider_timeout_seconds:g} seconds - please retry"
            ) from None


class SearchWorkerPool:
    """A fixed set of worker loops plus a periodic stuck-job sweep."""

    def __init__(
        self,
        lifecycle: JobLifecycleManager,
        arbitrator: ClaimArbitrator,
        provider: DiscoveryProvider,
        concurrency: int = 2,
        poll_interval_seconds: float = 2.0,
        sweep_interval_seconds: float = 60.0,
        provider_timeout_seconds: float = 120.0,
    ):
        self.lifecycle = lifecycle
        self.poll_interval_seconds = poll_interval_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.workers = [
            SearchWorker(
                worker_id=default_worker_id(i),
                lifecycle=lifecycle,
                arbitrator=arbitrator,
                provider=provider,
                provider_timeout_seconds=provider_timeout_seconds,
            )
            for i in range(concurrency)
        ]
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._tasks = [
            asyncio.create_task(self._worker_loop(w), name=f"search-worker-{w.worker_id}")
            for w in self.workers
        ]
        self._tasks.append(asyncio.create_task(self._sweep_loop(), name="search-recovery-sweep"))
        logger.info(f"Started {len(self.workers)} search workers")

    async def stop(self, grace_seconds: float = 10.0) -> None:
        """Stop polling, give in-flight jobs a grace period, then cancel.

        Jobs cancelled mid-flight stay in processing until the next sweep
        fails them.
        """
        if not self._tasks:
            return
        self._stopping.set()
        _, pending = await asyncio.wait(self._tasks, timeout=grace_seconds)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info("Search workers stopped")

    async def drain(self) -> int:
        """Process pending jobs until the queue is empty. Returns the number processed."""
        processed = 0
        while True:
            jobs = await asyncio.gather(*[w.run_once() for w in self.workers])
            done = [j for j in jobs if j is not None]
            if not done:
                return processed
            processed += len(done)

    async def _worker_loop(self, worker: SearchWorker) -> None:
        while not self._stopping.is_set():
            try:
                job = await worker.run_once()
            except Exception:
                logger.exception(f"Worker {worker.worker_id} failed while polling; backing off")
                job = None
            if job is None:
                await self._sleep(self.poll_interval_seconds)

    async def _sweep_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.lifecycle.recover_stuck_jobs()
            except Exception:
                logger.exception("Stuck-job recovery sweep failed")
            await self._sleep(self.sweep_interval_seconds)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
