"""Job lifecycle manager. The only writer of search job state.

State machine::

    pending -> processing -> completed
                          -> failed -> pending (explicit retry, attempts left)

Transitions are conditional updates in the store, so a caller that loses a
race (sweep vs. worker, delete vs. complete) gets an error instead of
overwriting someone else's transition. Terminal transitions notify the agent
exactly once, from whichever caller won the update.
"""

import re
from typing import Optional

from loguru import logger

from prospector.services.prospecting import repo
from prospector.services.prospecting.categories import BUILTIN_CATEGORIES
from prospector.services.prospecting.exceptions import (
    InvalidJobStateError,
    JobNotFoundError,
    RetryExhaustedError,
    SearchValidationError,
)
from prospector.services.prospecting.models import (
    DiscoveredBusiness,
    JobStatus,
    SearchJob,
    SearchParams,
)
from prospector.services.prospecting.notifications import (
    NotificationDispatcher,
    build_summary,
)

MIN_RADIUS_MILES = 1.0
MAX_RADIUS_MILES = 50.0
MIN_RESULTS = 1
MAX_RESULTS = 100
MAX_LOCATION_LENGTH = 200
MAX_ERROR_MESSAGE_LENGTH = 500

STUCK_JOB_MESSAGE = "Search timed out or the worker stopped - please retry"

_TRACEBACK_RE = re.compile(r"Traceback \(most recent call last\):.*", re.DOTALL)


def validate_search_params(params: SearchParams) -> SearchParams:
    """Check bounds and return a cleaned copy (trimmed location, unique categories)."""
    location = (params.location or "").strip()
    if not location:
        raise SearchValidationError("Location is required")
    if len(location) > MAX_LOCATION_LENGTH:
        raise SearchValidationError(
            f"Location must be at most {MAX_LOCATION_LENGTH} characters"
        )

    categories = list(dict.fromkeys(c.strip() for c in params.categories if c and c.strip()))
    if not categories:
        raise SearchValidationError("At least one business category is required")
    unknown = [c for c in categories if c not in BUILTIN_CATEGORIES]
    if unknown:
        raise SearchValidationError(
            f"Unknown categories {unknown}. "
            f"Available: {sorted(BUILTIN_CATEGORIES.keys())}"
        )

    if not MIN_RADIUS_MILES <= params.radius_miles <= MAX_RADIUS_MILES:
        raise SearchValidationError(
            f"Radius must be between {MIN_RADIUS_MILES:g} and {MAX_RADIUS_MILES:g} miles"
        )
    if not MIN_RESULTS <= params.max_results <= MAX_RESULTS:
        raise SearchValidationError(
            f"Max results must be between {MIN_RESULTS} and {MAX_RESULTS}"
        )

    return SearchParams(
        location=location,
        categories=categories,
        radius_miles=params.radius_miles,
        max_results=params.max_results,
    )


def sanitize_error_message(message: str) -> str:
    """Strip stack traces and collapse whitespace so the message is safe to show."""
    text = _TRACEBACK_RE.sub("", message or "")
    text = " ".join(text.split())
    if not text:
        text = "Discovery failed - please retry"
    if len(text) > MAX_ERROR_MESSAGE_LENGTH:
        text = text[: MAX_ERROR_MESSAGE_LENGTH - 3].rstrip() + "..."
    return text


class JobLifecycleManager:
    """Creates search jobs and moves them through their states."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        max_attempts: int = 3,
        processing_timeout_seconds: float = 300,
    ):
        self.dispatcher = dispatcher
        self.max_attempts = max_attempts
        self.processing_timeout_seconds = processing_timeout_seconds

    async def submit(
        self, agent_id: str, params: SearchParams, org_id: Optional[int] = None
    ) -> SearchJob:
        """Validate and persist a pending job. Never waits on discovery."""
        if not agent_id:
            raise SearchValidationError("Agent id is required")
        cleaned = validate_search_params(params)
        job = await repo.insert_search_job(agent_id=agent_id, org_id=org_id, params=cleaned)
        logger.info(
            f"Submitted search job #{job.id} for agent {agent_id}: "
            f"{cleaned.categories} within {cleaned.radius_miles:g}mi of {cleaned.location}"
        )
        return job

    async def claim_next_pending(self, worker_id: str) -> Optional[SearchJob]:
        """Move the oldest pending job to processing for this worker, if any."""
        job = await repo.claim_next_pending_job(worker_id=worker_id)
        if job:
            logger.info(f"Worker {worker_id} picked up search job #{job.id}")
        return job

    async def record_progress(self, job_id: int, percent: int) -> SearchJob:
        if not 0 <= percent <= 100:
            raise InvalidJobStateError(f"Progress must be between 0 and 100, got {percent}")

        job = await repo.update_search_job_progress(job_id=job_id, progress=percent)
        if job:
            return job

        current = await self._get_or_raise(job_id)
        if current.status != JobStatus.PROCESSING:
            raise InvalidJobStateError(
                f"Cannot record progress on job #{job_id} while it is {current.status.value}"
            )
        raise InvalidJobStateError(
            f"Progress for job #{job_id} cannot go from {current.progress} back to {percent}"
        )

    async def complete(
        self,
        job_id: int,
        results: list[DiscoveredBusiness],
        total_found: Optional[int] = None,
        duplicates_skipped: int = 0,
    ) -> SearchJob:
        job = await repo.complete_search_job(
            job_id=job_id,
            results=results,
            total_found=total_found if total_found is not None else len(results),
            duplicates_skipped=duplicates_skipped,
        )
        if not job:
            await self._raise_transition_error(job_id, "complete")

        logger.info(
            f"Search job #{job_id} completed: {len(results)} results, "
            f"{duplicates_skipped} duplicates skipped"
        )
        await self._notify(job)
        return job

    async def fail(self, job_id: int, message: str) -> SearchJob:
        error_message = sanitize_error_message(message)
        job = await repo.fail_search_job(job_id=job_id, error_message=error_message)
        if not job:
            await self._raise_transition_error(job_id, "fail")

        logger.warning(f"Search job #{job_id} failed: {error_message}")
        await self._notify(job)
        return job

    async def retry(self, job_id: int) -> SearchJob:
        job = await repo.retry_search_job(job_id=job_id, max_attempts=self.max_attempts)
        if job:
            logger.info(
                f"Search job #{job_id} re-queued "
                f"(attempt {job.retry_count + 1} of {self.max_attempts})"
            )
            return job

        current = await self._get_or_raise(job_id)
        if current.status != JobStatus.FAILED:
            raise InvalidJobStateError(
                f"Only failed jobs can be retried; job #{job_id} is {current.status.value}"
            )
        raise RetryExhaustedError(job_id, self.max_attempts)

    async def delete(self, job_id: int) -> None:
        """Remove a job and its results. Claimed prospects are unaffected."""
        if not await repo.delete_search_job(job_id=job_id):
            raise JobNotFoundError(job_id)
        logger.info(f"Deleted search job #{job_id}")

    async def recover_stuck_jobs(self) -> list[SearchJob]:
        """Fail processing jobs nobody has touched within the processing timeout."""
        stuck = await repo.fail_stale_processing_jobs(
            timeout_seconds=self.processing_timeout_seconds,
            error_message=STUCK_JOB_MESSAGE,
        )
        if stuck:
            logger.warning(
                f"Recovered {len(stuck)} stuck search jobs: {[j.id for j in stuck]}"
            )
        for job in stuck:
            await self._notify(job)
        return stuck

    async def _get_or_raise(self, job_id: int) -> SearchJob:
        job = await repo.get_search_job(job_id=job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    async def _raise_transition_error(self, job_id: int, action: str) -> None:
        current = await self._get_or_raise(job_id)
        raise InvalidJobStateError(
            f"Cannot {action} job #{job_id} while it is {current.status.value}"
        )

    async def _notify(self, job: SearchJob) -> None:
        try:
            await self.dispatcher.notify(job.agent_id, job.id, build_summary(job))
        except Exception:
            logger.exception(f"Failed to deliver notification for search job #{job.id}")
