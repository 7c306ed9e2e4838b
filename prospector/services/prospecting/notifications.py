"""Delivery of job-finished alerts to the requesting agent."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
from loguru import logger

from prospector.services.prospecting.models import JobStatus, SearchJob


class NotificationDispatcher(ABC):
    """Delivers one alert per terminal job transition.

    Implementations may raise on delivery failure; the lifecycle manager logs
    the error and leaves the job untouched.
    """

    @abstractmethod
    async def notify(self, agent_id: str, job_id: int, summary: str) -> None: ...


class LogNotificationDispatcher(NotificationDispatcher):
    """Writes alerts to the log. Used when no push gateway is configured."""

    async def notify(self, agent_id: str, job_id: int, summary: str) -> None:
        logger.info(f"[Notify] agent={agent_id} job=#{job_id}: {summary}")


class WebhookNotificationDispatcher(NotificationDispatcher):
    """POSTs alerts to a push gateway as JSON."""

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def notify(self, agent_id: str, job_id: int, summary: str) -> None:
        payload = {"agentId": agent_id, "jobId": job_id, "summary": summary}
        if self._client is not None:
            resp = await self._client.post(self.url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=payload)
        resp.raise_for_status()


def build_summary(job: SearchJob) -> str:
    """One-line, user-facing description of a finished job."""
    if job.status == JobStatus.COMPLETED:
        found = len(job.results or [])
        noun = "prospect" if found == 1 else "prospects"
        summary = f"Found {found} new {noun} near {job.location}"
        if job.duplicates_skipped:
            summary += f" ({job.duplicates_skipped} already in your pipeline)"
        return summary
    return f"Your prospect search near {job.location} failed: {job.error_message}"


def build_dispatcher(webhook_url: Optional[str], timeout: float = 10.0) -> NotificationDispatcher:
    if webhook_url:
        return WebhookNotificationDispatcher(webhook_url, timeout=timeout)
    return LogNotificationDispatcher()
