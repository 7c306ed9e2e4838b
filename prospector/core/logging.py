"""
Structured logging module using Loguru
"""

from loguru import logger
from contextvars import ContextVar
from typing import Optional
from functools import wraps
import time

# Context variables for job tracking
agent_id_var: ContextVar[Optional[str]] = ContextVar("agent_id", default=None)
job_id_var: ContextVar[Optional[int]] = ContextVar("job_id", default=None)
worker_id_var: ContextVar[Optional[str]] = ContextVar("worker_id", default=None)


class StructuredLogger:
    """Wrapper for structured logging with context"""

    @staticmethod
    def bind(**kwargs) -> logger:
        """Bind the current job context plus any extra fields."""
        context = {
            "agent_id": agent_id_var.get(),
            "job_id": job_id_var.get(),
            "worker_id": worker_id_var.get(),
            **kwargs,
        }
        context = {k: v for k, v in context.items() if v is not None}
        return logger.bind(**context)

    @staticmethod
    def info(message: str, **kwargs):
        StructuredLogger.bind(**kwargs).info(message)

    @staticmethod
    def warning(message: str, **kwargs):
        StructuredLogger.bind(**kwargs).warning(message)

    @staticmethod
    def error(message: str, **kwargs):
        StructuredLogger.bind(**kwargs).error(message)

    @staticmethod
    def exception(message: str, **kwargs):
        StructuredLogger.bind(**kwargs).exception(message)


def log_execution_time(func):
    """Log how long an async job step took and whether it raised."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            StructuredLogger.error(
                f"{func.__name__} failed",
                duration=round(time.monotonic() - start, 3),
                error=str(e),
            )
            raise
        StructuredLogger.info(
            f"{func.__name__} finished",
            duration=round(time.monotonic() - start, 3),
        )
        return result

    return wrapper


structured_logger = StructuredLogger()
__all__ = [
    "logger",
    "structured_logger",
    "log_execution_time",
    "agent_id_var",
    "job_id_var",
    "worker_id_var",
]
