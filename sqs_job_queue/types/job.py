"""
Job-related type definitions for the worker.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel


class JobPayload(BaseModel):
    """
    Job payload structure.
    Submitted as the message payload and dispatched by job_type.
    """

    job_type: str
    data: dict[str, Any] = {}
    metadata: dict[str, Any] | None = None


class JobResult(BaseModel):
    """
    Result of job execution.
    Returned by job handlers after processing.
    """

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None
    duration_ms: float | None = None


@dataclass
class JobContext:
    """
    Context passed to job handlers during execution.
    Contains delivery metadata and the raw payload.
    """

    handle: str
    queue_name: str
    attempt: int
    max_attempts: int
    payload: Any
    worker_id: str
    reserved_at: datetime
    visibility_timeout: int

    @property
    def is_last_attempt(self) -> bool:
        """Check if this is the last retry attempt."""
        return self.attempt >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining retry attempts."""
        return max(0, self.max_attempts - self.attempt)

    @property
    def visible_again_at(self) -> datetime:
        """When the message reappears unless finished or extended."""
        return self.reserved_at + timedelta(seconds=self.visibility_timeout)
