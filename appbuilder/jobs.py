"""In-memory build job tracking.

Prototype builds run as detached tasks; clients poll the job record for
progress. Status only ever moves forward:
``queued -> building -> complete | error``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    QUEUED = "queued"
    BUILDING = "building"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)


_STATUS_RANK = {
    JobStatus.QUEUED: 0,
    JobStatus.BUILDING: 1,
    JobStatus.COMPLETE: 2,
    JobStatus.ERROR: 2,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    prototype_url: str
    build_time: float = Field(..., description="Seconds from start to completion")


class BuildJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "Initializing..."
    result: Optional[JobResult] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    can_retry: Optional[bool] = None
    created_at: datetime = Field(default_factory=_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobQueue:
    """Dictionary of :class:`BuildJob` records keyed by job id.

    Updates addressed to unknown jobs are ignored. Once a job is terminal its
    status never changes again.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, BuildJob] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    # -- internal --------------------------------------------------------

    def _advance(self, job_id: str, status: JobStatus) -> Optional[BuildJob]:
        job = self._jobs.get(job_id)
        if job is None:
            logger.debug("Ignoring update for unknown job %s", job_id)
            return None
        if job.status.is_terminal or _STATUS_RANK[status] < _STATUS_RANK[job.status]:
            logger.debug("Job %s is %s; refusing move to %s", job_id, job.status.value, status.value)
            return None
        job.status = status
        return job

    # -- public ----------------------------------------------------------

    def create_job(self, job_id: str) -> BuildJob:
        job = BuildJob(job_id=job_id)
        self._jobs[job_id] = job
        return job

    def start_job(self, job_id: str) -> None:
        job = self._advance(job_id, JobStatus.BUILDING)
        if job is not None:
            job.started_at = _now()
            job.progress = 5
            job.current_step = "Starting build..."

    def update_progress(self, job_id: str, progress: int, current_step: str) -> None:
        """Record progress; a no-op for unknown or finished jobs."""
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            return
        job.progress = max(0, min(100, int(progress)))
        job.current_step = current_step

    def complete_job(self, job_id: str, prototype_url: str, build_time: float) -> None:
        job = self._advance(job_id, JobStatus.COMPLETE)
        if job is not None:
            job.progress = 100
            job.current_step = "Complete!"
            job.completed_at = _now()
            job.result = JobResult(prototype_url=prototype_url, build_time=build_time)

    def fail_job(
        self,
        job_id: str,
        error: str,
        error_code: Optional[str] = None,
        can_retry: bool = True,
    ) -> None:
        job = self._advance(job_id, JobStatus.ERROR)
        if job is not None:
            job.current_step = "Failed"
            job.completed_at = _now()
            job.error = error
            job.error_code = error_code
            job.can_retry = can_retry

    def get_job(self, job_id: str) -> Optional[BuildJob]:
        return self._jobs.get(job_id)

    def all_jobs(self) -> list[BuildJob]:
        return list(self._jobs.values())

    def clear_old_jobs(self, max_age_minutes: int = 60, now: Optional[datetime] = None) -> int:
        """Drop finished jobs whose completion is older than *max_age_minutes*.

        Returns the number of jobs removed.
        """
        cutoff = (now or _now()) - timedelta(minutes=max_age_minutes)
        stale = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status.is_terminal and (job.completed_at or job.created_at) < cutoff
        ]
        for job_id in stale:
            del self._jobs[job_id]
        if stale:
            logger.info("Cleared %d old jobs", len(stale))
        return len(stale)


job_queue = JobQueue()
