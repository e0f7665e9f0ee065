"""Background re-categorization jobs.

Category changes submit a sweep here instead of running it inline, so the
admin request returns immediately. A single worker task drains the queue;
each job gets its own database session. Failures are recorded on the job
record, which the API exposes for polling.
"""
import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from txncat.categorization.engine import Categorizer
from txncat.config import settings
from txncat.schemas.internal import RecategorizationResult
from txncat.services.categorization import CategorizationService
from txncat.services.locks import TransactionLocks, transaction_locks

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RecategorizationJob(BaseModel):
    """State of one submitted sweep."""

    id: UUID = Field(default_factory=uuid4)
    status: JobStatus = JobStatus.PENDING
    reason: str | None = Field(None, description="What triggered the sweep")
    force_main_category_id: UUID | None = None
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: RecategorizationResult | None = None
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


class RecategorizationQueue:
    """FIFO of sweep jobs processed one at a time by a worker task."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        categorizer: Categorizer,
        locks: TransactionLocks | None = None,
        history: int | None = None,
    ):
        self._session_factory = session_factory
        self._categorizer = categorizer
        self._locks = locks or transaction_locks
        self._history = history or settings.recategorize_job_history
        self._queue: asyncio.Queue[UUID] = asyncio.Queue()
        self._jobs: OrderedDict[UUID, RecategorizationJob] = OrderedDict()
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker task. Must be called from a running event loop."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="recategorization-worker")
        logger.info("Re-categorization worker started")

    async def stop(self) -> None:
        """Cancel the worker. Pending jobs stay pending."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Re-categorization worker stopped")

    def submit(
        self, reason: str | None = None, force_main_category_id: UUID | None = None
    ) -> RecategorizationJob:
        """Queue a sweep and return its job record."""
        job = RecategorizationJob(reason=reason, force_main_category_id=force_main_category_id)
        self._jobs[job.id] = job
        self._queue.put_nowait(job.id)
        self._trim_history()
        logger.info(
            "Re-categorization job submitted",
            extra={"job_id": str(job.id), "reason": reason},
        )
        return job

    def get_job(self, job_id: UUID) -> RecategorizationJob | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[RecategorizationJob]:
        return list(reversed(self._jobs.values()))

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self.run_job(job_id)
            finally:
                self._queue.task_done()

    async def run_job(self, job_id: UUID) -> RecategorizationJob | None:
        """Execute one job in a fresh session and record the outcome."""
        job = self._jobs.get(job_id)
        if job is None:
            return None

        job = self._update(job, status=JobStatus.RUNNING, started_at=_now())
        try:
            async with self._session_factory() as session:
                service = CategorizationService(session, self._categorizer, self._locks)
                await service.reload_categories()
                result = await service.reclassify_all(job.force_main_category_id)
        except Exception as e:
            if settings.debug:
                logger.exception(
                    "Re-categorization job failed",
                    extra={"job_id": str(job_id), "error_type": type(e).__name__},
                )
            else:
                logger.error(
                    "Re-categorization job failed",
                    extra={"job_id": str(job_id), "error_type": type(e).__name__},
                )
            return self._update(
                job, status=JobStatus.FAILED, finished_at=_now(), error=str(e) or type(e).__name__
            )

        logger.info(
            "Re-categorization job completed",
            extra={"job_id": str(job_id), **result.model_dump()},
        )
        return self._update(job, status=JobStatus.COMPLETED, finished_at=_now(), result=result)

    def _update(self, job: RecategorizationJob, **changes) -> RecategorizationJob:
        job = job.model_copy(update=changes)
        if job.id in self._jobs:
            self._jobs[job.id] = job
        return job

    def _trim_history(self) -> None:
        while len(self._jobs) > self._history:
            oldest = next(
                (job_id for job_id, job in self._jobs.items() if job.is_finished), None
            )
            if oldest is None:
                break
            del self._jobs[oldest]


def _now() -> datetime:
    return datetime.now(timezone.utc)
