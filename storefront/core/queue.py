# queue.py
import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class QueueSubmitError(Exception):
    """Raised when a job cannot be handed to the queue"""


class Job(Protocol):
    async def handle(self, context: Any) -> None: ...  # noqa: ANN401


@dataclass
class QueuedJob:
    job: Job
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempts: int = 0


class TaskQueue:
    """In-process job queue drained by a pool of asyncio workers.

    Delivery is at-least-once: a job whose handler raises is retried with
    exponential backoff until `retries` attempts are spent, then dropped with
    an error log entry.
    """

    def __init__(
        self,
        context: Any = None,  # noqa: ANN401
        workers: int = 1,
        maxsize: int = 0,
        retries: int = 3,
        backoff_base: float = 2,
    ) -> None:
        self.context = context
        self.workers = workers
        self.retries = retries
        self.backoff_base = backoff_base
        self._queue: asyncio.Queue[QueuedJob] = asyncio.Queue(maxsize=maxsize)
        self._worker_tasks: list[asyncio.Task] = []
        self._closed = False
        self.processed = 0
        self.failed = 0

    def submit(self, job: Job) -> str:
        """Enqueue a job and return its task id"""
        if self._closed:
            raise QueueSubmitError("Task queue is closed")

        queued = QueuedJob(job)
        try:
            self._queue.put_nowait(queued)
        except asyncio.QueueFull as e:
            raise QueueSubmitError(
                f"Task queue is full ({self._queue.maxsize} pending jobs)"
            ) from e

        logger.debug(f"Queued {type(job).__name__} as {queued.task_id}")
        return queued.task_id

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker pool if it isn't running"""
        if self._worker_tasks:
            return
        for n in range(self.workers):
            task = asyncio.create_task(self._worker_loop())
            task.set_name(f"queue-worker-{n}")
            self._worker_tasks.append(task)
        logger.info(f"Started {self.workers} queue worker(s)")

    async def join(self) -> None:
        """Wait until every queued job has been processed or dead-lettered"""
        await self._queue.join()

    async def close(self, drain: bool = True) -> None:
        """Stop accepting jobs and shut the workers down"""
        self._closed = True
        if drain and self._worker_tasks:
            await self.join()

        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks.clear()

    async def run_pending(self) -> int:
        """Process whatever is queued right now in the current task"""
        count = 0
        while not self._queue.empty():
            queued = self._queue.get_nowait()
            try:
                await self._process(queued)
            finally:
                self._queue.task_done()
            count += 1
        return count

    async def _worker_loop(self) -> None:
        try:
            while True:
                queued = await self._queue.get()
                try:
                    await self._process(queued)
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            logger.debug("Queue worker cancelled")
            raise

    async def _process(self, queued: QueuedJob) -> None:
        job_name = type(queued.job).__name__
        last_error: Optional[Exception] = None

        for attempt in range(self.retries):
            queued.attempts = attempt + 1
            try:
                await queued.job.handle(self.context)
                self.processed += 1
                logger.debug(f"{job_name} {queued.task_id} done")
                return
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt + 1} of {job_name} {queued.task_id} failed: {str(e)}"
                )
                if attempt < self.retries - 1:
                    await asyncio.sleep(self.backoff_base**attempt)

        self.failed += 1
        logger.error(
            f"Giving up on {job_name} {queued.task_id} after {self.retries} attempts: {str(last_error)}"
        )
