"""
Job poller - waits for a workflow to write a terminal status into its job row
"""
import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from config import MAX_POLL_TIME, POLL_INTERVAL
from models.canonical import JobRecord
from services.job_store import JobStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Union[None, Awaitable[None]]]


@dataclass
class PollOutcome:
    """Terminal job record, or timed_out when none was seen in time"""
    job: Optional[JobRecord] = None
    timed_out: bool = False


class JobPoller:
    """
    Re-read a job row at a fixed interval until it is completed or failed.

    Read errors are logged and retried on the next tick. When max_duration
    elapses first, the outcome is timed_out; the workflow may still finish
    later and can be checked with a status lookup.
    """

    def __init__(
        self,
        store: JobStore,
        interval: float = POLL_INTERVAL,
        max_duration: float = MAX_POLL_TIME,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.interval = interval
        self.max_duration = max_duration
        self._sleep = sleep
        self._clock = clock
        self._callback_tasks = set()

    async def poll(self, job_id: str, on_progress: Optional[ProgressCallback] = None) -> PollOutcome:
        start = self._clock()
        reads = 0

        while self._clock() - start < self.max_duration:
            reads += 1
            try:
                job = await asyncio.to_thread(self.store.read, job_id)
            except Exception as e:
                logger.warning(f"Error polling job {job_id}: {e}")
                await self._sleep(self.interval)
                continue

            if job is None:
                logger.warning(f"Job {job_id} not visible yet")
            elif job.status.is_terminal:
                logger.info(f"Job {job_id} {job.status.value} after {reads} reads")
                return PollOutcome(job=job)
            elif on_progress is not None:
                self.notify(on_progress, job.status.value)

            await self._sleep(self.interval)

        logger.warning(f"Job {job_id} still open after {self.max_duration:.0f}s, giving up")
        return PollOutcome(timed_out=True)

    def notify(self, on_progress: ProgressCallback, status: str):
        """Run the progress callback without holding up the next read"""
        try:
            outcome = on_progress(status)
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._callback_tasks.add(task)
                task.add_done_callback(self._callback_done)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    def _callback_done(self, task: asyncio.Future):
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Progress callback failed: {task.exception()}")
