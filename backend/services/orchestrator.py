"""
Analysis orchestrator - owns the lifecycle of one analysis job

    create (pending) -> processing -> trigger workflow -> poll -> completed | failed

Every outcome, including store and trigger failures, comes back as an
AnalysisResult; nothing is raised to the caller and nothing is retried.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from auth_middleware import AuthContext
from config import TIMEOUT_MESSAGE
from models.canonical import AnalysisResult, JobKind, JobRecord, JobStatus
from services.job_poller import JobPoller, ProgressCallback
from services.job_store import JobStore
from services.workflow_trigger import WorkflowTrigger

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Runs analyses on behalf of one authenticated user"""

    def __init__(
        self,
        auth: AuthContext,
        store: JobStore,
        trigger: Optional[WorkflowTrigger] = None,
        poller: Optional[JobPoller] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.auth = auth
        self.store = store
        self.trigger = trigger or WorkflowTrigger()
        self.poller = poller or JobPoller(store)
        self._clock = clock

    def _elapsed_ms(self, start: float) -> int:
        return max(0, int((self._clock() - start) * 1000))

    async def _mark(self, job_id: str, status: JobStatus, error: Optional[str] = None):
        """Write a status transition (plus error) to the job row"""
        updates: Dict[str, Any] = {"status": status.value}
        if error is not None:
            updates["error"] = error
        if status.is_terminal:
            updates["completed_at"] = datetime.now(timezone.utc)
        await asyncio.to_thread(self.store.update, job_id, updates)

    async def run_analysis(
        self,
        kind: JobKind,
        input: Dict[str, Any],
        on_progress: Optional[ProgressCallback] = None,
    ) -> AnalysisResult:
        start = self._clock()
        try:
            kind = JobKind(kind)
        except ValueError:
            return AnalysisResult(
                success=False,
                error=f"Unknown analysis type: {kind}",
                execution_time=self._elapsed_ms(start),
            )

        if not self.auth or not self.auth.user_id:
            return AnalysisResult(success=False, error="Not authenticated", execution_time=self._elapsed_ms(start))

        # 1. Create job row
        try:
            job_id = await asyncio.to_thread(self.store.create, kind, input, self.auth.user_id)
        except Exception as e:
            logger.error(f"Could not create {kind.value} job for {self.auth.email}: {e}")
            return AnalysisResult(
                success=False,
                error=str(e) or "Failed to create job",
                execution_time=self._elapsed_ms(start),
            )

        # 2. Processing
        try:
            await self._mark(job_id, JobStatus.PROCESSING)
        except Exception as e:
            logger.error(f"Could not mark job {job_id} processing: {e}")
            return AnalysisResult(success=False, error=str(e), execution_time=self._elapsed_ms(start), job_id=job_id)

        # 3. Trigger workflow with the job id
        triggered = await self.trigger.trigger(kind, {"job_id": job_id, **input})
        if not triggered.success:
            try:
                await self._mark(job_id, JobStatus.FAILED, error=triggered.error)
            except Exception as e:
                logger.warning(f"Could not record trigger failure on job {job_id}: {e}")
            return AnalysisResult(
                success=False,
                error=triggered.error,
                execution_time=self._elapsed_ms(start),
                job_id=job_id,
            )

        # 4. Poll for completion
        if on_progress is not None:
            self.poller.notify(on_progress, JobStatus.PROCESSING.value)

        outcome = await self.poller.poll(job_id, on_progress)
        execution_time = self._elapsed_ms(start)

        if outcome.timed_out:
            # Row left open: the workflow can still complete it
            return AnalysisResult(success=False, error=TIMEOUT_MESSAGE, execution_time=execution_time, job_id=job_id)

        job = outcome.job
        if job.status == JobStatus.FAILED:
            return AnalysisResult(
                success=False,
                error=job.error or "Analysis failed",
                execution_time=execution_time,
                job_id=job_id,
            )

        logger.info(f"✅ {kind.value} analysis {job_id} completed in {execution_time} ms")
        return AnalysisResult(success=True, data=job.result, execution_time=execution_time, job_id=job_id)

    def get_job_status(self, job_id: str) -> Optional[JobRecord]:
        """Current state of one of the user's jobs, or None"""
        try:
            job = self.store.read(job_id)
        except Exception as e:
            logger.warning(f"Job status lookup failed for {job_id}: {e}")
            return None

        if job is None or job.owner != self.auth.user_id:
            return None
        return job
