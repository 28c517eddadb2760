"""
Job store - persistence for analysis_jobs rows

Two backends share one interface:
- SupabaseJobStore: production, goes through a user-scoped client so
  row-level security restricts every call to the owner's rows
- SqlJobStore: SQLAlchemy fallback (local SQLite, tests)
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import sessionmaker

from database import SessionLocal
from models.analysis_job import AnalysisJob
from models.canonical import JobKind, JobRecord, JobStatus

logger = logging.getLogger(__name__)

TABLE = "analysis_jobs"
OPEN_STATUSES = [JobStatus.PENDING.value, JobStatus.PROCESSING.value]


class StoreError(Exception):
    """A job store call failed (permissions, connectivity, missing row)"""


class JobStore(ABC):
    """Create, update and point-read analysis job rows"""

    @abstractmethod
    def create(self, kind: JobKind, input: Dict[str, Any], owner: str) -> str:
        """Insert a pending job and return its id"""

    @abstractmethod
    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Update a job; refuses to move a finished job back to an open status"""

    @abstractmethod
    def read(self, job_id: str) -> Optional[JobRecord]:
        """Return the job, or None if it does not exist or is not visible"""


def _check_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(fields)
    if "status" in data:
        data["status"] = JobStatus(data["status"]).value
    return data


class SqlJobStore(JobStore):
    """SQLAlchemy-backed job store"""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def create(self, kind: JobKind, input: Dict[str, Any], owner: str) -> str:
        db = self.session_factory()
        try:
            job = AnalysisJob(
                user_id=owner,
                type=JobKind(kind).value,
                status=JobStatus.PENDING.value,
                input=input,
            )
            db.add(job)
            db.commit()
            db.refresh(job)
            logger.info(f"Created analysis job {job.id} ({job.type}) for user {owner}")
            return job.id
        except Exception as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        data = _check_fields(fields)
        db = self.session_factory()
        try:
            job = db.get(AnalysisJob, job_id)
            if job is None:
                raise StoreError(f"Job {job_id} not found")

            if "status" in data and data["status"] != job.status:
                current = JobStatus(job.status)
                if not current.can_transition_to(JobStatus(data["status"])):
                    raise StoreError(
                        f"Job {job_id} cannot move from {current.value} to {data['status']}"
                    )

            for key, value in data.items():
                setattr(job, key, value)
            db.commit()
        except StoreError:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def read(self, job_id: str) -> Optional[JobRecord]:
        db = self.session_factory()
        try:
            job = db.get(AnalysisJob, job_id)
            if job is None:
                return None
            return JobRecord.from_row(job.to_dict())
        except Exception as e:
            raise StoreError(str(e)) from e
        finally:
            db.close()


class SupabaseJobStore(JobStore):
    """Supabase (PostgREST) job store"""

    def __init__(self, client):
        self.client = client

    def create(self, kind: JobKind, input: Dict[str, Any], owner: str) -> str:
        try:
            result = (
                self.client.table(TABLE)
                .insert({
                    "user_id": owner,
                    "type": JobKind(kind).value,
                    "status": JobStatus.PENDING.value,
                    "input": input,
                })
                .execute()
            )
        except Exception as e:
            raise StoreError(getattr(e, "message", None) or str(e)) from e

        if not result.data:
            raise StoreError("Failed to create job")

        job_id = result.data[0]["id"]
        logger.info(f"Created analysis job {job_id} ({JobKind(kind).value}) for user {owner}")
        return job_id

    def update(self, job_id: str, fields: Dict[str, Any]) -> None:
        data = _check_fields(fields)
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        for key in ("completed_at",):
            if isinstance(data.get(key), datetime):
                data[key] = data[key].isoformat()

        query = self.client.table(TABLE).update(data).eq("id", job_id)
        if "status" in data:
            # finished rows never reopen
            query = query.in_("status", OPEN_STATUSES)

        try:
            result = query.execute()
        except Exception as e:
            raise StoreError(getattr(e, "message", None) or str(e)) from e

        if not result.data:
            raise StoreError(f"Job {job_id} not found or already finished")

    def read(self, job_id: str) -> Optional[JobRecord]:
        try:
            result = (
                self.client.table(TABLE)
                .select("*")
                .eq("id", job_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StoreError(getattr(e, "message", None) or str(e)) from e

        if not result.data:
            return None

        try:
            return JobRecord.from_row(result.data[0])
        except (KeyError, ValueError) as e:
            raise StoreError(f"Job {job_id} has an unreadable row: {e}") from e
