"""
Canonical analysis job model
Storage-independent representation of jobs, outcomes and reports
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from enum import Enum


class JobKind(str, Enum):
    """Analysis workflows"""
    REVIEWS = "reviews"
    SEO = "seo"


class JobStatus(str, Enum):
    """Job lifecycle: pending -> processing -> completed | failed"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

# The workflow may return a single object or a list of items
ResultPayload = Union[Dict[str, Any], List[Any]]


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class JobRecord:
    """One row of the analysis_jobs table"""
    id: str
    owner: str
    kind: JobKind
    status: JobStatus
    input: Dict[str, Any] = field(default_factory=dict)
    result: Optional[ResultPayload] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobRecord":
        """Build from a database row (user_id/type column names)"""
        return cls(
            id=str(row["id"]),
            owner=str(row["user_id"]),
            kind=JobKind(row["type"]),
            status=JobStatus(row["status"]),
            input=row.get("input") or {},
            result=row.get("result"),
            error=row.get("error"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
            completed_at=_parse_timestamp(row.get("completed_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "user_id": self.owner,
            "type": self.kind.value,
            "status": self.status.value,
            "input": self.input,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class AnalysisResult:
    """
    Outcome of one orchestrated analysis.

    execution_time is wall-clock milliseconds since the job row was requested.
    job_id is None only when the row could not be created.
    """
    success: bool
    data: Optional[ResultPayload] = None
    error: Optional[str] = None
    execution_time: int = 0
    job_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "execution_time": self.execution_time,
            "job_id": self.job_id,
        }


@dataclass
class NormalizedReport:
    """Canonical report shape, whatever the workflow version returned"""
    kind: JobKind
    score: Optional[float] = None
    sections: List[str] = field(default_factory=list)  # markdown
    html: str = ""
    google_rating: Optional[float] = None
    review_count: Optional[int] = None

    @property
    def title(self) -> str:
        if self.kind == JobKind.SEO:
            return "SEO & Visibility Audit"
        return "Review Sentiment Analysis"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "title": self.title,
            "score": self.score,
            "sections": self.sections,
            "html": self.html,
            "google_rating": self.google_rating,
            "review_count": self.review_count,
        }
