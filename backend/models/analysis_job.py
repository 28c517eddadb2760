"""
Analysis Job model - one row per workflow run, written by the orchestrator and the workflow
"""
from sqlalchemy import Column, String, DateTime, Text, JSON
from datetime import datetime, timezone
import uuid
from database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class AnalysisJob(Base):
    __tablename__ = "analysis_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)

    # Configuration
    type = Column(String(20), nullable=False)  # reviews, seo
    input = Column(JSON, nullable=False, default=dict)

    # Status
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed, failed

    # Outcome (mutually exclusive)
    result = Column(JSON)
    error = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    completed_at = Column(DateTime(timezone=True))

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "status": self.status,
            "input": self.input,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }

    def __repr__(self):
        return f"<AnalysisJob {self.id} - {self.status}>"
