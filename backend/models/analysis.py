"""
Analysis model - saved analysis summaries shown in the archives
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, JSON
from datetime import datetime, timezone
import uuid
from database import Base


class Analysis(Base):
    __tablename__ = "analyses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    type = Column(String(20), nullable=False)  # reviews, seo

    input_data = Column(JSON, nullable=False, default=dict)
    results = Column(JSON)

    # Summary
    score = Column(Float)
    execution_time_ms = Column(Integer)
    tokens_used = Column(Integer)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "input_data": self.input_data,
            "results": self.results,
            "score": self.score,
            "execution_time_ms": self.execution_time_ms,
            "tokens_used": self.tokens_used,
            "created_at": self.created_at,
        }

    def __repr__(self):
        return f"<Analysis {self.id} ({self.type})>"
