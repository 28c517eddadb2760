"""
Analysis record store - analyses the user chose to keep

Records are created on save and only ever deleted afterwards. Every call
is scoped to the owning user.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from database import SessionLocal
from models.analysis import Analysis
from models.canonical import JobKind
from services.job_store import StoreError

logger = logging.getLogger(__name__)

TABLE = "analyses"


class RecordStore(ABC):

    @abstractmethod
    def create(
        self,
        owner: str,
        kind: JobKind,
        input_data: Dict[str, Any],
        results: Any,
        score: Optional[float],
        execution_time_ms: Optional[int],
    ) -> Dict[str, Any]:
        """Insert a record and return it"""

    @abstractmethod
    def list(self, owner: str, kind: Optional[JobKind] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """Owner's records, newest first"""

    @abstractmethod
    def get(self, owner: str, record_id: str) -> Optional[Dict[str, Any]]:
        """One of the owner's records, or None"""

    @abstractmethod
    def delete(self, owner: str, record_id: str) -> bool:
        """Delete one of the owner's records; False when there was nothing to delete"""


class SqlRecordStore(RecordStore):
    """SQLAlchemy-backed record store"""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def create(self, owner, kind, input_data, results, score, execution_time_ms):
        db = self.session_factory()
        try:
            record = Analysis(
                user_id=owner,
                type=JobKind(kind).value,
                input_data=input_data,
                results=results,
                score=score,
                execution_time_ms=execution_time_ms,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return record.to_dict()
        except Exception as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def list(self, owner, kind=None, limit=100):
        db = self.session_factory()
        try:
            query = db.query(Analysis).filter(Analysis.user_id == owner)
            if kind is not None:
                query = query.filter(Analysis.type == JobKind(kind).value)
            records = query.order_by(Analysis.created_at.desc()).limit(limit).all()
            return [record.to_dict() for record in records]
        except Exception as e:
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def get(self, owner, record_id):
        db = self.session_factory()
        try:
            record = (
                db.query(Analysis)
                .filter(Analysis.id == record_id, Analysis.user_id == owner)
                .first()
            )
            return record.to_dict() if record else None
        except Exception as e:
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def delete(self, owner, record_id):
        db = self.session_factory()
        try:
            deleted = (
                db.query(Analysis)
                .filter(Analysis.id == record_id, Analysis.user_id == owner)
                .delete()
            )
            db.commit()
            return deleted > 0
        except Exception as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()


class SupabaseRecordStore(RecordStore):
    """Supabase (PostgREST) record store"""

    def __init__(self, client):
        self.client = client

    def _execute(self, query):
        try:
            return query.execute()
        except Exception as e:
            raise StoreError(getattr(e, "message", None) or str(e)) from e

    def create(self, owner, kind, input_data, results, score, execution_time_ms):
        result = self._execute(
            self.client.table(TABLE).insert({
                "user_id": owner,
                "type": JobKind(kind).value,
                "input_data": input_data,
                "results": results,
                "score": score,
                "execution_time_ms": execution_time_ms,
                "tokens_used": None,
            })
        )
        if not result.data:
            raise StoreError("Failed to save analysis")
        return result.data[0]

    def list(self, owner, kind=None, limit=100):
        query = (
            self.client.table(TABLE)
            .select("*")
            .eq("user_id", owner)
            .order("created_at", desc=True)
            .limit(limit)
        )
        if kind is not None:
            query = query.eq("type", JobKind(kind).value)
        return self._execute(query).data or []

    def get(self, owner, record_id):
        result = self._execute(
            self.client.table(TABLE)
            .select("*")
            .eq("id", record_id)
            .eq("user_id", owner)
            .limit(1)
        )
        return result.data[0] if result.data else None

    def delete(self, owner, record_id):
        result = self._execute(
            self.client.table(TABLE)
            .delete()
            .eq("id", record_id)
            .eq("user_id", owner)
        )
        return bool(result.data)
