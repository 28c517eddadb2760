import uuid
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from auth_middleware import AuthContext
from database import Base
from services.job_store import JobStore, SqlJobStore
from services.record_store import SqlRecordStore
from services.workflow_trigger import WorkflowTrigger


# ---------------------------------------------------------------------------
# Local database
# ---------------------------------------------------------------------------

@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def job_store(session_factory):
    return SqlJobStore(session_factory)


@pytest.fixture()
def record_store(session_factory):
    return SqlRecordStore(session_factory)


@pytest.fixture()
def auth():
    return AuthContext(user_id="user-1", email="owner@example.com", access_token="token")


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Workflow side
# ---------------------------------------------------------------------------

class ScriptedWorkflow(JobStore):
    """
    Job store wrapper standing in for the remote workflow.

    Before each read the next scripted step is applied: None leaves the row
    alone, a dict is written to the row, an exception is raised instead of
    reading. Statuses seen by reads are recorded in order.
    """

    def __init__(self, inner: JobStore, script=None):
        self.inner = inner
        self.script = list(script or [])
        self.reads = 0
        self.creates = 0
        self.observed = []

    def create(self, kind, input, owner):
        self.creates += 1
        return self.inner.create(kind, input, owner)

    def update(self, job_id, fields):
        self.inner.update(job_id, fields)

    def read(self, job_id):
        self.reads += 1
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            if step:
                self.inner.update(job_id, step)
        job = self.inner.read(job_id)
        if job is not None:
            self.observed.append(job.status)
        return job


@pytest.fixture()
def scripted(job_store):
    def build(script=None):
        return ScriptedWorkflow(job_store, script)
    return build


class RecordingTrigger(WorkflowTrigger):
    """WorkflowTrigger over an httpx.MockTransport; keeps every request"""

    def __init__(self, handler, **kwargs):
        self.requests = []

        def record(request):
            self.requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(record))
        super().__init__(client=client, **kwargs)


@pytest.fixture()
def make_trigger():
    return RecordingTrigger


# ---------------------------------------------------------------------------
# Supabase
# ---------------------------------------------------------------------------

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.ordering = None
        self.max_rows = None
        self._negate = False

    # actions
    def select(self, *columns, **kwargs):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # filters
    @property
    def not_(self):
        self._negate = True
        return self

    def _filter(self, test):
        negate, self._negate = self._negate, False
        self.filters.append((lambda row: not test(row)) if negate else test)
        return self

    def eq(self, column, value):
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._filter(lambda row: row.get(column) != value)

    def in_(self, column, values):
        return self._filter(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value == "null" else value
        return self._filter(lambda row: row.get(column) is expected)

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        if self.db.fail_with:
            raise self.db.fail_with

        rows = self.db.tables.setdefault(self.table, [])
        matched = [row for row in rows if all(test(row) for test in self.filters)]

        if self.action == "insert":
            row = {"id": str(uuid.uuid4()), "created_at": "2026-01-05T10:00:00+00:00", **self.payload}
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.action == "delete":
            for row in matched:
                rows.remove(row)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.ordering:
            column, desc = self.ordering
            matched.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeSupabase:
    """In-memory stand-in for the supabase-py table/rpc builders"""

    def __init__(self, tables=None, rpc_results=None):
        self.tables = tables or {}
        self.rpc_results = rpc_results or {}
        self.rpc_calls = []
        self.fail_with = None

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        self.rpc_calls.append((name, params))
        return SimpleNamespace(execute=lambda: SimpleNamespace(data=self.rpc_results.get(name)))


@pytest.fixture()
def fake_supabase():
    return FakeSupabase()
