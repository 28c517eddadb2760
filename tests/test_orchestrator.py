import json

import httpx
import pytest

from auth_middleware import AuthContext
from config import TIMEOUT_MESSAGE
from models.canonical import JobKind, JobStatus
from services.job_poller import JobPoller
from services.job_store import JobStore, StoreError, SupabaseJobStore
from services.orchestrator import AnalysisOrchestrator
from services.workflow_trigger import WorkflowTrigger


SEO_INPUT = {"website_url": "https://example.com"}
REVIEW_INPUT = {"google_maps_url": "https://www.google.com/maps/place/Shorebreak", "period": "6months"}


def accept(request):
    return httpx.Response(200, json={"message": "Workflow was started"})


def build(auth, store, trigger, clock, max_duration=600.0):
    poller = JobPoller(store, interval=3.0, max_duration=max_duration, sleep=clock.sleep, clock=clock)
    return AnalysisOrchestrator(auth, store, trigger=trigger, poller=poller, clock=clock)


class CountingPoller(JobPoller):
    def __init__(self, store):
        super().__init__(store)
        self.calls = 0

    async def poll(self, job_id, on_progress=None):
        self.calls += 1
        return await super().poll(job_id, on_progress)


class BrokenStore(JobStore):
    def __init__(self, fail_on):
        self.fail_on = fail_on
        self.updates = []

    def create(self, kind, input, owner):
        if "create" in self.fail_on:
            raise StoreError("new row violates row-level security policy")
        return "job-1"

    def update(self, job_id, fields):
        self.updates.append(fields)
        if "update" in self.fail_on:
            raise StoreError("connection refused")

    def read(self, job_id):
        if "read" in self.fail_on:
            raise StoreError("connection refused")
        return None


# ============================================
# End to end
# ============================================

async def test_seo_analysis_completes(auth, scripted, make_trigger, clock):
    result_payload = {"score": 87, "output": ["## SEO", "- Fast pages"]}
    store = scripted([None, None, {"status": "completed", "result": result_payload}])
    trigger = make_trigger(accept)

    result = await build(auth, store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert result.success
    assert result.data == result_payload
    assert result.error is None
    assert result.job_id is not None
    assert result.execution_time == 6000
    assert store.reads == 3

    job = store.read(result.job_id)
    assert job.status == JobStatus.COMPLETED
    assert job.owner == "user-1"


async def test_trigger_carries_job_id_and_input(auth, scripted, make_trigger, clock):
    store = scripted([{"status": "completed", "result": {}}])
    trigger = make_trigger(accept)

    result = await build(auth, store, trigger, clock).run_analysis(JobKind.REVIEWS, REVIEW_INPUT)

    sent = json.loads(trigger.requests[0].content)
    assert sent == {"job_id": result.job_id, **REVIEW_INPUT}
    assert len(trigger.requests) == 1


async def test_job_is_processing_when_workflow_starts(auth, job_store, clock):
    seen = {}

    def handler(request):
        job_id = json.loads(request.content)["job_id"]
        seen["status"] = job_store.read(job_id).status
        job_store.update(job_id, {"status": "completed", "result": {"ok": True}})
        return httpx.Response(200)

    trigger = WorkflowTrigger(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    result = await build(auth, job_store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert seen["status"] == JobStatus.PROCESSING
    assert result.success


async def test_remote_failure(auth, scripted, make_trigger, clock):
    store = scripted([None, {"status": "failed", "error": "Scraper blocked by Google"}])

    result = await build(auth, store, make_trigger(accept), clock).run_analysis(JobKind.REVIEWS, REVIEW_INPUT)

    assert not result.success
    assert result.error == "Scraper blocked by Google"
    assert result.data is None
    assert result.job_id is not None


async def test_remote_failure_without_message(auth, scripted, make_trigger, clock):
    store = scripted([{"status": "failed"}])

    result = await build(auth, store, make_trigger(accept), clock).run_analysis(JobKind.REVIEWS, REVIEW_INPUT)

    assert result.error == "Analysis failed"


async def test_timeout_leaves_job_open(auth, scripted, make_trigger, clock):
    store = scripted()

    result = await build(auth, store, make_trigger(accept), clock, max_duration=60.0).run_analysis(
        JobKind.SEO, SEO_INPUT
    )

    assert not result.success
    assert result.error == TIMEOUT_MESSAGE
    assert result.job_id is not None
    assert result.execution_time == 60000
    assert store.read(result.job_id).status == JobStatus.PROCESSING


async def test_timeout_and_remote_failure_are_distinguishable(auth, scripted, make_trigger, clock):
    timed_out = await build(auth, scripted(), make_trigger(accept), clock, max_duration=9.0).run_analysis(
        JobKind.SEO, SEO_INPUT
    )
    failed = await build(auth, scripted([{"status": "failed", "error": "boom"}]), make_trigger(accept), clock).run_analysis(
        JobKind.SEO, SEO_INPUT
    )

    assert timed_out.error != failed.error


# ============================================
# Early exits
# ============================================

async def test_create_failure_never_triggers(auth, make_trigger, clock):
    trigger = make_trigger(accept)
    store = BrokenStore(fail_on={"create"})

    result = await build(auth, store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert not result.success
    assert result.job_id is None
    assert "row-level security" in result.error
    assert trigger.requests == []


async def test_processing_update_failure_never_triggers(auth, make_trigger, clock):
    trigger = make_trigger(accept)
    store = BrokenStore(fail_on={"update"})

    result = await build(auth, store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert not result.success
    assert result.job_id == "job-1"
    assert result.error == "connection refused"
    assert trigger.requests == []


async def test_trigger_rejection_fails_the_job_without_polling(auth, job_store, make_trigger):
    trigger = make_trigger(lambda request: httpx.Response(500))
    poller = CountingPoller(job_store)
    orchestrator = AnalysisOrchestrator(auth, job_store, trigger=trigger, poller=poller)

    result = await orchestrator.run_analysis(JobKind.SEO, SEO_INPUT)

    assert not result.success
    assert result.error == "HTTP Error: 500"
    assert poller.calls == 0

    job = job_store.read(result.job_id)
    assert job.status == JobStatus.FAILED
    assert job.error == "HTTP Error: 500"
    assert job.completed_at is not None


async def test_trigger_rejection_reported_even_if_failed_mark_fails(auth, make_trigger, clock):
    class FailOnSecondUpdate(BrokenStore):
        def update(self, job_id, fields):
            self.updates.append(fields)
            if len(self.updates) > 1:
                raise StoreError("connection refused")

    store = FailOnSecondUpdate(fail_on=set())
    trigger = make_trigger(lambda request: httpx.Response(404))

    result = await build(auth, store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert result.error == "HTTP Error: 404"
    assert [fields["status"] for fields in store.updates] == ["processing", "failed"]


async def test_ambiguous_trigger_still_polls(auth, scripted, make_trigger, clock):
    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    store = scripted([{"status": "completed", "result": {"score": 50}}])

    result = await build(auth, store, make_trigger(timeout), clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert result.success
    assert result.data == {"score": 50}


async def test_unauthenticated(scripted, make_trigger, clock):
    store = scripted()
    trigger = make_trigger(accept)
    anonymous = AuthContext(user_id="", email="")

    result = await build(anonymous, store, trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert not result.success
    assert result.error == "Not authenticated"
    assert store.creates == 0
    assert trigger.requests == []


# ============================================
# Status ordering
# ============================================

@pytest.mark.parametrize("script", [
    [None, {"status": "completed", "result": {}}],
    [StoreError("flaky"), None, {"status": "failed", "error": "x"}],
    [None, {"status": "pending"}, {"status": "completed", "result": {}}],
])
async def test_observed_statuses_never_go_backwards(auth, scripted, make_trigger, clock, script):
    order = [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED]
    rank = {status: order.index(status) if status in order else 2 for status in JobStatus}
    store = scripted(script)

    await build(auth, store, make_trigger(accept), clock).run_analysis(JobKind.SEO, SEO_INPUT)

    ranks = [rank[status] for status in store.observed]
    assert ranks == sorted(ranks)


async def test_progress_callback_sees_processing(auth, scripted, make_trigger, clock):
    store = scripted([None, {"status": "completed", "result": {}}])
    seen = []

    await build(auth, store, make_trigger(accept), clock).run_analysis(JobKind.SEO, SEO_INPUT, seen.append)

    assert seen
    assert set(seen) == {"processing"}


# ============================================
# Job status lookup
# ============================================

async def test_get_job_status_is_idempotent(auth, scripted, make_trigger, clock):
    store = scripted([{"status": "completed", "result": {"score": 90}}])
    orchestrator = build(auth, store, make_trigger(accept), clock)
    result = await orchestrator.run_analysis(JobKind.SEO, SEO_INPUT)

    first = orchestrator.get_job_status(result.job_id)
    second = orchestrator.get_job_status(result.job_id)

    assert first == second
    assert first.status == JobStatus.COMPLETED
    assert first.result == {"score": 90}


def test_get_job_status_of_another_user(job_store, auth):
    job_id = job_store.create(JobKind.SEO, SEO_INPUT, "someone-else")

    assert AnalysisOrchestrator(auth, job_store).get_job_status(job_id) is None


def test_get_job_status_unknown_or_unreadable(auth, job_store):
    assert AnalysisOrchestrator(auth, job_store).get_job_status("nope") is None
    assert AnalysisOrchestrator(auth, BrokenStore(fail_on={"read"})).get_job_status("job-1") is None


async def test_ambiguous_trigger_then_silence_times_out(auth, scripted, make_trigger, clock):
    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    store = scripted()

    result = await build(auth, store, make_trigger(timeout), clock, max_duration=30.0).run_analysis(
        JobKind.REVIEWS, REVIEW_INPUT
    )

    assert not result.success
    assert result.error == TIMEOUT_MESSAGE
    assert store.reads == 10


async def test_unknown_kind_is_a_failed_result(auth, scripted, make_trigger, clock):
    store = scripted()
    trigger = make_trigger(accept)

    result = await build(auth, store, trigger, clock).run_analysis("backlinks", {})

    assert not result.success
    assert result.error == "Unknown analysis type: backlinks"
    assert result.job_id is None
    assert store.creates == 0
    assert trigger.requests == []


async def test_unexpected_create_error_is_a_failed_result(auth, make_trigger, clock):
    class ExplodingStore(BrokenStore):
        def create(self, kind, input, owner):
            raise RuntimeError("pool exhausted")

    trigger = make_trigger(accept)

    result = await build(auth, ExplodingStore(fail_on=set()), trigger, clock).run_analysis(JobKind.SEO, SEO_INPUT)

    assert not result.success
    assert result.error == "pool exhausted"
    assert trigger.requests == []


def test_get_job_status_with_unreadable_row(auth, fake_supabase):
    fake_supabase.tables["analysis_jobs"] = [{"id": "job-1", "user_id": auth.user_id, "type": "seo", "status": "done"}]

    assert AnalysisOrchestrator(auth, SupabaseJobStore(fake_supabase)).get_job_status("job-1") is None


def test_get_job_status_never_raises(auth):
    class MalformedStore(BrokenStore):
        def read(self, job_id):
            raise ValueError("'done' is not a valid JobStatus")

    assert AnalysisOrchestrator(auth, MalformedStore(fail_on=set())).get_job_status("job-1") is None
