"""
Analyses Routes
Run workflow analyses, check job status, and manage saved analyses

Features:
- Run a reviews / SEO analysis end to end
- Out-of-band job status
- Saved analyses (archives): list/view/delete
- Normalized report, PDF and JSON exports
"""
import asyncio
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, List, Optional
from datetime import datetime
from auth_middleware import verify_token, AuthContext
from dependencies import get_metrics_service, get_orchestrator, get_record_store
from models.canonical import JobKind
from models.inputs import build_input
from services.export_service import ExportService
from services.job_store import StoreError
from services.metrics_service import MetricsService
from services.orchestrator import AnalysisOrchestrator
from services.record_store import RecordStore
from services.result_parser import extract_google_metrics, extract_score, normalize
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analyses"])


# ============================================
# REQUEST/RESPONSE MODELS
# ============================================

class RunAnalysisRequest(BaseModel):
    type: JobKind
    input: Dict[str, Any]
    save: bool = True


class RunAnalysisResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    execution_time: int
    job_id: Optional[str] = None
    analysis_id: Optional[str] = None


class SaveAnalysisRequest(BaseModel):
    type: JobKind
    input_data: Dict[str, Any]
    results: Optional[Any] = None
    score: Optional[float] = None
    execution_time_ms: Optional[int] = None


class AnalysisResponse(BaseModel):
    id: str
    user_id: str
    type: str
    input_data: Dict[str, Any]
    results: Optional[Any] = None
    score: Optional[float] = None
    execution_time_ms: Optional[int] = None
    tokens_used: Optional[int] = None
    created_at: Optional[datetime] = None


# ============================================
# HELPER FUNCTIONS
# ============================================

def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    return str(first.get("msg", "Invalid input")).removeprefix("Value error, ")


def _get_owned_record(record_store: RecordStore, auth: AuthContext, analysis_id: str) -> Dict[str, Any]:
    try:
        record = record_store.get(auth.user_id, analysis_id)
    except StoreError as e:
        logger.error(f"Failed to get analysis {analysis_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get analysis")

    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return record


def _save_run(
    auth: AuthContext,
    kind: JobKind,
    input_data: Dict[str, Any],
    data: Any,
    execution_time: int,
    record_store: RecordStore,
    metrics: Optional[MetricsService],
) -> Optional[str]:
    """Keep a successful run in the archives; failures are logged, not raised"""
    analysis_id = None
    try:
        record = record_store.create(
            auth.user_id,
            kind,
            input_data,
            data,
            extract_score(data, kind),
            execution_time,
        )
        analysis_id = str(record["id"])
    except StoreError as e:
        logger.error(f"Error saving analysis for {auth.email}: {e}")

    if kind == JobKind.REVIEWS and metrics is not None:
        rating, review_count = extract_google_metrics(data)
        try:
            metrics.record(auth.user_id, rating, review_count)
        except Exception as e:
            logger.error(f"Error saving Google metrics for {auth.email}: {e}")

    return analysis_id


# ============================================
# ROUTES
# ============================================

@router.post("/analyses/run", response_model=RunAnalysisResponse)
async def run_analysis(
    request: RunAnalysisRequest,
    auth: AuthContext = Depends(verify_token),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    record_store: RecordStore = Depends(get_record_store),
    metrics: Optional[MetricsService] = Depends(get_metrics_service),
):
    """
    Run an analysis and wait for the workflow to finish (up to 10 minutes).

    Workflow failures come back with success=false rather than an HTTP error;
    on timeout the job may still finish and can be checked via /api/jobs/{job_id}.
    """
    try:
        input_data = build_input(request.type, request.input)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_message(e))

    logger.info(f"▶ {request.type.value} analysis requested by {auth.email}")

    def on_progress(status: str):
        logger.debug(f"{request.type.value} analysis for {auth.email}: {status}")

    result = await orchestrator.run_analysis(request.type, input_data, on_progress)
    response = result.to_dict()

    if result.success and request.save:
        response["analysis_id"] = _save_run(
            auth, request.type, input_data, result.data, result.execution_time, record_store, metrics
        )

    return response


@router.get("/jobs/{job_id}")
async def get_job_status(
    job_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Current state of a job, e.g. after a run timed out"""
    job = await asyncio.to_thread(orchestrator.get_job_status, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()


@router.get("/analyses", response_model=List[AnalysisResponse])
async def list_analyses(
    type: Optional[JobKind] = None,
    limit: int = 100,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """List saved analyses, newest first"""
    try:
        return record_store.list(auth.user_id, type, limit)
    except StoreError as e:
        logger.error(f"Failed to list analyses: {e}")
        raise HTTPException(status_code=500, detail="Failed to list analyses")


@router.post("/analyses", response_model=AnalysisResponse)
async def save_analysis(
    request: SaveAnalysisRequest,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Save an analysis to the archives"""
    score = request.score
    if score is None:
        score = extract_score(request.results, request.type)

    try:
        record = record_store.create(
            auth.user_id,
            request.type,
            request.input_data,
            request.results,
            score,
            request.execution_time_ms,
        )
    except StoreError as e:
        logger.error(f"Failed to save analysis: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save analysis: {str(e)}")

    logger.info(f"✓ Analysis {record['id']} saved by {auth.email}")
    return record


@router.get("/analyses/{analysis_id}", response_model=AnalysisResponse)
async def get_analysis(
    analysis_id: str,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Get a saved analysis"""
    return _get_owned_record(record_store, auth, analysis_id)


@router.get("/analyses/{analysis_id}/report")
async def get_analysis_report(
    analysis_id: str,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Saved analysis in the canonical report shape"""
    record = _get_owned_record(record_store, auth, analysis_id)
    report = normalize(record.get("results"), JobKind(record["type"]))
    if report.score is None:
        report.score = record.get("score")

    return {
        "id": record["id"],
        "created_at": record.get("created_at"),
        **report.to_dict(),
    }


@router.get("/analyses/{analysis_id}/pdf")
async def download_analysis_pdf(
    analysis_id: str,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Download the report as PDF"""
    record = _get_owned_record(record_store, auth, analysis_id)

    try:
        pdf_path = ExportService().generate_pdf(record)
    except Exception as e:
        logger.error(f"PDF generation failed for {analysis_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate PDF")

    return FileResponse(
        pdf_path,
        media_type="application/pdf",
        filename=f"shorebreak-{record['type']}-{analysis_id}.pdf"
    )


@router.get("/analyses/{analysis_id}/json")
async def download_analysis_json(
    analysis_id: str,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Download the raw workflow results"""
    record = _get_owned_record(record_store, auth, analysis_id)
    return Response(
        content=ExportService.export_json(record),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{ExportService.json_filename(record)}"'},
    )


@router.delete("/analyses/{analysis_id}")
async def delete_analysis(
    analysis_id: str,
    auth: AuthContext = Depends(verify_token),
    record_store: RecordStore = Depends(get_record_store),
):
    """Delete a saved analysis"""
    try:
        deleted = record_store.delete(auth.user_id, analysis_id)
    except StoreError as e:
        logger.error(f"Failed to delete analysis: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete analysis")

    if not deleted:
        raise HTTPException(status_code=404, detail="Analysis not found")

    logger.info(f"✓ Analysis {analysis_id} deleted by {auth.email}")
    return {"message": "Analysis deleted successfully"}
