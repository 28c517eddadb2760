"""
Database and domain models
"""
from .analysis_job import AnalysisJob
from .analysis import Analysis
from .canonical import JobKind, JobStatus, JobRecord, AnalysisResult, NormalizedReport

__all__ = [
    "AnalysisJob",
    "Analysis",
    "JobKind",
    "JobStatus",
    "JobRecord",
    "AnalysisResult",
    "NormalizedReport",
]
