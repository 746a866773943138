"""
Orchestrators for closing out assessments and producing reports.
"""

from worksim_assessment.orchestrator.finalization import AssessmentFinalizer
from worksim_assessment.orchestrator.report_generation import ReportGenerator
from worksim_assessment.orchestrator.schemas import (
    FinalizeResult,
    ProfilePhotoOutcome,
    ReportGenerationResult,
    ReportView,
    VideoAssessmentTrigger,
)

__all__ = [
    "AssessmentFinalizer",
    "FinalizeResult",
    "ProfilePhotoOutcome",
    "ReportGenerationResult",
    "ReportGenerator",
    "ReportView",
    "VideoAssessmentTrigger",
]
