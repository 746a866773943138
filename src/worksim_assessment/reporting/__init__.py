"""
Reporting module.

Converts rubric evaluations into the candidate-facing assessment report.
"""

from worksim_assessment.reporting.dimension_mapping import (
    DIMENSION_TO_CATEGORY,
    RUBRIC_TO_ASSESSMENT_DIMENSION,
    AssessmentDimension,
    category_for_slug,
)
from worksim_assessment.reporting.report_converter import convert_rubric_to_report, score_to_level
from worksim_assessment.reporting.schemas import (
    AssessmentReport,
    Recommendation,
    ReportMetrics,
    ReportNarrative,
    ReportTiming,
    SkillScore,
)

__all__ = [
    "DIMENSION_TO_CATEGORY",
    "RUBRIC_TO_ASSESSMENT_DIMENSION",
    "AssessmentDimension",
    "AssessmentReport",
    "Recommendation",
    "ReportMetrics",
    "ReportNarrative",
    "ReportTiming",
    "SkillScore",
    "category_for_slug",
    "convert_rubric_to_report",
    "score_to_level",
]
