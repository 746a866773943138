"""
Video analysis module.

Rubric prompt building, response parsing and the video assessment evaluator.
The evaluator lives in analysis.video_evaluation and is imported from there.
"""

from worksim_assessment.analysis.rubric_parsing import parse_rubric_response
from worksim_assessment.analysis.rubric_prompt import (
    RUBRIC_EVALUATION_PROMPT_VERSION,
    RoleFamilyRubric,
    VideoContext,
    build_rubric_evaluation_prompt,
    load_rubric,
)
from worksim_assessment.analysis.schemas import (
    DimensionScoreOutput,
    RubricAssessmentOutput,
    TimestampedBehavior,
)

__all__ = [
    "RUBRIC_EVALUATION_PROMPT_VERSION",
    "DimensionScoreOutput",
    "RoleFamilyRubric",
    "RubricAssessmentOutput",
    "TimestampedBehavior",
    "VideoContext",
    "build_rubric_evaluation_prompt",
    "load_rubric",
    "parse_rubric_response",
]
