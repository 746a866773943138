"""
Pydantic schemas for rubric-based video evaluation output.

The raw model response is validated into these types before anything is
persisted, so a malformed response becomes a FAILED evaluation rather than
a corrupt summary.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from worksim_assessment.schemas import CamelModel, VideoAssessmentStatus

DimensionConfidence = Literal["high", "medium", "low"]


class TimestampedBehavior(CamelModel):
    """An observable behavior anchored to a point in the recording."""

    timestamp: str = Field(default="", description="MM:SS or HH:MM:SS")
    behavior: str = Field(..., description="What the candidate did")


class DimensionScoreOutput(CamelModel):
    """Score and evidence for one rubric dimension."""

    dimension_slug: str = Field(..., min_length=1, description="Role-family specific dimension slug")
    dimension_name: str = Field(default="", description="Display name of the dimension")
    score: int | None = Field(default=None, ge=1, le=4, description="Score 1-4, None if insufficient evidence")
    summary: str = Field(default="", description="One sentence summary")
    confidence: DimensionConfidence = Field(default="medium")
    rationale: str = Field(default="", description="Why this score was given")
    observable_behaviors: list[TimestampedBehavior] = Field(default_factory=list)
    timestamps: list[str] = Field(default_factory=list)
    trainable_gap: bool = Field(default=False)
    green_flags: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)

    @field_validator("dimension_slug")
    @classmethod
    def _strip_slug(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("dimension slug must not be blank")
        return value


class DetectedRedFlag(CamelModel):
    """A binary red flag observed in the recording."""

    slug: str = Field(default="")
    name: str = Field(default="")
    description: str = Field(default="")
    evidence: str = Field(default="")
    timestamps: list[str] = Field(default_factory=list)


class HiringSignal(CamelModel):
    """A top strength or growth area."""

    dimension: str = Field(default="")
    score: float = Field(default=0.0)
    description: str = Field(default="")


class RubricAssessmentOutput(CamelModel):
    """Validated output of a rubric evaluation run."""

    evaluation_version: str = Field(default="3.0.0")
    role_family_slug: str = Field(default="engineering")
    overall_score: float = Field(..., ge=0.0, le=4.0)
    overall_summary: str = Field(..., min_length=1)
    dimension_scores: list[DimensionScoreOutput] = Field(default_factory=list)
    detected_red_flags: list[DetectedRedFlag] = Field(default_factory=list)
    top_strengths: list[HiringSignal] = Field(default_factory=list)
    growth_areas: list[HiringSignal] = Field(default_factory=list)
    evaluation_confidence: DimensionConfidence = Field(default="medium")
    insufficient_evidence_notes: str | None = Field(default=None)


class VideoEvaluationResult(CamelModel):
    """Outcome of one evaluation run."""

    success: bool
    video_assessment_id: str
    overall_score: float | None = None
    dimension_scores: dict[str, int | None] = Field(default_factory=dict)
    summary: str | None = None
    error: str | None = None


class TriggerResult(CamelModel):
    """Outcome of scheduling an evaluation."""

    success: bool
    video_assessment_id: str | None = None
    error: str | None = None


class StoredDimensionScore(CamelModel):
    """A persisted score row."""

    dimension: str
    score: float
    confidence: str
    observable_behaviors: list[dict[str, Any]] = Field(default_factory=list)
    timestamps: list[str] = Field(default_factory=list)
    trainable_gap: bool = False
    rationale: str = ""


class EvaluationResults(CamelModel):
    """Stored state and results of a video assessment."""

    video_assessment_id: str
    status: VideoAssessmentStatus
    completed_at: datetime | None = None
    retry_count: int = 0
    last_failure_reason: str | None = None
    scores: list[StoredDimensionScore] = Field(default_factory=list)
    overall_summary: str | None = None
    evaluation: RubricAssessmentOutput | None = None
