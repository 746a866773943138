"""
Pydantic schemas for the candidate-facing assessment report.

Persisted on Assessment.report as a camelCase JSON document.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from worksim_assessment.schemas import CamelModel

ScoreLevel = Literal["exceptional", "strong", "adequate", "needs_improvement"]
RecommendationPriority = Literal["high", "medium", "low"]


class SkillScore(CamelModel):
    """Best score observed for one report category."""

    category: str = Field(..., description="Report category")
    score: float = Field(..., description="Score on the 1-4 scale")
    level: ScoreLevel = Field(..., description="Level label for the score")
    evidence: list[str] = Field(default_factory=list, description="'+ ' green and '- ' red flags")
    notes: str = Field(default="", description="Rationale from the evaluator")


class ReportNarrative(CamelModel):
    """Written summary sections of the report."""

    overall_summary: str = Field(default="")
    strengths: list[str] = Field(default_factory=list)
    areas_for_improvement: list[str] = Field(default_factory=list)
    notable_observations: list[str] = Field(default_factory=list)


class Recommendation(CamelModel):
    """A development recommendation for a weak category."""

    category: str
    priority: RecommendationPriority
    title: str
    description: str = ""
    actionable_steps: list[str] = Field(default_factory=list)


class ReportMetrics(CamelModel):
    """Timing and collaboration counts for the attempt."""

    total_duration_minutes: int | None = None
    working_phase_minutes: int | None = None
    coworkers_contacted: int = 0
    ai_tools_used: bool = True
    tests_status: str = "unknown"
    # Kept for consumers of older reports; no longer computed.
    code_review_score: float | None = None


class ReportTiming(CamelModel):
    """Timing input for the converter."""

    total_duration_minutes: int | None = None
    working_phase_minutes: int | None = None


class AssessmentReport(CamelModel):
    """The authoritative report for a completed assessment."""

    generated_at: datetime
    assessment_id: str
    candidate_name: str | None = None
    overall_score: float
    overall_level: ScoreLevel
    skill_scores: list[SkillScore] = Field(default_factory=list)
    narrative: ReportNarrative = Field(default_factory=ReportNarrative)
    recommendations: list[Recommendation] = Field(default_factory=list, max_length=3)
    metrics: ReportMetrics = Field(default_factory=ReportMetrics)
    version: str = ""

    def to_document(self) -> dict:
        """Serialize to the JSON document stored on the assessment."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict) -> "AssessmentReport":
        """Load a report previously stored with to_document()."""
        return cls.model_validate(document)
