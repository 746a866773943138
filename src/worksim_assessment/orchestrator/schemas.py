"""
Pydantic schemas for orchestrator results.

These are the camelCase JSON bodies returned by the HTTP layer.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from worksim_assessment.reporting.schemas import AssessmentReport
from worksim_assessment.schemas import AssessmentStatus, CamelModel


class AssessmentSnapshot(CamelModel):
    """Assessment fields returned after finalization."""

    id: str
    status: AssessmentStatus
    started_at: datetime
    completed_at: datetime | None = None
    pr_url: str | None = None
    ci_status: dict[str, Any] | None = None


class TimingInfo(CamelModel):
    """Timing of a finalized assessment."""

    started_at: datetime
    completed_at: datetime
    total_duration_seconds: int = Field(..., ge=0)


class PrCleanupOutcome(CamelModel):
    """Outcome of closing the candidate's pull request."""

    success: bool
    action: Literal["closed", "none", "error"]
    message: str


class CiStatusOutcome(CamelModel):
    """Final CI status captured at finalization."""

    overall_status: Literal["success", "failure", "pending", "unknown"]
    checks_count: int = 0
    checks_passed: int = 0
    checks_failed: int = 0


class VideoAssessmentTrigger(CamelModel):
    """Whether video evaluation was started for the assessment."""

    triggered: bool = False
    video_assessment_id: str | None = None
    has_recording: bool = False


class ProfilePhotoOutcome(CamelModel):
    """Outcome of profile photo generation."""

    generated: bool = False
    image_url: str | None = None


class FinalizeResult(CamelModel):
    """Result of finalizing an assessment."""

    success: bool = True
    assessment: AssessmentSnapshot
    timing: TimingInfo
    pr_cleanup: PrCleanupOutcome | None = None
    ci_status: CiStatusOutcome | None = None
    video_assessment: VideoAssessmentTrigger = Field(default_factory=VideoAssessmentTrigger)
    profile_photo: ProfilePhotoOutcome = Field(default_factory=ProfilePhotoOutcome)


class ReportGenerationResult(CamelModel):
    """Result of generating (or reusing) an assessment report."""

    success: bool = True
    report: AssessmentReport
    cached: bool = False
    email_sent: bool = False


class ReportView(CamelModel):
    """A stored report together with the assessment status."""

    report: AssessmentReport
    status: AssessmentStatus
