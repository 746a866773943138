"""FastAPI routes for assessment finalization, reports and admin retries."""

import logging

from fastapi import APIRouter, Depends, Query, Request

from worksim_assessment.analysis.schemas import TriggerResult
from worksim_assessment.api.dependencies import (
    Services,
    get_current_user_id,
    get_services,
    require_admin,
)
from worksim_assessment.errors import InvalidRequestError
from worksim_assessment.orchestrator.schemas import FinalizeResult, ReportGenerationResult, ReportView
from worksim_assessment.schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class FinalizeRequest(CamelModel):
    assessment_id: str | None = None


class ReportRequest(CamelModel):
    assessment_id: str | None = None
    force_regenerate: bool = False


class VideoRetryRequest(CamelModel):
    video_assessment_id: str | None = None
    force: bool = False


def _require(value: str | None, name: str) -> str:
    if not value:
        raise InvalidRequestError(f"{name} is required")
    return value


@router.post("/assessment/finalize", response_model=FinalizeResult)
async def finalize_assessment(
    body: FinalizeRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FinalizeResult:
    """Mark an assessment completed after the defense call."""
    assessment_id = _require(body.assessment_id, "Assessment ID")
    return await services.finalizer.finalize(assessment_id, user_id)


@router.post("/assessment/report", response_model=ReportGenerationResult)
async def generate_report(
    body: ReportRequest,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ReportGenerationResult:
    """Generate the assessment report, or return the stored one."""
    assessment_id = _require(body.assessment_id, "Assessment ID")
    return await services.report_generator.generate_report(
        assessment_id,
        user_id,
        force_regenerate=body.force_regenerate,
        app_base_url=str(request.base_url).rstrip("/"),
    )


@router.get("/assessment/report", response_model=ReportView)
async def get_report(
    assessment_id: str | None = Query(default=None, alias="assessmentId"),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ReportView:
    """Fetch the stored assessment report."""
    assessment_id = _require(assessment_id, "Assessment ID")
    return await services.report_generator.get_report(assessment_id, user_id)


@router.post("/admin/video-assessment/retry", response_model=TriggerResult)
async def retry_video_assessment(
    body: VideoRetryRequest,
    user_id: str = Depends(require_admin),
    services: Services = Depends(get_services),
) -> TriggerResult:
    """Retry a failed video evaluation; force resets the attempt count."""
    video_assessment_id = _require(body.video_assessment_id, "Video assessment ID")
    logger.info(f"Admin {user_id} requested {'force ' if body.force else ''}retry of {video_assessment_id}")
    if body.force:
        return await services.evaluator.force_retry(video_assessment_id)
    return await services.evaluator.retry(video_assessment_id)
