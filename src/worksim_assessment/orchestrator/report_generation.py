"""
Report generation orchestrator.

Produces the authoritative assessment report from the video evaluation,
running the evaluation synchronously when no completed result exists yet.
"""

import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worksim_assessment.analysis.schemas import RubricAssessmentOutput
from worksim_assessment.analysis.video_evaluation import VideoAssessmentEvaluator
from worksim_assessment.config import get_settings
from worksim_assessment.db.models import AssessmentModel
from worksim_assessment.db.repository import (
    AssessmentRepository,
    ConversationRepository,
    RecordingRepository,
    ScenarioRepository,
    UserRepository,
    VideoAssessmentRepository,
)
from worksim_assessment.db.session import session_scope
from worksim_assessment.errors import (
    AssessmentAccessDeniedError,
    AssessmentNotFoundError,
    EvaluationInProgressError,
    RecordingMissingError,
    ReportNotFoundError,
    VideoEvaluationFailedError,
)
from worksim_assessment.integrations.notifier import ReportNotifierBase
from worksim_assessment.orchestrator.schemas import ReportGenerationResult, ReportView
from worksim_assessment.reporting.report_converter import convert_rubric_to_report
from worksim_assessment.reporting.schemas import AssessmentReport, ReportTiming
from worksim_assessment.schemas import RecordingType, VideoAssessmentStatus, utcnow

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Builds, stores and announces assessment reports."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        evaluator: VideoAssessmentEvaluator,
        notifier: ReportNotifierBase | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._evaluator = evaluator
        self._notifier = notifier

    async def _load_owned(
        self,
        session: AsyncSession,
        assessment_id: str,
        requesting_user_id: str,
    ) -> AssessmentModel:
        assessment = await AssessmentRepository(session).get_by_id(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        if assessment.user_id != requesting_user_id:
            raise AssessmentAccessDeniedError()
        return assessment

    async def generate_report(
        self,
        assessment_id: str,
        requesting_user_id: str,
        force_regenerate: bool = False,
        app_base_url: str | None = None,
    ) -> ReportGenerationResult:
        """
        Generate the report for an assessment, or return the stored one.

        Args:
            assessment_id: Assessment to report on.
            requesting_user_id: Authenticated user; must own the assessment.
            force_regenerate: Rebuild even when a report is stored.
            app_base_url: Public base URL used for the link in the email.

        Returns:
            The report, whether it was cached, and whether an email was sent.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user does not own it.
            RecordingMissingError: If there is no screen recording.
            EvaluationInProgressError: If the video evaluation is still running.
            VideoEvaluationFailedError: If the video evaluation failed.
        """
        async with session_scope(self._session_factory) as session:
            assessment = await self._load_owned(session, assessment_id, requesting_user_id)

            if assessment.report and not force_regenerate:
                return ReportGenerationResult(
                    success=True,
                    report=AssessmentReport.from_document(assessment.report),
                    cached=True,
                )

            video_url = await RecordingRepository(session).get_first_url(assessment_id, RecordingType.SCREEN)
            if not video_url:
                raise RecordingMissingError()

            user = await UserRepository(session).get_by_id(assessment.user_id)
            scenario = await ScenarioRepository(session).get_by_id(assessment.scenario_id)
            coworkers_contacted = await ConversationRepository(session).count_distinct_coworkers(assessment_id)

        evaluation = await self._get_or_run_evaluation(
            assessment,
            video_url,
            scenario.task_description if scenario else None,
            scenario.role_family_slug if scenario else None,
        )

        completed_at = assessment.completed_at or utcnow()
        total_minutes = max(0, math.floor((completed_at - assessment.started_at).total_seconds() / 60))

        report = convert_rubric_to_report(
            evaluation,
            assessment_id,
            candidate_name=user.name if user else None,
            timing=ReportTiming(total_duration_minutes=total_minutes, working_phase_minutes=total_minutes),
            coworkers_contacted=coworkers_contacted,
        )

        async with session_scope(self._session_factory) as session:
            await AssessmentRepository(session).save_report(assessment_id, report.to_document())
        logger.info(f"Stored report for assessment {assessment_id} (overall score {report.overall_score})")

        email_sent = await self._notify(
            report,
            assessment_id,
            user.email if user else None,
            user.name if user else None,
            app_base_url,
        )

        return ReportGenerationResult(success=True, report=report, cached=False, email_sent=email_sent)

    async def _get_or_run_evaluation(
        self,
        assessment: AssessmentModel,
        video_url: str,
        task_description: str | None,
        role_family_slug: str | None,
    ) -> RubricAssessmentOutput:
        """Reuse a completed evaluation or run one now."""
        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            video_assessment = await repo.get_by_assessment(assessment.id)
            summary = None
            if video_assessment is not None and video_assessment.status == VideoAssessmentStatus.COMPLETED:
                summary = await repo.get_summary(video_assessment.id)

        if summary is not None:
            return RubricAssessmentOutput.model_validate(summary.raw_ai_response)

        if video_assessment is not None and video_assessment.status == VideoAssessmentStatus.PROCESSING:
            raise EvaluationInProgressError(video_assessment.id)

        if video_assessment is None:
            video_assessment = await self._evaluator.create(assessment.id, assessment.user_id, video_url)

        logger.info(f"Running video evaluation {video_assessment.id} for report of assessment {assessment.id}")
        result = await self._evaluator.evaluate(video_assessment.id, task_description, role_family_slug)
        if not result.success:
            raise VideoEvaluationFailedError(result.error or "unknown error")

        results = await self._evaluator.get_results(video_assessment.id)
        if results.evaluation is None:
            raise VideoEvaluationFailedError("Could not retrieve video evaluation results")
        return results.evaluation

    async def _notify(
        self,
        report: AssessmentReport,
        assessment_id: str,
        email: str | None,
        candidate_name: str | None,
        app_base_url: str | None,
    ) -> bool:
        """Email the candidate; failures are logged and never raised."""
        if self._notifier is None or not self._notifier.is_configured() or not email:
            return False

        try:
            result = await self._notifier.send_report_email(
                to=email,
                report=report,
                assessment_id=assessment_id,
                app_base_url=app_base_url or get_settings().app_base_url,
                candidate_name=candidate_name,
            )
        except Exception as e:
            logger.error(f"Error sending report email for assessment {assessment_id}: {e}")
            return False

        if result.success:
            logger.info(f"Report email sent for assessment {assessment_id}")
        else:
            logger.warning(f"Failed to send report email for assessment {assessment_id}: {result.error}")
        return result.success

    async def get_report(self, assessment_id: str, requesting_user_id: str) -> ReportView:
        """
        Fetch the stored report of an assessment.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user does not own it.
            ReportNotFoundError: If no report has been generated yet.
        """
        async with session_scope(self._session_factory) as session:
            assessment = await self._load_owned(session, assessment_id, requesting_user_id)

        if not assessment.report:
            raise ReportNotFoundError(assessment_id)
        return ReportView(report=AssessmentReport.from_document(assessment.report), status=assessment.status)
