"""
Video assessment evaluator.

Runs rubric-based evaluation of a candidate's screen recording and keeps
the VideoAssessment state machine consistent:

    PENDING -> PROCESSING -> COMPLETED | FAILED

FAILED is the only state that moves backwards, to PENDING, through an
explicit retry. A run starts only by winning a compare-and-swap from PENDING
to PROCESSING, so at most one run is active per video assessment.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worksim_assessment.analysis.rubric_parsing import parse_rubric_response
from worksim_assessment.analysis.rubric_prompt import (
    VideoContext,
    build_rubric_evaluation_prompt,
    load_rubric,
)
from worksim_assessment.analysis.schemas import (
    EvaluationResults,
    RubricAssessmentOutput,
    StoredDimensionScore,
    TriggerResult,
    VideoEvaluationResult,
)
from worksim_assessment.config import get_settings
from worksim_assessment.db.models import VideoAssessmentModel
from worksim_assessment.db.repository import (
    AssessmentRepository,
    ScenarioRepository,
    VideoAssessmentRepository,
)
from worksim_assessment.db.session import session_scope
from worksim_assessment.errors import (
    EvaluationInProgressError,
    RetryNotAllowedError,
    VideoAssessmentNotFoundError,
)
from worksim_assessment.models.llm_client import LLMClientBase, MediaPart
from worksim_assessment.schemas import AssessmentLogEventType, VideoAssessmentStatus, utcnow

logger = logging.getLogger(__name__)

VIDEO_MIME_TYPE = "video/mp4"


class VideoAssessmentEvaluator:
    """
    Evaluates screen recordings against the role family rubric.

    Capability errors, timeouts and malformed responses never escape
    evaluate(); they end the run in FAILED with the reason retained.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        llm_client: LLMClientBase,
        max_attempts: int | None = None,
        default_role_family: str | None = None,
        model: str | None = None,
    ) -> None:
        """
        Initialize the evaluator.

        Args:
            session_factory: Factory for database sessions.
            llm_client: Analysis capability that accepts video media.
            max_attempts: Failed runs allowed before retry() refuses.
            default_role_family: Rubric used when none is given.
            model: Model override for evaluation calls.
        """
        settings = get_settings()
        self._session_factory = session_factory
        self._llm = llm_client
        self._max_attempts = max_attempts or settings.max_evaluation_attempts
        self._default_role_family = default_role_family or settings.default_role_family
        self._model = model or settings.video_evaluation_model
        self._background_tasks: set[asyncio.Task] = set()

    async def create(
        self,
        assessment_id: str,
        candidate_id: str,
        video_url: str,
    ) -> VideoAssessmentModel:
        """
        Create the PENDING video assessment of an assessment.

        Returns the existing row when one already exists for the assessment.
        """
        async with session_scope(self._session_factory) as session:
            video_assessment, created = await VideoAssessmentRepository(session).get_or_create(
                assessment_id, candidate_id, video_url
            )
        if created:
            logger.info(f"Created video assessment {video_assessment.id} for assessment {assessment_id}")
        return video_assessment

    async def _log_event(
        self,
        video_assessment_id: str,
        event_type: AssessmentLogEventType,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        async with session_scope(self._session_factory) as session:
            await VideoAssessmentRepository(session).add_log(video_assessment_id, event_type, metadata)

    async def _claim(self, video_assessment_id: str) -> VideoAssessmentModel:
        """
        Move a job into PROCESSING, resetting FAILED to PENDING first.

        Raises:
            VideoAssessmentNotFoundError: If the job does not exist.
            EvaluationInProgressError: If another run holds the job or it is
                already COMPLETED.
        """
        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            video_assessment = await repo.get_by_id(video_assessment_id)
            if video_assessment is None:
                raise VideoAssessmentNotFoundError(video_assessment_id)

            await repo.transition(
                video_assessment_id,
                (VideoAssessmentStatus.FAILED,),
                VideoAssessmentStatus.PENDING,
            )
            claimed = await repo.transition(
                video_assessment_id,
                (VideoAssessmentStatus.PENDING,),
                VideoAssessmentStatus.PROCESSING,
            )
            if claimed:
                await repo.add_log(video_assessment_id, AssessmentLogEventType.STARTED)

        if not claimed:
            raise EvaluationInProgressError(video_assessment_id)
        return video_assessment

    async def evaluate(
        self,
        video_assessment_id: str,
        task_description: str | None = None,
        role_family_slug: str | None = None,
    ) -> VideoEvaluationResult:
        """
        Run one evaluation of a video assessment.

        Args:
            video_assessment_id: Job to evaluate.
            task_description: Scenario task, passed to the model as context.
            role_family_slug: Rubric to evaluate against.

        Returns:
            The run outcome; success is False when the run ended in FAILED.

        Raises:
            VideoAssessmentNotFoundError: If the job does not exist.
            EvaluationInProgressError: If the job is already PROCESSING or
                COMPLETED, so no new run was started.
        """
        video_assessment = await self._claim(video_assessment_id)
        role_family = role_family_slug or self._default_role_family

        try:
            evaluation = await self._run(video_assessment, task_description, role_family)
        except Exception as e:
            return await self._record_failure(video_assessment_id, e)

        logger.info(
            f"Video assessment {video_assessment_id} completed "
            f"(overall score {evaluation.overall_score})"
        )
        return VideoEvaluationResult(
            success=True,
            video_assessment_id=video_assessment_id,
            overall_score=evaluation.overall_score,
            dimension_scores={d.dimension_slug: d.score for d in evaluation.dimension_scores},
            summary=evaluation.overall_summary,
        )

    async def _run(
        self,
        video_assessment: VideoAssessmentModel,
        task_description: str | None,
        role_family_slug: str,
    ) -> RubricAssessmentOutput:
        rubric = load_rubric(role_family_slug)
        context = VideoContext(task_description=task_description) if task_description else None
        prompt = build_rubric_evaluation_prompt(rubric, context)

        await self._log_event(
            video_assessment.id,
            AssessmentLogEventType.PROMPT_SENT,
            {"prompt_length": len(prompt), "role_family": rubric.slug, "model": self._model},
        )

        response_text = await self._llm.generate_content(
            prompt,
            media=[MediaPart(uri=video_assessment.video_url, mime_type=VIDEO_MIME_TYPE)],
            model=self._model,
        )

        await self._log_event(
            video_assessment.id,
            AssessmentLogEventType.RESPONSE_RECEIVED,
            {"response_length": len(response_text)},
        )
        await self._log_event(video_assessment.id, AssessmentLogEventType.PARSING_STARTED)

        evaluation = parse_rubric_response(response_text, rubric=rubric, role_family_slug=rubric.slug)

        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            await repo.add_log(
                video_assessment.id,
                AssessmentLogEventType.PARSING_COMPLETED,
                {
                    "parsed_dimension_count": sum(
                        1 for d in evaluation.dimension_scores if d.score is not None
                    )
                },
            )
            await repo.save_results(video_assessment.id, evaluation, utcnow())
            await repo.add_log(video_assessment.id, AssessmentLogEventType.COMPLETED)

        return evaluation

    async def _record_failure(self, video_assessment_id: str, error: Exception) -> VideoEvaluationResult:
        reason = str(error) or type(error).__name__
        logger.error(f"Video evaluation {video_assessment_id} failed: {reason}", exc_info=error)

        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            await repo.add_log(
                video_assessment_id,
                AssessmentLogEventType.ERROR,
                {"error_message": reason, "error_name": type(error).__name__},
            )
            retry_count = await repo.mark_failed(video_assessment_id, reason)

        logger.error(
            f"Video assessment {video_assessment_id} failed "
            f"(attempt {retry_count}/{self._max_attempts}). Reason: {reason}"
        )
        if retry_count >= self._max_attempts:
            logger.error(
                f"Video assessment {video_assessment_id} has failed {retry_count} times "
                f"and will not be retried automatically"
            )

        return VideoEvaluationResult(
            success=False,
            video_assessment_id=video_assessment_id,
            error=reason,
        )

    async def get_results(self, video_assessment_id: str) -> EvaluationResults:
        """
        Get the stored state, scores and summary of a video assessment.

        Raises:
            VideoAssessmentNotFoundError: If the job does not exist.
        """
        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            video_assessment = await repo.get_by_id(video_assessment_id)
            if video_assessment is None:
                raise VideoAssessmentNotFoundError(video_assessment_id)
            scores = await repo.get_scores(video_assessment_id)
            summary = await repo.get_summary(video_assessment_id)

        completed = video_assessment.status == VideoAssessmentStatus.COMPLETED
        return EvaluationResults(
            video_assessment_id=video_assessment.id,
            status=video_assessment.status,
            completed_at=video_assessment.completed_at,
            retry_count=video_assessment.retry_count,
            last_failure_reason=video_assessment.last_failure_reason,
            scores=[
                StoredDimensionScore(
                    dimension=row.dimension,
                    score=row.score,
                    confidence=row.confidence,
                    observable_behaviors=json.loads(row.observable_behaviors or "[]"),
                    timestamps=row.timestamps or [],
                    trainable_gap=row.trainable_gap,
                    rationale=row.rationale,
                )
                for row in scores
            ],
            overall_summary=summary.overall_summary if completed and summary else None,
            evaluation=(
                RubricAssessmentOutput.model_validate(summary.raw_ai_response)
                if completed and summary
                else None
            ),
        )

    def _spawn(self, coro: Coroutine[Any, Any, VideoEvaluationResult], video_assessment_id: str) -> None:
        task = asyncio.create_task(coro, name=f"video-evaluation-{video_assessment_id}")
        self._background_tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, EvaluationInProgressError):
            logger.info(f"Background evaluation skipped: {error.message}")
        elif error is not None:
            logger.error(f"Background evaluation {task.get_name()} crashed", exc_info=error)

    async def wait_for_background(self) -> None:
        """Wait for every background evaluation started by this evaluator."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _scenario_context(
        self, session: AsyncSession, assessment_id: str
    ) -> tuple[str | None, str | None]:
        assessment = await AssessmentRepository(session).get_by_id(assessment_id)
        if assessment is None:
            return None, None
        scenario = await ScenarioRepository(session).get_by_id(assessment.scenario_id)
        if scenario is None:
            return None, None
        return scenario.task_description or None, scenario.role_family_slug

    async def trigger(
        self,
        assessment_id: str,
        candidate_id: str,
        video_url: str,
        task_description: str | None = None,
        role_family_slug: str | None = None,
    ) -> TriggerResult:
        """
        Create-or-get the video assessment and start evaluating it in the background.

        Nothing is started when the job is already PROCESSING or COMPLETED.

        Args:
            assessment_id: Assessment the recording belongs to.
            candidate_id: Candidate user id.
            video_url: Screen recording URL.
            task_description: Scenario task, passed to the model as context.
            role_family_slug: Rubric to evaluate against.

        Returns:
            The trigger outcome.
        """
        video_assessment = await self.create(assessment_id, candidate_id, video_url)

        if video_assessment.status in (VideoAssessmentStatus.PROCESSING, VideoAssessmentStatus.COMPLETED):
            logger.info(
                f"Video assessment {video_assessment.id} is {video_assessment.status.value}, not re-triggering"
            )
            return TriggerResult(success=True, video_assessment_id=video_assessment.id)

        self._spawn(
            self.evaluate(video_assessment.id, task_description, role_family_slug),
            video_assessment.id,
        )
        return TriggerResult(success=True, video_assessment_id=video_assessment.id)

    async def retry(self, video_assessment_id: str) -> TriggerResult:
        """
        Retry a FAILED video assessment that has attempts left.

        Raises:
            VideoAssessmentNotFoundError: If the job does not exist.
            RetryNotAllowedError: If the job is not FAILED or has used every attempt.
        """
        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            video_assessment = await repo.get_by_id(video_assessment_id)
            if video_assessment is None:
                raise VideoAssessmentNotFoundError(video_assessment_id)
            if video_assessment.status != VideoAssessmentStatus.FAILED:
                raise RetryNotAllowedError(
                    f"Cannot retry assessment with status {video_assessment.status.value}."
                )
            if video_assessment.retry_count >= self._max_attempts:
                raise RetryNotAllowedError(
                    f"Assessment has already failed {video_assessment.retry_count} times."
                )
            task_description, role_family = await self._scenario_context(
                session, video_assessment.assessment_id
            )
            reset = await repo.transition(
                video_assessment_id,
                (VideoAssessmentStatus.FAILED,),
                VideoAssessmentStatus.PENDING,
            )

        if not reset:
            raise RetryNotAllowedError("Assessment status changed while retrying.")

        logger.info(f"Retrying video assessment {video_assessment_id}")
        self._spawn(self.evaluate(video_assessment_id, task_description, role_family), video_assessment_id)
        return TriggerResult(success=True, video_assessment_id=video_assessment_id)

    async def force_retry(self, video_assessment_id: str) -> TriggerResult:
        """
        Admin override: reset attempts and failure reason, then evaluate again.

        Raises:
            VideoAssessmentNotFoundError: If the job does not exist.
            RetryNotAllowedError: If a run is currently PROCESSING.
        """
        async with session_scope(self._session_factory) as session:
            repo = VideoAssessmentRepository(session)
            video_assessment = await repo.get_by_id(video_assessment_id)
            if video_assessment is None:
                raise VideoAssessmentNotFoundError(video_assessment_id)
            task_description, role_family = await self._scenario_context(
                session, video_assessment.assessment_id
            )
            reset = await repo.transition(
                video_assessment_id,
                (
                    VideoAssessmentStatus.PENDING,
                    VideoAssessmentStatus.FAILED,
                    VideoAssessmentStatus.COMPLETED,
                ),
                VideoAssessmentStatus.PENDING,
                retry_count=0,
                last_failure_reason=None,
            )

        if not reset:
            raise RetryNotAllowedError("Video evaluation is currently in progress.")

        logger.info(f"Admin force-retry for video assessment {video_assessment_id}")
        self._spawn(self.evaluate(video_assessment_id, task_description, role_family), video_assessment_id)
        return TriggerResult(success=True, video_assessment_id=video_assessment_id)
