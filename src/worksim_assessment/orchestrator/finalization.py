"""
Assessment finalization orchestrator.

Moves an assessment from WORKING to COMPLETED and then runs the post-completion
side effects: pull request cleanup, video evaluation kickoff and profile photo
generation. The status transition is committed first; a failing side effect is
logged and reported in its own result field, never as a finalization failure.
"""

import asyncio
import logging
import math
from collections.abc import Coroutine
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worksim_assessment.analysis.video_evaluation import VideoAssessmentEvaluator
from worksim_assessment.config import get_settings
from worksim_assessment.db.models import AssessmentModel
from worksim_assessment.db.repository import (
    AssessmentRepository,
    RecordingRepository,
    ScenarioRepository,
    UserRepository,
)
from worksim_assessment.db.session import session_scope
from worksim_assessment.errors import (
    AssessmentAccessDeniedError,
    AssessmentNotFoundError,
    InvalidAssessmentStateError,
)
from worksim_assessment.integrations.pr_provider import PrCiStatus, PullRequestProviderBase
from worksim_assessment.integrations.profile_photo import ProfilePhotoServiceBase
from worksim_assessment.orchestrator.schemas import (
    AssessmentSnapshot,
    CiStatusOutcome,
    FinalizeResult,
    PrCleanupOutcome,
    ProfilePhotoOutcome,
    TimingInfo,
    VideoAssessmentTrigger,
)
from worksim_assessment.schemas import ACTIVE_WORK_STATUS, AssessmentStatus, RecordingType, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AssessmentFinalizer:
    """Completes assessments and fans out the post-completion side effects."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        evaluator: VideoAssessmentEvaluator,
        pr_provider: PullRequestProviderBase,
        photo_service: ProfilePhotoServiceBase,
        side_effect_timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._evaluator = evaluator
        self._pr_provider = pr_provider
        self._photo_service = photo_service
        self._side_effect_timeout = side_effect_timeout or get_settings().side_effect_timeout

    async def finalize(self, assessment_id: str, requesting_user_id: str) -> FinalizeResult:
        """
        Finalize an assessment after the defense call.

        Args:
            assessment_id: Assessment to finalize.
            requesting_user_id: Authenticated user; must own the assessment.

        Returns:
            The finalized assessment, timing and side-effect outcomes.

        Raises:
            AssessmentNotFoundError: If the assessment does not exist.
            AssessmentAccessDeniedError: If the user does not own it.
            InvalidAssessmentStateError: If it is not in the active-work status.
        """
        completed_at = utcnow()

        async with session_scope(self._session_factory) as session:
            repo = AssessmentRepository(session)
            assessment = await repo.get_by_id(assessment_id)
            if assessment is None:
                raise AssessmentNotFoundError(assessment_id)
            if assessment.user_id != requesting_user_id:
                raise AssessmentAccessDeniedError("Unauthorized to modify this assessment")
            if assessment.status != ACTIVE_WORK_STATUS:
                raise InvalidAssessmentStateError(assessment.status.value, ACTIVE_WORK_STATUS.value)

            if await repo.mark_completed(assessment_id, completed_at) != 1:
                # Lost a race with a concurrent finalize
                await session.refresh(assessment)
                raise InvalidAssessmentStateError(assessment.status.value, ACTIVE_WORK_STATUS.value)

            recording_url = await RecordingRepository(session).get_first_url(
                assessment_id, RecordingType.SCREEN
            )
            scenario = await ScenarioRepository(session).get_by_id(assessment.scenario_id)

        started_at = assessment.started_at
        total_duration_seconds = max(0, math.floor((completed_at - started_at).total_seconds()))
        logger.info(f"Assessment {assessment_id} completed after {total_duration_seconds}s")

        (pr_cleanup, ci_status), video_assessment, profile_photo = await asyncio.gather(
            self._bounded(
                "PR cleanup",
                assessment_id,
                self._cleanup_pull_request(assessment),
                (None, None),
            ),
            self._bounded(
                "Video assessment trigger",
                assessment_id,
                self._trigger_video_assessment(
                    assessment,
                    recording_url,
                    scenario.task_description if scenario else None,
                    scenario.role_family_slug if scenario else None,
                ),
                VideoAssessmentTrigger(
                    triggered=bool(recording_url),
                    video_assessment_id=None,
                    has_recording=bool(recording_url),
                ),
            ),
            self._bounded(
                "Profile photo generation",
                assessment_id,
                self._generate_profile_photo(assessment),
                ProfilePhotoOutcome(generated=False, image_url=None),
            ),
        )

        return FinalizeResult(
            success=True,
            assessment=AssessmentSnapshot(
                id=assessment.id,
                status=AssessmentStatus.COMPLETED,
                started_at=started_at,
                completed_at=completed_at,
                pr_url=assessment.pr_url,
                ci_status=ci_status.model_dump(mode="json", by_alias=True) if ci_status else None,
            ),
            timing=TimingInfo(
                started_at=started_at,
                completed_at=completed_at,
                total_duration_seconds=total_duration_seconds,
            ),
            pr_cleanup=pr_cleanup,
            ci_status=(
                CiStatusOutcome(
                    overall_status=ci_status.overall_status,
                    checks_count=ci_status.checks_count,
                    checks_passed=ci_status.checks_passed,
                    checks_failed=ci_status.checks_failed,
                )
                if ci_status
                else None
            ),
            video_assessment=video_assessment,
            profile_photo=profile_photo,
        )

    async def _bounded(
        self,
        name: str,
        assessment_id: str,
        side_effect: Coroutine[Any, Any, T],
        fallback: T,
    ) -> T:
        """Run a side effect under the side-effect timeout, returning fallback on expiry."""
        try:
            return await asyncio.wait_for(side_effect, timeout=self._side_effect_timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"{name} for assessment {assessment_id} timed out after {self._side_effect_timeout}s"
            )
            return fallback

    async def _fetch_ci_status(self, assessment_id: str, pr_url: str) -> PrCiStatus | None:
        try:
            return await self._pr_provider.fetch_pr_ci_status(pr_url)
        except Exception as e:
            logger.warning(f"CI status fetch failed for assessment {assessment_id}: {e}")
            return None

    async def _cleanup_pull_request(
        self, assessment: AssessmentModel
    ) -> tuple[PrCleanupOutcome | None, PrCiStatus | None]:
        """Capture CI status, close the PR and persist what was captured."""
        if not assessment.pr_url:
            return None, None

        ci_status = await self._fetch_ci_status(assessment.id, assessment.pr_url)

        outcome: PrCleanupOutcome | None = None
        pr_snapshot = None
        try:
            result = await self._pr_provider.cleanup_pr_after_assessment(assessment.pr_url)
            if not result.success:
                logger.warning(f"PR cleanup warning for assessment {assessment.id}: {result.message}")
            outcome = PrCleanupOutcome(success=result.success, action=result.action, message=result.message)
            pr_snapshot = result.pr_snapshot
        except Exception as e:
            logger.error(f"PR cleanup error for assessment {assessment.id}: {e}")

        if pr_snapshot is not None or ci_status is not None:
            try:
                async with session_scope(self._session_factory) as session:
                    await AssessmentRepository(session).save_pr_results(
                        assessment.id,
                        pr_snapshot=pr_snapshot.model_dump(mode="json", by_alias=True) if pr_snapshot else None,
                        ci_status=ci_status.model_dump(mode="json", by_alias=True) if ci_status else None,
                    )
            except Exception as e:
                logger.error(f"Failed to store PR results for assessment {assessment.id}: {e}")

        return outcome, ci_status

    async def _trigger_video_assessment(
        self,
        assessment: AssessmentModel,
        recording_url: str | None,
        task_description: str | None,
        role_family_slug: str | None,
    ) -> VideoAssessmentTrigger:
        """Start background video evaluation when a screen recording exists."""
        if not recording_url:
            return VideoAssessmentTrigger(triggered=False, video_assessment_id=None, has_recording=False)

        video_assessment_id = None
        try:
            result = await self._evaluator.trigger(
                assessment_id=assessment.id,
                candidate_id=assessment.user_id,
                video_url=recording_url,
                task_description=task_description,
                role_family_slug=role_family_slug,
            )
            video_assessment_id = result.video_assessment_id
            if not result.success:
                logger.warning(f"Video assessment trigger warning for {assessment.id}: {result.error}")
        except Exception as e:
            logger.warning(f"Video assessment trigger error for {assessment.id}: {e}")

        # triggered reports that a recording was handed off, even if the kickoff failed
        return VideoAssessmentTrigger(
            triggered=True,
            video_assessment_id=video_assessment_id,
            has_recording=True,
        )

    async def _generate_profile_photo(self, assessment: AssessmentModel) -> ProfilePhotoOutcome:
        try:
            result = await self._photo_service.generate_profile_photo(assessment.id, assessment.user_id)
            if not result.success or not result.image_url:
                logger.warning(f"Profile photo not generated for assessment {assessment.id}: {result.error}")
                return ProfilePhotoOutcome(generated=False, image_url=None)

            async with session_scope(self._session_factory) as session:
                await UserRepository(session).set_image(assessment.user_id, result.image_url)
            return ProfilePhotoOutcome(generated=True, image_url=result.image_url)
        except Exception as e:
            logger.error(f"Profile photo generation failed for assessment {assessment.id}: {e}")
            return ProfilePhotoOutcome(generated=False, image_url=None)
