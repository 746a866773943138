"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for the reads and writes the
orchestrators need. Repositories never commit; the caller owns the
transaction.
"""

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import distinct, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from worksim_assessment.analysis.schemas import RubricAssessmentOutput
from worksim_assessment.db.models import (
    AssessmentModel,
    Base,
    ConversationModel,
    DimensionScoreModel,
    RecordingModel,
    ScenarioModel,
    UserModel,
    VideoAssessmentLogModel,
    VideoAssessmentModel,
    VideoAssessmentSummaryModel,
)
from worksim_assessment.schemas import (
    AssessmentLogEventType,
    AssessmentStatus,
    ChatMessage,
    ConversationRecord,
    ConversationType,
    RecordingType,
    VideoAssessmentStatus,
)

T = TypeVar("T", bound=Base)

_TIMESTAMP_RE = re.compile(r"^(\d{1,2}:)?\d{1,2}:\d{2}$")


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: str) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's id.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, entity_id)


class UserRepository(BaseRepository[UserModel]):
    """Repository for user operations."""

    @property
    def _model_class(self) -> type[UserModel]:
        """Get the model class."""
        return UserModel

    async def set_image(self, user_id: str, image_url: str) -> None:
        """Store a new profile image URL on the user."""
        stmt = update(UserModel).where(UserModel.id == user_id).values(image=image_url)
        await self._session.execute(stmt)


class ScenarioRepository(BaseRepository[ScenarioModel]):
    """Repository for scenario lookups."""

    @property
    def _model_class(self) -> type[ScenarioModel]:
        """Get the model class."""
        return ScenarioModel


class AssessmentRepository(BaseRepository[AssessmentModel]):
    """Repository for assessment operations."""

    @property
    def _model_class(self) -> type[AssessmentModel]:
        """Get the model class."""
        return AssessmentModel

    async def mark_completed(self, assessment_id: str, completed_at: datetime) -> int:
        """
        Transition an assessment from the active-work status to COMPLETED.

        The update is conditional on the current status so two concurrent
        finalize calls cannot both apply.

        Args:
            assessment_id: Assessment to complete.
            completed_at: Completion timestamp.

        Returns:
            Number of rows updated (0 if the status changed underneath us).
        """
        stmt = (
            update(AssessmentModel)
            .where(
                AssessmentModel.id == assessment_id,
                AssessmentModel.status == AssessmentStatus.WORKING,
            )
            .values(status=AssessmentStatus.COMPLETED, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def save_pr_results(
        self,
        assessment_id: str,
        pr_snapshot: dict[str, Any] | None = None,
        ci_status: dict[str, Any] | None = None,
    ) -> None:
        """Persist the PR snapshot and final CI status captured at finalization."""
        values: dict[str, Any] = {}
        if pr_snapshot is not None:
            values["pr_snapshot"] = pr_snapshot
        if ci_status is not None:
            values["ci_status"] = ci_status
        if not values:
            return
        stmt = (
            update(AssessmentModel)
            .where(AssessmentModel.id == assessment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def save_report(self, assessment_id: str, report: dict[str, Any]) -> None:
        """Replace the report document on an assessment."""
        stmt = (
            update(AssessmentModel)
            .where(AssessmentModel.id == assessment_id)
            .values(report=report)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)


class RecordingRepository(BaseRepository[RecordingModel]):
    """Repository for recording lookups."""

    @property
    def _model_class(self) -> type[RecordingModel]:
        """Get the model class."""
        return RecordingModel

    async def get_first_url(
        self,
        assessment_id: str,
        recording_type: RecordingType = RecordingType.SCREEN,
    ) -> str | None:
        """
        Get the storage URL of the earliest recording of a type.

        Args:
            assessment_id: Owning assessment.
            recording_type: Recording type to look for.

        Returns:
            The storage URL, or None if no such recording exists.
        """
        stmt = (
            select(RecordingModel.storage_url)
            .where(
                RecordingModel.assessment_id == assessment_id,
                RecordingModel.type == recording_type,
            )
            .order_by(RecordingModel.created_at)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class ConversationRepository(BaseRepository[ConversationModel]):
    """Repository for conversation transcripts."""

    @property
    def _model_class(self) -> type[ConversationModel]:
        """Get the model class."""
        return ConversationModel

    async def list_for_assessment(
        self,
        assessment_id: str,
        types: list[ConversationType] | None = None,
    ) -> list[ConversationModel]:
        """
        List conversations of an assessment in creation order.

        Args:
            assessment_id: Owning assessment.
            types: Optional conversation type filter.

        Returns:
            List of conversations.
        """
        stmt = select(ConversationModel).where(ConversationModel.assessment_id == assessment_id)
        if types:
            stmt = stmt.where(ConversationModel.type.in_(types))
        stmt = stmt.order_by(ConversationModel.created_at, ConversationModel.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_records(
        self,
        assessment_id: str,
        types: list[ConversationType] | None = None,
    ) -> list[ConversationRecord]:
        """List conversations as validated transcript records."""
        return [
            ConversationRecord(
                assessment_id=conv.assessment_id,
                coworker_id=conv.coworker_id,
                type=conv.type,
                messages=[ChatMessage.model_validate(m) for m in conv.transcript or []],
            )
            for conv in await self.list_for_assessment(assessment_id, types)
        ]

    async def count_distinct_coworkers(self, assessment_id: str) -> int:
        """Count distinct coworkers the candidate had a conversation with."""
        stmt = select(func.count(distinct(ConversationModel.coworker_id))).where(
            ConversationModel.assessment_id == assessment_id,
            ConversationModel.coworker_id.is_not(None),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one() or 0)


class VideoAssessmentRepository(BaseRepository[VideoAssessmentModel]):
    """Repository for video evaluation jobs and their results."""

    @property
    def _model_class(self) -> type[VideoAssessmentModel]:
        """Get the model class."""
        return VideoAssessmentModel

    async def get_by_assessment(self, assessment_id: str) -> VideoAssessmentModel | None:
        """Get the video assessment of an assessment, if any."""
        stmt = select(VideoAssessmentModel).where(
            VideoAssessmentModel.assessment_id == assessment_id
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        assessment_id: str,
        candidate_id: str,
        video_url: str,
    ) -> tuple[VideoAssessmentModel, bool]:
        """
        Get the video assessment of an assessment, creating a PENDING one.

        Args:
            assessment_id: Owning assessment.
            candidate_id: Candidate user id.
            video_url: Recording to evaluate.

        Returns:
            Tuple of the video assessment and whether it was created.
        """
        existing = await self.get_by_assessment(assessment_id)
        if existing:
            return existing, False

        video_assessment = VideoAssessmentModel(
            assessment_id=assessment_id,
            candidate_id=candidate_id,
            video_url=video_url,
            status=VideoAssessmentStatus.PENDING,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(video_assessment)
        except IntegrityError:
            # Lost a race with another creator; the unique row now exists.
            existing = await self.get_by_assessment(assessment_id)
            if existing is None:
                raise
            return existing, False
        await self._session.refresh(video_assessment)
        return video_assessment, True

    async def transition(
        self,
        video_assessment_id: str,
        from_statuses: tuple[VideoAssessmentStatus, ...],
        to_status: VideoAssessmentStatus,
        **values: Any,
    ) -> bool:
        """
        Compare-and-swap the status of a video assessment.

        Args:
            video_assessment_id: Video assessment to update.
            from_statuses: Statuses the row must currently be in.
            to_status: New status.
            **values: Extra column values to set with the transition.

        Returns:
            True if this call applied the transition.
        """
        stmt = (
            update(VideoAssessmentModel)
            .where(
                VideoAssessmentModel.id == video_assessment_id,
                VideoAssessmentModel.status.in_(from_statuses),
            )
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def mark_failed(self, video_assessment_id: str, reason: str) -> int:
        """
        Move a PROCESSING job to FAILED, keeping the error.

        Returns:
            The retry count after this failure.
        """
        stmt = (
            update(VideoAssessmentModel)
            .where(VideoAssessmentModel.id == video_assessment_id)
            .values(
                status=VideoAssessmentStatus.FAILED,
                retry_count=VideoAssessmentModel.retry_count + 1,
                last_failure_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        count = await self._session.execute(
            select(VideoAssessmentModel.retry_count).where(
                VideoAssessmentModel.id == video_assessment_id
            )
        )
        return int(count.scalar_one_or_none() or 0)

    async def save_results(
        self,
        video_assessment_id: str,
        evaluation: RubricAssessmentOutput,
        completed_at: datetime,
    ) -> None:
        """
        Store score rows and the summary, and mark the job COMPLETED.

        Args:
            video_assessment_id: Video assessment being completed.
            evaluation: Validated rubric output.
            completed_at: Completion timestamp.
        """
        existing_scores = await self._session.execute(
            select(DimensionScoreModel).where(
                DimensionScoreModel.video_assessment_id == video_assessment_id
            )
        )
        by_dimension = {row.dimension: row for row in existing_scores.scalars()}

        for dim in evaluation.dimension_scores:
            if dim.score is None:
                continue
            values = {
                "score": float(dim.score),
                "confidence": dim.confidence,
                "observable_behaviors": json.dumps(
                    [b.model_dump() for b in dim.observable_behaviors]
                ),
                "timestamps": [ts for ts in dim.timestamps if _TIMESTAMP_RE.match(ts)],
                "trainable_gap": dim.trainable_gap,
                "rationale": dim.rationale,
            }
            row = by_dimension.get(dim.dimension_slug)
            if row is None:
                self._session.add(
                    DimensionScoreModel(
                        video_assessment_id=video_assessment_id,
                        dimension=dim.dimension_slug,
                        **values,
                    )
                )
            else:
                for key, value in values.items():
                    setattr(row, key, value)

        raw = evaluation.model_dump(mode="json", by_alias=True)
        summary = await self.get_summary(video_assessment_id)
        if summary is None:
            self._session.add(
                VideoAssessmentSummaryModel(
                    video_assessment_id=video_assessment_id,
                    overall_summary=evaluation.overall_summary,
                    raw_ai_response=raw,
                )
            )
        else:
            summary.overall_summary = evaluation.overall_summary
            summary.raw_ai_response = raw

        await self._session.flush()
        await self._session.execute(
            update(VideoAssessmentModel)
            .where(VideoAssessmentModel.id == video_assessment_id)
            .values(status=VideoAssessmentStatus.COMPLETED, completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )

    async def get_summary(self, video_assessment_id: str) -> VideoAssessmentSummaryModel | None:
        """Get the stored summary of a completed evaluation."""
        stmt = select(VideoAssessmentSummaryModel).where(
            VideoAssessmentSummaryModel.video_assessment_id == video_assessment_id
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_scores(self, video_assessment_id: str) -> list[DimensionScoreModel]:
        """Get the stored score rows of an evaluation."""
        stmt = (
            select(DimensionScoreModel)
            .where(DimensionScoreModel.video_assessment_id == video_assessment_id)
            .order_by(DimensionScoreModel.dimension)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add_log(
        self,
        video_assessment_id: str,
        event_type: AssessmentLogEventType,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append an audit event for an evaluation run."""
        self._session.add(
            VideoAssessmentLogModel(
                video_assessment_id=video_assessment_id,
                event_type=event_type,
                metadata_=metadata or {},
            )
        )

    async def get_logs(self, video_assessment_id: str) -> list[VideoAssessmentLogModel]:
        """Get audit events of an evaluation in order."""
        stmt = (
            select(VideoAssessmentLogModel)
            .where(VideoAssessmentLogModel.video_assessment_id == video_assessment_id)
            .order_by(VideoAssessmentLogModel.timestamp, VideoAssessmentLogModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
