"""
SQLAlchemy models for database persistence.

Defines the database schema for assessments, their conversations and
recordings, and the video evaluation jobs that feed the final report.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from worksim_assessment.schemas import (
    AssessmentLogEventType,
    AssessmentStatus,
    ConversationType,
    RecordingType,
    VideoAssessmentStatus,
    utcnow,
)


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class UserModel(Base):
    """Database model for candidates and admins."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(50), default="USER", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class ScenarioModel(Base):
    """Database model for work-simulation scenarios."""

    __tablename__ = "scenarios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    task_description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    role_family_slug: Mapped[str | None] = mapped_column(String(100), nullable=True)


class CoworkerModel(Base):
    """Database model for AI coworkers in a scenario."""

    __tablename__ = "coworkers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    scenario_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scenarios.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), default="", nullable=False)


class AssessmentModel(Base):
    """Database model for a candidate's attempt at a scenario."""

    __tablename__ = "assessments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    scenario_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scenarios.id"),
        nullable=False,
    )
    status: Mapped[AssessmentStatus] = mapped_column(
        SAEnum(AssessmentStatus, native_enum=False, length=32),
        default=AssessmentStatus.WELCOME,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pr_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    pr_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ci_status: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    report: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    conversations: Mapped[list["ConversationModel"]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
    )
    recordings: Mapped[list["RecordingModel"]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
    )
    video_assessment: Mapped[Optional["VideoAssessmentModel"]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        uselist=False,
    )


class ConversationModel(Base):
    """Database model for a transcript with a coworker or system persona."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessments.id"),
        nullable=False,
    )
    coworker_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("coworkers.id"),
        nullable=True,
    )
    type: Mapped[ConversationType] = mapped_column(
        SAEnum(ConversationType, native_enum=False, length=16),
        default=ConversationType.TEXT,
        nullable=False,
    )
    transcript: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    # Relationships
    assessment: Mapped["AssessmentModel"] = relationship(back_populates="conversations")


class RecordingModel(Base):
    """Database model for captured media of an assessment."""

    __tablename__ = "recordings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessments.id"),
        nullable=False,
    )
    type: Mapped[RecordingType] = mapped_column(
        SAEnum(RecordingType, native_enum=False, length=16),
        default=RecordingType.SCREEN,
        nullable=False,
    )
    storage_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    assessment: Mapped["AssessmentModel"] = relationship(back_populates="recordings")


class VideoAssessmentModel(Base):
    """Database model for the video evaluation job of an assessment."""

    __tablename__ = "video_assessments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("assessments.id"),
        nullable=False,
        unique=True,
    )
    candidate_id: Mapped[str] = mapped_column(String(36), nullable=False)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[VideoAssessmentStatus] = mapped_column(
        SAEnum(VideoAssessmentStatus, native_enum=False, length=16),
        default=VideoAssessmentStatus.PENDING,
        nullable=False,
    )
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    assessment: Mapped["AssessmentModel"] = relationship(back_populates="video_assessment")
    scores: Mapped[list["DimensionScoreModel"]] = relationship(
        back_populates="video_assessment",
        cascade="all, delete-orphan",
    )
    summary: Mapped[Optional["VideoAssessmentSummaryModel"]] = relationship(
        back_populates="video_assessment",
        cascade="all, delete-orphan",
        uselist=False,
    )
    logs: Mapped[list["VideoAssessmentLogModel"]] = relationship(
        back_populates="video_assessment",
        cascade="all, delete-orphan",
        order_by="VideoAssessmentLogModel.timestamp",
    )


class DimensionScoreModel(Base):
    """Database model for one scored rubric dimension."""

    __tablename__ = "dimension_scores"
    __table_args__ = (UniqueConstraint("video_assessment_id", "dimension"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    video_assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("video_assessments.id"),
        nullable=False,
    )
    dimension: Mapped[str] = mapped_column(String(100), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)
    observable_behaviors: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    timestamps: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    trainable_gap: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rationale: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Relationships
    video_assessment: Mapped["VideoAssessmentModel"] = relationship(back_populates="scores")


class VideoAssessmentSummaryModel(Base):
    """Database model for the structured output of a completed evaluation."""

    __tablename__ = "video_assessment_summaries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    video_assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("video_assessments.id"),
        nullable=False,
        unique=True,
    )
    overall_summary: Mapped[str] = mapped_column(Text, nullable=False)
    raw_ai_response: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Relationships
    video_assessment: Mapped["VideoAssessmentModel"] = relationship(back_populates="summary")


class VideoAssessmentLogModel(Base):
    """Database model for audit events of an evaluation run."""

    __tablename__ = "video_assessment_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    video_assessment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("video_assessments.id"),
        nullable=False,
    )
    event_type: Mapped[AssessmentLogEventType] = mapped_column(
        SAEnum(AssessmentLogEventType, native_enum=False, length=32),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        default=dict,
        nullable=False,
    )

    # Relationships
    video_assessment: Mapped["VideoAssessmentModel"] = relationship(back_populates="logs")
