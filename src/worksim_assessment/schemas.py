"""
Shared pydantic schemas and enums.

Defines the status enums and conversation transcript types used across
the orchestrators, the evaluator and the memory builder.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Get current UTC datetime as a naive value, matching the database columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for JSON documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AssessmentStatus(str, Enum):
    """Lifecycle of a candidate's attempt at a scenario."""

    WELCOME = "WELCOME"
    HR_INTERVIEW = "HR_INTERVIEW"
    ONBOARDING = "ONBOARDING"
    WORKING = "WORKING"
    FINAL_DEFENSE = "FINAL_DEFENSE"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"


# Status an assessment must be in for finalize() to accept it
ACTIVE_WORK_STATUS = AssessmentStatus.WORKING


class VideoAssessmentStatus(str, Enum):
    """States of a video evaluation job."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ConversationType(str, Enum):
    """Kind of conversation between the candidate and a persona."""

    TEXT = "text"
    VOICE = "voice"
    KICKOFF = "kickoff"
    DEFENSE = "defense"


class RecordingType(str, Enum):
    """Kind of media captured during the assessment."""

    SCREEN = "screen"
    WEBCAM = "webcam"
    AUDIO = "audio"


class AssessmentLogEventType(str, Enum):
    """Audit events written while a video evaluation runs."""

    STARTED = "STARTED"
    PROMPT_SENT = "PROMPT_SENT"
    RESPONSE_RECEIVED = "RESPONSE_RECEIVED"
    PARSING_STARTED = "PARSING_STARTED"
    PARSING_COMPLETED = "PARSING_COMPLETED"
    ERROR = "ERROR"
    COMPLETED = "COMPLETED"


class ChatMessage(BaseModel):
    """A single transcript entry."""

    role: Literal["user", "model"] = Field(..., description="user is the candidate, model the persona")
    text: str = Field(..., description="Message text")
    timestamp: str = Field(default="", description="ISO timestamp of the message")


class ConversationRecord(BaseModel):
    """A conversation transcript scoped to one assessment."""

    assessment_id: str = Field(..., description="Owning assessment")
    coworker_id: str | None = Field(default=None, description="Coworker id, None for system personas")
    type: ConversationType = Field(default=ConversationType.TEXT, description="Conversation type")
    messages: list[ChatMessage] = Field(default_factory=list, description="Ordered transcript")
