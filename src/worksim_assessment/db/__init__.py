"""
Database module for persistence.

Provides SQLAlchemy models, session helpers and the repository pattern for
assessment data.
"""

from worksim_assessment.db.models import (
    AssessmentModel,
    Base,
    ConversationModel,
    CoworkerModel,
    DimensionScoreModel,
    RecordingModel,
    ScenarioModel,
    UserModel,
    VideoAssessmentLogModel,
    VideoAssessmentModel,
    VideoAssessmentSummaryModel,
)
from worksim_assessment.db.repository import (
    AssessmentRepository,
    ConversationRepository,
    RecordingRepository,
    ScenarioRepository,
    UserRepository,
    VideoAssessmentRepository,
)
from worksim_assessment.db.session import (
    create_engine,
    create_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    "AssessmentModel",
    "Base",
    "ConversationModel",
    "CoworkerModel",
    "DimensionScoreModel",
    "RecordingModel",
    "ScenarioModel",
    "UserModel",
    "VideoAssessmentLogModel",
    "VideoAssessmentModel",
    "VideoAssessmentSummaryModel",
    "AssessmentRepository",
    "ConversationRepository",
    "RecordingRepository",
    "ScenarioRepository",
    "UserRepository",
    "VideoAssessmentRepository",
    "create_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
]
