"""
Shared fixtures: a temporary SQLite database and fake external capabilities.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worksim_assessment.analysis.video_evaluation import VideoAssessmentEvaluator
from worksim_assessment.db import (
    AssessmentModel,
    ConversationModel,
    CoworkerModel,
    RecordingModel,
    ScenarioModel,
    UserModel,
    create_engine,
    create_session_factory,
    init_db,
    session_scope,
)
from worksim_assessment.errors import AnalysisError
from worksim_assessment.integrations.notifier import EmailResult, ReportNotifierBase
from worksim_assessment.integrations.pr_provider import (
    PrCiStatus,
    PrCleanupResult,
    PrSnapshot,
    PullRequestProviderBase,
)
from worksim_assessment.integrations.profile_photo import ProfilePhotoResult, ProfilePhotoServiceBase
from worksim_assessment.models.llm_client import LLMClientBase, MediaPart
from worksim_assessment.reporting.schemas import AssessmentReport
from worksim_assessment.schemas import AssessmentStatus, ConversationType, RecordingType, utcnow


def rubric_response(**overrides: Any) -> str:
    """A valid rubric evaluation response as the model would return it."""
    data: dict[str, Any] = {
        "evaluation_version": "3.0.0",
        "role_family_slug": "engineering",
        "overall_score": 3.1,
        "overall_summary": "Solid engineer who communicates clearly and ships working code.",
        "dimension_scores": {
            "communication": {
                "score": 3,
                "confidence": "high",
                "rationale": "Asked precise questions early.",
                "observable_behaviors": [
                    {"timestamp": "02:15", "behavior": "Clarified requirements with the manager"},
                ],
                "trainable_gap": False,
                "green_flags": ["Clear status updates"],
                "red_flags": [],
            },
            "technical_execution": {
                "score": 4,
                "confidence": "medium",
                "rationale": "Clean implementation with tests.",
                "observable_behaviors": [
                    {"timestamp": "15:40", "behavior": "Wrote unit tests before refactoring"},
                ],
                "green_flags": ["Tested edge cases"],
                "red_flags": [],
            },
            "work_process": {
                "score": 2,
                "confidence": "low",
                "rationale": "Spent a long time without committing.",
                "observable_behaviors": [],
                "trainable_gap": True,
                "green_flags": [],
                "red_flags": ["No incremental commits"],
            },
            "learning_velocity": {"score": None, "rationale": "Not enough evidence."},
        },
        "detected_red_flags": [],
        "top_strengths": [
            {"dimension": "technical_execution", "score": 4, "description": "Strong test discipline"},
        ],
        "growth_areas": [
            {"dimension": "work_process", "score": 2, "description": "Commit more often"},
        ],
        "evaluation_confidence": "medium",
        "insufficient_evidence_notes": None,
    }
    data.update(overrides)
    return "```json\n" + json.dumps(data) + "\n```"


class FakeLLMClient(LLMClientBase):
    """Returns queued responses; an Exception in the queue is raised instead."""

    def __init__(self, responses: list[Any] | None = None, default: str | None = None) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def generate_content(
        self,
        prompt: str,
        media: list[MediaPart] | None = None,
        model: str | None = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "media": media, "model": model})
        response = self.responses.pop(0) if self.responses else self.default
        if response is None:
            raise AnalysisError("No response configured")
        if isinstance(response, Exception):
            raise response
        return response


class FakePrProvider(PullRequestProviderBase):
    def __init__(
        self,
        cleanup: PrCleanupResult | Exception | None = None,
        ci_status: PrCiStatus | Exception | None = None,
    ) -> None:
        self.cleanup = cleanup or PrCleanupResult(
            success=True,
            action="closed",
            message="PR closed after assessment",
            pr_snapshot=PrSnapshot(
                url="https://github.com/acme/app/pull/7",
                provider="github",
                fetched_at=utcnow(),
                title="Add pagination",
            ),
        )
        self.ci_status = ci_status or PrCiStatus(
            pr_url="https://github.com/acme/app/pull/7",
            fetched_at=utcnow(),
            overall_status="success",
            checks_count=2,
            checks_passed=2,
            checks_failed=0,
        )
        self.cleaned: list[str] = []

    async def cleanup_pr_after_assessment(self, pr_url: str) -> PrCleanupResult:
        self.cleaned.append(pr_url)
        if isinstance(self.cleanup, Exception):
            raise self.cleanup
        return self.cleanup

    async def fetch_pr_ci_status(self, pr_url: str) -> PrCiStatus:
        if isinstance(self.ci_status, Exception):
            raise self.ci_status
        return self.ci_status


class FakeNotifier(ReportNotifierBase):
    def __init__(self, configured: bool = True, result: EmailResult | Exception | None = None) -> None:
        self.configured = configured
        self.result = result or EmailResult(success=True, message_id="msg-1")
        self.sent: list[dict[str, Any]] = []

    def is_configured(self) -> bool:
        return self.configured

    async def send_report_email(
        self,
        to: str,
        report: AssessmentReport,
        assessment_id: str,
        app_base_url: str,
        candidate_name: str | None = None,
    ) -> EmailResult:
        self.sent.append({"to": to, "assessment_id": assessment_id, "app_base_url": app_base_url})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakePhotoService(ProfilePhotoServiceBase):
    def __init__(self, result: ProfilePhotoResult | Exception | None = None, delay: float = 0.0) -> None:
        self.result = result or ProfilePhotoResult(
            success=True,
            image_url="https://cdn.example.com/avatars/candidates/u.jpg",
        )
        self.delay = delay
        self.closed = False

    async def generate_profile_photo(self, assessment_id: str, user_id: str) -> ProfilePhotoResult:
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def close(self) -> None:
        self.closed = True


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory bound to a fresh SQLite database file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient(default=rubric_response())


@pytest.fixture
def evaluator(session_factory, llm_client) -> VideoAssessmentEvaluator:
    return VideoAssessmentEvaluator(session_factory, llm_client, max_attempts=3, model="test-model")


async def seed_assessment(
    session_factory: async_sessionmaker[AsyncSession],
    status: AssessmentStatus = AssessmentStatus.WORKING,
    with_recording: bool = True,
    pr_url: str | None = "https://github.com/acme/app/pull/7",
    started_minutes_ago: int = 95,
    started_at: datetime | None = None,
    user_email: str | None = "jane@example.com",
    report: dict[str, Any] | None = None,
    completed_at: datetime | None = None,
) -> dict[str, str]:
    """Insert a user, scenario, coworkers and an assessment; return their ids."""
    async with session_scope(session_factory) as session:
        user = UserModel(name="Jane Doe", email=user_email)
        scenario = ScenarioModel(
            name="Pagination",
            task_description="Add cursor pagination to the orders API.",
            role_family_slug="engineering",
        )
        session.add_all([user, scenario])
        await session.flush()

        alex = CoworkerModel(scenario_id=scenario.id, name="Alex Chen", role="Engineering Manager")
        sam = CoworkerModel(scenario_id=scenario.id, name="Sam Rivera", role="Senior Engineer")
        assessment = AssessmentModel(
            user_id=user.id,
            scenario_id=scenario.id,
            status=status,
            started_at=started_at or utcnow() - timedelta(minutes=started_minutes_ago),
            completed_at=completed_at,
            pr_url=pr_url,
            report=report,
        )
        session.add_all([alex, sam, assessment])
        await session.flush()

        if with_recording:
            session.add(
                RecordingModel(
                    assessment_id=assessment.id,
                    type=RecordingType.SCREEN,
                    storage_url="gs://recordings/screen.mp4",
                )
            )

        return {
            "user_id": user.id,
            "scenario_id": scenario.id,
            "assessment_id": assessment.id,
            "alex_id": alex.id,
            "sam_id": sam.id,
        }


async def add_conversation(
    session_factory: async_sessionmaker[AsyncSession],
    assessment_id: str,
    coworker_id: str | None,
    messages: list[tuple[str, str]],
    conversation_type: ConversationType = ConversationType.TEXT,
) -> None:
    async with session_scope(session_factory) as session:
        session.add(
            ConversationModel(
                assessment_id=assessment_id,
                coworker_id=coworker_id,
                type=conversation_type,
                transcript=[
                    {"role": role, "text": text, "timestamp": f"2026-01-01T10:{i:02d}:00Z"}
                    for i, (role, text) in enumerate(messages)
                ],
            )
        )
