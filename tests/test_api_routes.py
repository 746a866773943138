"""
Tests for the HTTP routes, with the orchestrators replaced by fakes.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from worksim_assessment.analysis.schemas import TriggerResult
from worksim_assessment.api import Services
from worksim_assessment.errors import (
    AssessmentAccessDeniedError,
    AssessmentNotFoundError,
    EvaluationInProgressError,
    RecordingMissingError,
    RetryNotAllowedError,
    VideoEvaluationFailedError,
)
from worksim_assessment.main import create_app
from worksim_assessment.orchestrator.schemas import (
    AssessmentSnapshot,
    FinalizeResult,
    ReportGenerationResult,
    ReportView,
    TimingInfo,
    VideoAssessmentTrigger,
)
from worksim_assessment.reporting.schemas import AssessmentReport
from worksim_assessment.schemas import AssessmentStatus

from conftest import FakePhotoService

USER = {"X-User-Id": "user-1"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}

REPORT = AssessmentReport(
    generated_at=datetime(2026, 1, 1, 12, 0),
    assessment_id="a-1",
    candidate_name="Jane Doe",
    overall_score=3.1,
    overall_level="strong",
    version="2.0.0",
)


class FakeFinalizer:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def finalize(self, assessment_id: str, requesting_user_id: str) -> FinalizeResult:
        self.calls.append((assessment_id, requesting_user_id))
        if self.error:
            raise self.error
        return FinalizeResult(
            assessment=AssessmentSnapshot(
                id=assessment_id,
                status=AssessmentStatus.COMPLETED,
                started_at=datetime(2026, 1, 1, 10, 0),
                completed_at=datetime(2026, 1, 1, 11, 30),
            ),
            timing=TimingInfo(
                started_at=datetime(2026, 1, 1, 10, 0),
                completed_at=datetime(2026, 1, 1, 11, 30),
                total_duration_seconds=5400,
            ),
            video_assessment=VideoAssessmentTrigger(triggered=True, video_assessment_id="va-1", has_recording=True),
        )


class FakeReportGenerator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict] = []

    async def generate_report(self, assessment_id, requesting_user_id, force_regenerate=False, app_base_url=None):
        self.calls.append(
            {
                "assessment_id": assessment_id,
                "user_id": requesting_user_id,
                "force_regenerate": force_regenerate,
                "app_base_url": app_base_url,
            }
        )
        if self.error:
            raise self.error
        return ReportGenerationResult(report=REPORT, email_sent=True)

    async def get_report(self, assessment_id, requesting_user_id):
        if self.error:
            raise self.error
        return ReportView(report=REPORT, status=AssessmentStatus.COMPLETED)


class FakeEvaluator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.retried: list[tuple[str, bool]] = []

    async def retry(self, video_assessment_id: str) -> TriggerResult:
        return self._record(video_assessment_id, False)

    async def force_retry(self, video_assessment_id: str) -> TriggerResult:
        return self._record(video_assessment_id, True)

    def _record(self, video_assessment_id: str, force: bool) -> TriggerResult:
        self.retried.append((video_assessment_id, force))
        if self.error:
            raise self.error
        return TriggerResult(success=True, video_assessment_id=video_assessment_id)

    async def wait_for_background(self) -> None:
        return None


def _client(finalizer=None, report_generator=None, evaluator=None) -> TestClient:
    services = Services(
        evaluator=evaluator or FakeEvaluator(),
        finalizer=finalizer or FakeFinalizer(),
        report_generator=report_generator or FakeReportGenerator(),
    )
    return TestClient(create_app(services), raise_server_exceptions=False)


class TestFinalizeRoute:
    def test_requires_authentication(self) -> None:
        response = _client().post("/api/assessment/finalize", json={"assessmentId": "a-1"})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_requires_assessment_id(self) -> None:
        response = _client().post("/api/assessment/finalize", json={}, headers=USER)

        assert response.status_code == 400
        assert response.json() == {"error": "Assessment ID is required"}

    def test_returns_camel_case_result(self) -> None:
        finalizer = FakeFinalizer()

        response = _client(finalizer=finalizer).post(
            "/api/assessment/finalize", json={"assessmentId": "a-1"}, headers=USER
        )

        assert response.status_code == 200
        body = response.json()
        assert body["assessment"]["status"] == "COMPLETED"
        assert body["timing"]["totalDurationSeconds"] == 5400
        assert body["videoAssessment"] == {"triggered": True, "videoAssessmentId": "va-1", "hasRecording": True}
        assert finalizer.calls == [("a-1", "user-1")]

    @pytest.mark.parametrize(
        "error,status",
        [
            (AssessmentNotFoundError("a-1"), 404),
            (AssessmentAccessDeniedError("Unauthorized to modify this assessment"), 403),
        ],
    )
    def test_errors_map_to_status(self, error, status) -> None:
        response = _client(finalizer=FakeFinalizer(error)).post(
            "/api/assessment/finalize", json={"assessmentId": "a-1"}, headers=USER
        )

        assert response.status_code == status
        assert response.json() == {"error": error.message}

    def test_unexpected_error_is_hidden(self) -> None:
        response = _client(finalizer=FakeFinalizer(RuntimeError("connection reset"))).post(
            "/api/assessment/finalize", json={"assessmentId": "a-1"}, headers=USER
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestReportRoutes:
    def test_generate_report(self) -> None:
        generator = FakeReportGenerator()

        response = _client(report_generator=generator).post(
            "/api/assessment/report",
            json={"assessmentId": "a-1", "forceRegenerate": True},
            headers=USER,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["report"]["overallScore"] == 3.1
        assert body["emailSent"] is True
        assert body["cached"] is False
        assert generator.calls[0]["force_regenerate"] is True
        assert generator.calls[0]["app_base_url"] == "http://testserver"

    @pytest.mark.parametrize(
        "error,status",
        [
            (EvaluationInProgressError("va-1"), 202),
            (RecordingMissingError(), 400),
            (VideoEvaluationFailedError("quota exceeded"), 500),
        ],
    )
    def test_generate_report_errors(self, error, status) -> None:
        response = _client(report_generator=FakeReportGenerator(error)).post(
            "/api/assessment/report", json={"assessmentId": "a-1"}, headers=USER
        )

        assert response.status_code == status
        assert response.json() == {"error": error.message}

    def test_get_report(self) -> None:
        response = _client().get("/api/assessment/report", params={"assessmentId": "a-1"}, headers=USER)

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["report"]["candidateName"] == "Jane Doe"

    def test_get_report_requires_assessment_id(self) -> None:
        response = _client().get("/api/assessment/report", headers=USER)

        assert response.status_code == 400


class TestAdminRetryRoute:
    def test_requires_admin_role(self) -> None:
        response = _client().post(
            "/api/admin/video-assessment/retry", json={"videoAssessmentId": "va-1"}, headers=USER
        )

        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_requires_authentication(self) -> None:
        response = _client().post(
            "/api/admin/video-assessment/retry",
            json={"videoAssessmentId": "va-1"},
            headers={"X-User-Role": "ADMIN"},
        )

        assert response.status_code == 401

    @pytest.mark.parametrize("force", [False, True])
    def test_retry(self, force) -> None:
        evaluator = FakeEvaluator()

        response = _client(evaluator=evaluator).post(
            "/api/admin/video-assessment/retry",
            json={"videoAssessmentId": "va-1", "force": force},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "videoAssessmentId": "va-1", "error": None}
        assert evaluator.retried == [("va-1", force)]

    def test_retry_not_allowed(self) -> None:
        evaluator = FakeEvaluator(RetryNotAllowedError("Maximum retry attempts (3) reached."))

        response = _client(evaluator=evaluator).post(
            "/api/admin/video-assessment/retry", json={"videoAssessmentId": "va-1"}, headers=ADMIN
        )

        assert response.status_code == 400
        assert "Maximum retry" in response.json()["error"]


def test_shutdown_closes_services() -> None:
    photo_service = FakePhotoService()
    services = Services(
        evaluator=FakeEvaluator(),
        finalizer=FakeFinalizer(),
        report_generator=FakeReportGenerator(),
        photo_service=photo_service,
    )

    with TestClient(create_app(services)) as client:
        assert client.post("/api/assessment/finalize", json={"assessmentId": "a-1"}, headers=USER).status_code == 200
        assert photo_service.closed is False

    assert photo_service.closed is True
