"""
Tests for the report email builders and notifier guards.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest
from sendgrid import SendGridAPIClient

from worksim_assessment.integrations.notifier import (
    SendGridReportNotifier,
    build_report_email_html,
    build_report_email_text,
    format_category,
    report_url,
)
from worksim_assessment.reporting.schemas import AssessmentReport, ReportNarrative, SkillScore


@pytest.fixture
def report() -> AssessmentReport:
    return AssessmentReport(
        generated_at=datetime(2026, 1, 1),
        assessment_id="a-1",
        overall_score=3.1,
        overall_level="strong",
        skill_scores=[
            SkillScore(category="time_management", score=2, level="adequate"),
            SkillScore(category="code_quality", score=4, level="exceptional"),
            SkillScore(category="communication", score=3, level="strong"),
            SkillScore(category="presentation", score=1, level="needs_improvement"),
        ],
        narrative=ReportNarrative(
            overall_summary="Solid engineer.",
            strengths=["Strong test discipline"],
        ),
    )


def test_format_category() -> None:
    assert format_category("xfn_collaboration") == "Cross-Functional Collaboration"
    assert format_category("new_area") == "New Area"


def test_report_url_strips_trailing_slash() -> None:
    assert report_url("https://app.example.com/", "a-1") == "https://app.example.com/assessment/a-1/results"


def test_email_text(report) -> None:
    text = build_report_email_text(report, "a-1", "https://app.example.com", "Jane")

    assert "Hi Jane," in text
    assert "3.1/4 - Strong" in text
    assert "* Code Quality: 4.0/4" in text
    # top three skills only
    assert "Presentation" not in text
    assert "* Strong test discipline" in text
    assert text.endswith("Visit: https://app.example.com/assessment/a-1/results")


def test_email_html_escapes_text(report) -> None:
    report.narrative.overall_summary = "Used <script> tags"

    body = build_report_email_html(report, "a-1", "https://app.example.com")

    assert "&lt;script&gt;" in body
    assert 'href="https://app.example.com/assessment/a-1/results"' in body


@pytest.mark.asyncio
async def test_unconfigured_notifier_does_not_send(report) -> None:
    notifier = SendGridReportNotifier(api_key="")

    result = await notifier.send_report_email("jane@example.com", report, "a-1", "https://app.example.com")

    assert notifier.is_configured() is False
    assert result.success is False


@pytest.mark.asyncio
async def test_invalid_address(report) -> None:
    result = await SendGridReportNotifier(api_key="key").send_report_email(
        "not-an-email", report, "a-1", "https://app.example.com"
    )

    assert result.error == "Invalid email address"



@pytest.mark.asyncio
async def test_send_success_returns_message_id(report, monkeypatch) -> None:
    sent = []

    def fake_send(self, message):
        sent.append(message)
        return SimpleNamespace(status_code=202, headers={"X-Message-Id": "sg-123"})

    monkeypatch.setattr(SendGridAPIClient, "send", fake_send)

    result = await SendGridReportNotifier(api_key="key").send_report_email(
        "jane@example.com", report, "a-1", "https://app.example.com", "Jane"
    )

    assert result.success is True
    assert result.message_id == "sg-123"
    assert len(sent) == 1


@pytest.mark.asyncio
async def test_send_error_status(report, monkeypatch) -> None:
    monkeypatch.setattr(
        SendGridAPIClient,
        "send",
        lambda self, message: SimpleNamespace(status_code=500, headers={}),
    )

    result = await SendGridReportNotifier(api_key="key").send_report_email(
        "jane@example.com", report, "a-1", "https://app.example.com"
    )

    assert result.success is False
    assert result.error == "SendGrid returned 500"


@pytest.mark.asyncio
async def test_send_exception_is_reported(report, monkeypatch) -> None:
    def failing_send(self, message):
        raise ConnectionError("connection refused")

    monkeypatch.setattr(SendGridAPIClient, "send", failing_send)

    result = await SendGridReportNotifier(api_key="key").send_report_email(
        "jane@example.com", report, "a-1", "https://app.example.com"
    )

    assert result.success is False
    assert result.error == "connection refused"
