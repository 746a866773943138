"""
Report notifier.

Emails the candidate a short summary of their report with a link to the
full results page.
"""

import asyncio
import html
import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from worksim_assessment.config import get_settings
from worksim_assessment.reporting.schemas import AssessmentReport

logger = logging.getLogger(__name__)

CATEGORY_NAMES = {
    "communication": "Communication",
    "problem_decomposition": "Problem Decomposition",
    "ai_leverage": "AI Leverage",
    "code_quality": "Code Quality",
    "xfn_collaboration": "Cross-Functional Collaboration",
    "time_management": "Time Management",
    "technical_decision_making": "Technical Decision-Making",
    "presentation": "Presentation",
}

LEVEL_NAMES = {
    "exceptional": "Exceptional",
    "strong": "Strong",
    "adequate": "Adequate",
    "needs_improvement": "Needs Improvement",
}


class EmailResult(BaseModel):
    """Outcome of sending an email."""

    success: bool
    message_id: str | None = None
    error: str | None = None


def format_category(category: str) -> str:
    """Display name of a report category."""
    return CATEGORY_NAMES.get(category, category.replace("_", " ").title())


def report_url(app_base_url: str, assessment_id: str) -> str:
    """Link to the candidate's results page."""
    return f"{app_base_url.rstrip('/')}/assessment/{assessment_id}/results"


def build_report_email_text(
    report: AssessmentReport,
    assessment_id: str,
    app_base_url: str,
    candidate_name: str | None = None,
) -> str:
    """
    Build the plain text body of the report email.

    Args:
        report: The generated report.
        assessment_id: Assessment the report belongs to.
        app_base_url: Public base URL of the app.
        candidate_name: Candidate display name.

    Returns:
        The email body.
    """
    top_skills = sorted(report.skill_scores, key=lambda s: s.score, reverse=True)[:3]
    lines = [
        "Assessment Report",
        "=" * 40,
        "",
        f"Hi {candidate_name}," if candidate_name else "Hi,",
        "",
        "Your assessment is complete!",
        "",
        "OVERALL SCORE",
        "-" * 20,
        f"{report.overall_score:.1f}/4 - {LEVEL_NAMES.get(report.overall_level, report.overall_level)}",
        "",
    ]
    if top_skills:
        lines.extend(["TOP SKILLS", "-" * 20])
        lines.extend(f"* {format_category(s.category)}: {s.score:.1f}/4" for s in top_skills)
        lines.append("")

    lines.extend(["SUMMARY", "-" * 20, report.narrative.overall_summary, ""])

    if report.narrative.strengths:
        lines.extend(["KEY STRENGTHS", "-" * 20])
        lines.extend(f"* {s}" for s in report.narrative.strengths[:3])
        lines.append("")

    lines.extend(
        [
            "VIEW FULL REPORT",
            "-" * 20,
            f"Visit: {report_url(app_base_url, assessment_id)}",
        ]
    )
    return "\n".join(lines)


def build_report_email_html(
    report: AssessmentReport,
    assessment_id: str,
    app_base_url: str,
    candidate_name: str | None = None,
) -> str:
    """Build a minimal HTML body mirroring the plain text email."""
    text = build_report_email_text(report, assessment_id, app_base_url, candidate_name)
    url = report_url(app_base_url, assessment_id)
    return (
        "<html><body>"
        f"<pre style=\"font-family: sans-serif; white-space: pre-wrap\">{html.escape(text)}</pre>"
        f'<p><a href="{html.escape(url)}">View your full report</a></p>'
        "</body></html>"
    )


class ReportNotifierBase(ABC):
    """Abstract base class for report notifiers."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the notifier can send email."""
        ...

    @abstractmethod
    async def send_report_email(
        self,
        to: str,
        report: AssessmentReport,
        assessment_id: str,
        app_base_url: str,
        candidate_name: str | None = None,
    ) -> EmailResult:
        """
        Email the candidate that their report is ready.

        Args:
            to: Recipient address.
            report: The generated report.
            assessment_id: Assessment the report belongs to.
            app_base_url: Public base URL for the results link.
            candidate_name: Candidate display name.

        Returns:
            The send outcome. Failures are reported, not raised.
        """
        ...


class SendGridReportNotifier(ReportNotifierBase):
    """Report notifier backed by SendGrid."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self._from_email = from_email or settings.mail_from
        self._from_name = from_name or settings.mail_from_name

    def is_configured(self) -> bool:
        """Whether a SendGrid API key is set."""
        return bool(self._api_key)

    async def send_report_email(
        self,
        to: str,
        report: AssessmentReport,
        assessment_id: str,
        app_base_url: str,
        candidate_name: str | None = None,
    ) -> EmailResult:
        """Send the report email through SendGrid."""
        if not self.is_configured():
            logger.warning("Email service not configured (SendGrid API key not set)")
            return EmailResult(success=False, error="Email service not configured")
        if not to or "@" not in to:
            return EmailResult(success=False, error="Invalid email address")

        subject = (
            f"{candidate_name}, your assessment report is ready!"
            if candidate_name
            else "Your assessment report is ready!"
        )
        message = Mail(
            from_email=(self._from_email, self._from_name),
            to_emails=to,
            subject=subject,
            plain_text_content=build_report_email_text(
                report, assessment_id, app_base_url, candidate_name
            ),
            html_content=build_report_email_html(report, assessment_id, app_base_url, candidate_name),
        )

        client = SendGridAPIClient(api_key=self._api_key)
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, lambda: client.send(message))
        except Exception as e:
            # python-http-client raises HTTPError subclasses plus transport errors
            logger.error(f"Failed to send report email for assessment {assessment_id}: {e}")
            return EmailResult(success=False, error=str(e) or "Unknown error")

        if response.status_code >= 300:
            return EmailResult(success=False, error=f"SendGrid returned {response.status_code}")

        headers = getattr(response, "headers", None) or {}
        logger.info(f"Sent report email for assessment {assessment_id}")
        return EmailResult(success=True, message_id=headers.get("X-Message-Id"))
