"""
FastAPI dependencies: authenticated user and process-wide services.

Authentication happens upstream; the gateway forwards the user id in the
X-User-Id header and the role in X-User-Role.
"""

from dataclasses import dataclass

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from worksim_assessment.analysis.video_evaluation import VideoAssessmentEvaluator
from worksim_assessment.errors import AssessmentAccessDeniedError, AuthenticationRequiredError
from worksim_assessment.integrations.pr_provider import PullRequestProviderBase
from worksim_assessment.integrations.profile_photo import ProfilePhotoServiceBase
from worksim_assessment.models.llm_client import LLMClientBase
from worksim_assessment.orchestrator.finalization import AssessmentFinalizer
from worksim_assessment.orchestrator.report_generation import ReportGenerator

ADMIN_ROLE = "ADMIN"


@dataclass
class Services:
    """Collaborators shared by all requests."""

    evaluator: VideoAssessmentEvaluator
    finalizer: AssessmentFinalizer
    report_generator: ReportGenerator
    llm_client: LLMClientBase | None = None
    pr_provider: PullRequestProviderBase | None = None
    photo_service: ProfilePhotoServiceBase | None = None
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        """Wait for background evaluations and release clients."""
        await self.evaluator.wait_for_background()
        if self.pr_provider is not None:
            await self.pr_provider.close()
        if self.photo_service is not None:
            await self.photo_service.close()
        if self.llm_client is not None:
            await self.llm_client.close()
        if self.engine is not None:
            await self.engine.dispose()


def get_services(request: Request) -> Services:
    """Get the services attached to the application."""
    return request.app.state.services


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Get the authenticated user id.

    Raises:
        AuthenticationRequiredError: If the request carries no user id.
    """
    if not x_user_id:
        raise AuthenticationRequiredError()
    return x_user_id


def require_admin(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> str:
    """
    Get the authenticated user id, requiring the admin role.

    Raises:
        AuthenticationRequiredError: If the request carries no user id.
        AssessmentAccessDeniedError: If the user is not an admin.
    """
    user_id = get_current_user_id(x_user_id)
    if (x_user_role or "").upper() != ADMIN_ROLE:
        raise AssessmentAccessDeniedError("Admin access required")
    return user_id
