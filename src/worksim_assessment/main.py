"""
Main entry point for the WorkSim assessment service.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from worksim_assessment.analysis.video_evaluation import VideoAssessmentEvaluator
from worksim_assessment.api.dependencies import Services
from worksim_assessment.api.routes import router
from worksim_assessment.config import get_settings
from worksim_assessment.db.session import create_engine, create_session_factory, init_db
from worksim_assessment.errors import AssessmentError
from worksim_assessment.integrations.notifier import SendGridReportNotifier
from worksim_assessment.integrations.pr_provider import GitHubPrProvider
from worksim_assessment.integrations.profile_photo import ProfilePhotoService
from worksim_assessment.models.llm_client import GeminiClient
from worksim_assessment.orchestrator.finalization import AssessmentFinalizer
from worksim_assessment.orchestrator.report_generation import ReportGenerator

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def build_services() -> Services:
    """
    Build the process-wide collaborators from configuration.

    Creates missing tables on the configured database.
    """
    settings = get_settings()
    engine = create_engine()
    await init_db(engine)
    session_factory = create_session_factory(engine)

    llm_client = GeminiClient()
    pr_provider = GitHubPrProvider()
    photo_service = ProfilePhotoService()
    evaluator = VideoAssessmentEvaluator(session_factory, llm_client)

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; video evaluation will fail")

    return Services(
        evaluator=evaluator,
        finalizer=AssessmentFinalizer(
            session_factory,
            evaluator,
            pr_provider,
            photo_service,
        ),
        report_generator=ReportGenerator(session_factory, evaluator, SendGridReportNotifier()),
        llm_client=llm_client,
        pr_provider=pr_provider,
        photo_service=photo_service,
        engine=engine,
    )


def create_app(services: Services | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Prebuilt collaborators; built from configuration on
            startup when not provided.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting WorkSim assessment service...")
        app.state.services = services or await build_services()
        yield
        logger.info("Shutting down WorkSim assessment service...")
        await app.state.services.close()

    app = FastAPI(title="WorkSim Assessment", lifespan=lifespan)
    if services is not None:
        app.state.services = services
    app.include_router(router)

    @app.exception_handler(AssessmentError)
    async def assessment_error_handler(request: Request, exc: AssessmentError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


def main() -> None:
    """Main entry point for the application."""
    import uvicorn

    setup_logging()
    settings = get_settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
