"""
API Application Entry Point

Defines the FastAPI application, its routes and lifecycle.

Startup initializes the database schema, starts the feedback worker and
resumes monitoring for every user whose automation flag is set. Shutdown
stops all monitoring jobs and the feedback worker.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import get_settings, APISettings, EnvironmentType
from api.utils.error_handlers import add_exception_handlers
from api.routes import automation, feedback
from src.automation.service import AutomationService, build_automation_service
from src.storage.database import init_db

logger = logging.getLogger("api")


def create_application(service: Optional[AutomationService] = None,
                       settings: Optional[APISettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Automation service to expose; built from defaults when omitted
        settings: API settings; loaded from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        debug=settings.DEBUG
    )
    app.state.automation = service or build_automation_service()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.CORS_METHODS,
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(automation.router)
    app.include_router(feedback.router)

    @app.on_event("startup")
    async def startup_event():
        """Initialize storage and resume background work."""
        logger.info("API service starting up")
        init_db()
        await app.state.automation.ingestor.start()
        if settings.AUTOMATION_RESUME_ON_STARTUP:
            await app.state.automation.monitor.rehydrate()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop monitoring jobs and the feedback worker."""
        logger.info("API service shutting down")
        await app.state.automation.monitor.shutdown()
        await app.state.automation.ingestor.close()

    @app.get("/health", tags=["Monitoring"])
    async def health_check():
        """API health check endpoint."""
        return {
            "status": "healthy",
            "active_monitors": len(app.state.automation.monitor.active_owners()),
        }

    logger.info(f"Application initialized in {settings.ENVIRONMENT} environment")
    return app


app = create_application()
