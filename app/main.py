"""Companion Chat API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the streaming chat system.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ConfigValidator, get_config_summary, settings
from app.core.logging_config import configure_logging
from app.database import Database
from app.domains.chat.provider import build_completion_provider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide dependencies and release them on shutdown."""
    logger.info("Starting Companion Chat API")
    ConfigValidator.validate_required_settings()
    logger.info("Configuration: %s", get_config_summary())

    database = Database.from_settings(settings)
    app.state.database = database
    app.state.completion_provider = build_completion_provider(settings)

    # Development mode: Auto-create tables if they don't exist
    if settings.is_development:
        logger.info("Development mode: creating/updating database tables")
        await database.create_all()
    else:
        logger.info("Schema management is external outside development")

    yield

    logger.info("Shutting down Companion Chat API")
    app.state.completion_provider = None
    await database.dispose()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="AI companion chat with token-by-token streamed replies",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def _error_body(request: Request, message: str, error_code: str, details) -> dict:
    return {
        "status": "error",
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        if exc.status_code >= 500:
            logger.error(f"{error_code}: {message}")

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, message, error_code, details),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content=_error_body(request, "Validation error", "VALIDATION_ERROR", errors),
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.chat.controller import router as chat_router
    from app.domains.user.controller import router as user_router

    @app.get("/health")
    async def health_check(request: Request):
        """Health check covering the database and the AI provider."""
        database = getattr(request.app.state, "database", None)
        db_status = "healthy" if database is not None and await database.ping() else "unhealthy"

        provider = getattr(request.app.state, "completion_provider", None)
        ai_status = "configured" if provider is not None else "not_configured"

        body = {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": settings.version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
            "services": {
                "database": db_status,
                "ai_service": ai_status,
            },
        }
        return JSONResponse(status_code=200 if db_status == "healthy" else 503, content=body)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "AI companion chat with streamed replies",
            "docs_url": "/docs" if settings.environment == "development" else None,
        }

    # Include domain routers
    app.include_router(user_router)
    app.include_router(chat_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
