"""
assessment_engine/main.py
FastAPI application factory for the rubric assessment service
"""
import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from assessment_engine import __version__
from assessment_engine.config.feature_flags import feature_flags
from assessment_engine.config.settings import Settings
from assessment_engine.database import Database
from assessment_engine.errors import ErrorCode, APIError, new_log_id, get_error_summary
from assessment_engine.rate_limit import configure_limiter
from assessment_engine.routes import router
from assessment_engine.services.assessment_repository import storage_failure
from assessment_engine.services.notification_dispatcher import (
    NotificationDispatcher, DatabaseNotificationDispatcher
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]
    )


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure in the {success: false, error, message, code} shape."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

        error_details = []
        for error in exc.errors():
            error_details.append({
                "loc": list(error.get("loc", [])),
                "msg": error.get("msg"),
                "type": error.get("type")
            })

        # Absent required fields are a rejected payload, not a malformed one
        if error_details and all(e["type"] == "missing" for e in error_details):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "success": False,
                    "error": "Validation Error",
                    "message": "Required fields are missing",
                    "code": ErrorCode.MISSING_FIELD,
                    "details": error_details
                }
            )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation Error",
                "message": "Request body failed validation",
                "code": ErrorCode.VALIDATION_ERROR,
                "details": error_details
            }
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "success": False,
                "error": "Too Many Requests",
                "message": f"Rate limit exceeded: {exc.detail}",
                "code": ErrorCode.RATE_LIMITED
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")

        if exc.status_code == status.HTTP_404_NOT_FOUND:
            code = ErrorCode.NOT_FOUND
        elif exc.status_code >= 500:
            code = ErrorCode.INTERNAL_ERROR
        else:
            code = ErrorCode.VALIDATION_ERROR

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "Error",
                "message": str(exc.detail),
                "code": code
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        return storage_failure(exc, f"request {request.url.path}", "A storage error occurred").to_response()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_id = new_log_id()
        logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal Error",
                "message": "An unexpected error occurred. Please try again later.",
                "code": ErrorCode.INTERNAL_ERROR,
                "details": {"log_id": log_id, "retryable": False}
            }
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    notifier: Optional[NotificationDispatcher] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (read from the environment if omitted)
        database: Pre-built Database; otherwise one is created at startup
            from settings.database_url and disposed at shutdown
        notifier: Notification dispatcher; defaults to writing in-app
            notification rows
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting assessment engine...")
        owns_database = app.state.database is None
        if owns_database:
            app.state.database = Database(settings.database_url, echo=settings.debug)
        if app.state.notifier is None:
            app.state.notifier = DatabaseNotificationDispatcher(app.state.database.session_factory)

        try:
            if settings.auto_create_tables:
                await app.state.database.create_all()
            logger.info(f"Database connected successfully ({app.state.database.dialect})")
        except Exception as e:
            logger.error(f"Failed to connect to database: {str(e)}")
            raise

        yield

        logger.info("Shutting down assessment engine...")
        if owns_database:
            await app.state.database.dispose()

    app = FastAPI(
        title="Rubric Assessment API",
        description="Rubric-based grading of project submissions",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.database = database
    if notifier is None and database is not None:
        notifier = DatabaseNotificationDispatcher(database.session_factory)
    app.state.notifier = notifier

    app.state.limiter = configure_limiter(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.environment,
            "version": __version__
        }

    @app.get("/api/errors/health", tags=["Health"])
    async def error_handling_health():
        summary = get_error_summary()
        summary["feature_flags"] = feature_flags.get_all_flags()
        return summary

    app.include_router(router, prefix="/api")

    logger.info(f"Assessment engine configured (environment={settings.environment})")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    reload = os.getenv("ENVIRONMENT", "development") == "development"

    logger.info(f"Starting server on {host}:{port}")

    uvicorn.run(
        "assessment_engine.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )
