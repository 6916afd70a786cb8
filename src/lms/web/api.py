"""FastAPI application factory.

Main entry point for the LMS Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lms import __version__
from lms.config.app_config import load_app_config
from lms.core.errors import (
    AuthenticationError,
    ConflictError,
    LMSError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lms.core.exam_session import get_exam_session_manager
from lms.db.database import get_db_path, init_db
from lms.web.routes import (
    admin_router,
    auth_router,
    examinations_router,
    folders_router,
    health_router,
    inquiries_router,
    notifications_router,
    reports_router,
    reviews_router,
    student_exams_router,
    submissions_router,
    users_router,
)

logger = structlog.get_logger(__name__)

# Most specific first
ERROR_STATUS: list[tuple[type[LMSError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
]


def status_for(error: LMSError) -> int:
    """HTTP status code for a domain error."""
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def lms_error_handler(request: Request, exc: LMSError) -> JSONResponse:
    """Render domain errors as {"detail": message}."""
    code = status_for(exc)
    logger.info(
        "api_error",
        path=request.url.path,
        status_code=code,
        error_type=type(exc).__name__,
        detail=str(exc),
    )
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=code, content={"detail": str(exc)}, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    init_db(load_app_config().database.resolve_path())
    logger.info("api_startup", db_path=str(get_db_path()))
    yield
    # Shutdown: drop timers of exams still in progress
    await get_exam_session_manager().shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    config = load_app_config()
    app = FastAPI(
        title="LMS API",
        description="Examinations, submissions, grading and reports",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LMSError, lms_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(folders_router)
    app.include_router(examinations_router)
    app.include_router(student_exams_router)
    app.include_router(submissions_router)
    app.include_router(reviews_router)
    app.include_router(reports_router)
    app.include_router(notifications_router)
    app.include_router(inquiries_router)
    app.include_router(admin_router)

    return app


# Default app instance for uvicorn
app = create_app()
