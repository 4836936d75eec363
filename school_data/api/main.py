from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from school_data.api.routes.teachers import router as teachers_router
from school_data.core.logging import configure_logging, correlation_id_var
from school_data.core.settings import AppSettings, get_app_settings
from school_data.db.session import create_all, dispose_engine
from school_data.exceptions import InvalidArgumentError
from school_data.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from school_data.services.teachers import TeacherNotFoundError

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness check."},
    {"name": "Teachers", "description": "Teachers and their students."},
]


async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with a correlation_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    request.state.correlation_id = corr

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


async def invalid_argument_handler(request: Request, exc: InvalidArgumentError):
    """Caller-side contract violations caught before any I/O."""
    return _build_error_response(
        request=request,
        status_code=400,
        error_type="invalid_argument",
        message=str(exc),
        details={"argument": exc.argument},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations reported by the database on flush or commit."""
    logger.warning("Constraint violation: %s", exc.orig)
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="constraint_violation",
        message="The change conflicts with existing data",
    )


async def stale_data_handler(request: Request, exc: StaleDataError):
    """Optimistic-concurrency conflicts: the row changed or vanished since it was loaded."""
    logger.warning("Concurrency conflict: %s", exc)
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="concurrency_conflict",
        message="The record was modified or deleted by another operation",
    )


async def teacher_not_found_handler(request: Request, exc: TeacherNotFoundError):
    return _build_error_response(
        request=request,
        status_code=404,
        error_type="not_found",
        message=str(exc),
        details={"teacher_id": exc.teacher_id},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
    )


# PUBLIC_INTERFACE
def create_app(settings: AppSettings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters:
        settings: application settings; read from the environment when omitted.
    Returns:
        The configured FastAPI instance with all routers under /api/v1.
    """
    settings = settings or get_app_settings()
    configure_logging(logging.getLevelName(settings.LOG_LEVEL))

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.CREATE_SCHEMA_ON_STARTUP:
            logger.info("Creating database schema")
            await create_all()
        yield
        await dispose_engine()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    # CORS - avoid wildcard with credentials
    cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
    if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
        logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
        cors_allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=cors_allow_credentials,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    app.middleware("http")(request_context_middleware)

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidArgumentError, invalid_argument_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(TeacherNotFoundError, teacher_not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    api_v1 = APIRouter(prefix="/api/v1")

    # PUBLIC_INTERFACE
    @api_v1.get(
        "/health",
        response_model=MessageResponse,
        summary="Health Check",
        tags=["Health"],
    )
    def health_check() -> MessageResponse:
        """
        Basic liveness health check endpoint.

        Returns:
            MessageResponse: Simple confirmation that the service is running.
        """
        return MessageResponse(message="Healthy")

    api_v1.include_router(teachers_router)
    app.include_router(api_v1)
    return app


app = create_app()
