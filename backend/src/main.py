"""Safeguarding Verification Backend - Main FastAPI Application

This module creates and configures the FastAPI application, including:
- Document and club verification routers
- Middleware (request ID correlation, CORS)
- Exception handlers mapping typed domain errors to HTTP status codes
- Health endpoint

The record store, storage backend and notification sender are opened in the
lifespan handler and closed at shutdown. Run with:
    uvicorn main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import Settings, get_settings
from database import Database
from documents.router import router as documents_router
from documents.service import DocumentLifecycleService
from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError
from domain.errors import (
    AccessDeniedError,
    DocumentValidationError,
    InvalidTransitionError,
    NotFoundError,
)
from domain.notifications import NotificationSenderPort
from infrastructure.notifications import create_notification_sender
from infrastructure.storage import create_storage_adapter
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router
from verification.router import router as verification_router
from verification.service import VerificationService

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def validation_error_handler(request: Request, exc: DocumentValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": exc.code, "message": exc.message, "field": exc.field},
    )


async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": exc.code,
            "message": exc.message,
            "current_status": exc.current_status,
        },
    )


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    # Same body whether or not the resource exists
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": exc.code, "message": "Access denied"},
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": exc.code, "message": exc.message},
    )


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Storage failures are transient: log the detail, return a generic retry message."""
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": StorageError.code,
            "message": "Document storage is temporarily unavailable. Please try again.",
        },
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log the full database error but return a generic message."""
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    storage: Optional[ObjectStoragePort] = None,
    notifier: Optional[NotificationSenderPort] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Components not passed in are created from settings when the app starts.
    A database passed in is owned by the caller and is not disposed here.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Safeguarding API starting up (environment={settings.ENVIRONMENT})")

        owns_database = database is None
        db = database or Database(settings.DATABASE_URL)
        config = settings.compliance_config()
        sender = notifier or create_notification_sender(settings)

        app.state.database = db
        app.state.document_service = DocumentLifecycleService(
            database=db,
            storage=storage or create_storage_adapter(settings),
            config=config,
            notifier=sender,
            signed_url_expiry_seconds=settings.SIGNED_URL_EXPIRY_SECONDS,
        )
        app.state.verification_service = VerificationService(
            database=db,
            config=config,
            notifier=sender,
        )

        yield

        logger.info("Safeguarding API shutting down...")
        if owns_database:
            db.dispose()

    is_production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="Safeguarding Verification API",
        description="Compliance document lifecycle and club verification",
        version="0.1.0",
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(DocumentValidationError, validation_error_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_handler)
    app.add_exception_handler(AccessDeniedError, access_denied_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(observability_router)
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(verification_router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {
            "name": "Safeguarding Verification API",
            "version": "0.1.0",
            "status": "running",
        }

    return app
