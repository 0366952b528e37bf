"""
Person Registry Backend — FastAPI Application Factory
=======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires settings, the Database handle, the UploadService,
       middleware, exception handlers and routers; the module-level `app`
       is what uvicorn serves (uvicorn app.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware: RequestID → Logging → SecHeaders → CORS │
    │                                                      │
    │  Routes:  /api/persons (CRUD)      /health           │
    │                                                      │
    │  Exception Handlers:                                 │
    │   Validation/Upload → 400 │ NotFound → 404 │ → 500   │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, create upload directory, open the
              Database handle (engine + session factory) on app.state
    Shutdown: dispose the engine (closes all pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import Database
from app.exceptions import (
    DatabaseError,
    FileStorageError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.routes import health, persons
from app.services.upload_service import UploadService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our own access logger replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Person Registry backend %s starting up...", __version__)

    upload_root = app.state.upload_service.ensure_directory()
    logger.info("Upload directory: %s", upload_root)

    database: Database = app.state.database
    database.connect()
    logger.info("Database handle ready (%s)", database.engine.url.render_as_string(hide_password=True))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("Person Registry backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _field_errors_from_request(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Flatten FastAPI's request validation errors into the field-error shape."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        value = error.get("input")
        errors.append({
            "field": loc[-1] if loc else "request",
            "message": error.get("msg", "Invalid value"),
            "value": value if isinstance(value, (str, int, float, bool)) else None,
        })
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and JSON bodies.

    Handler table:
        ValidationError         → 400 validation_error (field errors)
        RequestValidationError  → 400 validation_error (bad path/query/form shape)
        UploadError             → 400 upload_error
        NotFoundError           → 404 not_found
        DatabaseError           → 500 server_error + driver details/code
        FileStorageError        → 500 server_error
        Exception (fallback)    → 500 server_error
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = _request_id(request)
        logger.warning("[%s] Validation failed for fields: %s", rid, ", ".join(exc.fields))
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "errors": exc.errors,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = _request_id(request)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Invalid request",
                "errors": _field_errors_from_request(exc),
                "request_id": rid,
            },
        )

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        rid = _request_id(request)
        logger.warning("[%s] Upload rejected: %s | %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=400,
            content={
                "error": "upload_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "Server error",
                "details": exc.context.get("details", exc.message),
                "code": exc.context.get("code"),
                "request_id": rid,
            },
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = _request_id(request)
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "Server error",
                "details": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "Server error",
                "details": str(exc),
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    database: Optional[Database] = None,
    upload_service: Optional[UploadService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database:       handle to use instead of one built from settings
                        (tests pass a SQLite-backed handle)
        upload_service: upload directory service to use instead of the
                        settings-based default
    """
    app = FastAPI(
        title="Person Registry API",
        description=(
            "Create, list, edit and delete person records with optional "
            "resume and media uploads."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.state.database = database or Database(echo=settings.log_level == "DEBUG")
    app.state.upload_service = upload_service or UploadService()

    # Last added runs first: RequestID → Logging → SecurityHeaders → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(persons.router)
    app.include_router(health.router)

    return app


app = create_app()
