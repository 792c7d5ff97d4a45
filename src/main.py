"""
Customize Preview Service

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from src.config import get_settings
from src.database import check_database, close_db, init_db
from src.api.v1 import router as api_v1_router
from src.api.middleware.request_id import REQUEST_ID_HEADER, TRANSACTION_HEADER, RequestIdMiddleware
from src.engines.customize.errors import (
    FATAL_ERROR,
    STORAGE_ERROR,
    TRANSACTION_PUBLISHED,
    CustomizeError,
)
from src.kernel.storage.errors import StorageError
from src.orchestration.state_machine import InvalidTransitionError
from src.schemas.common import HealthResponse
from src.schemas.customize import ErrorData
from src.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    # Configure logging first
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    # Startup
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.project_name,
    description="""
    Customize Preview Service

    Staged, previewable edits to site and theme settings.

    ## Features

    - **Transactions**: Stage setting values under a UUID as draft or pending documents
    - **Preview**: Reads observe staged values without touching stored ones
    - **Publish**: Commit sanitized values the actor may edit, switching theme if needed
    - **Tree**: Capability-filtered, ordered panels, sections and controls

    ## Invariants

    1. Staged values are only ever exposed sanitized
    2. A published transaction is never modified again
    3. Leaving preview restores the stored values exactly
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Middleware order: add_middleware stacks innermost-first, so LAST added = OUTERMOST.
# CORS must be outermost so it adds headers to ALL responses.
_cors_origins = list(settings.cors_origins)

app.add_middleware(RequestIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER, TRANSACTION_HEADER],
)


def _cors_headers(request: Request) -> dict:
    """Return CORS headers for error responses so browser receives them (500s often bypass CORS middleware)."""
    origin = request.headers.get("origin") or ""
    allow_origin = origin if origin in _cors_origins else (_cors_origins[0] if _cors_origins else "*")
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }


def _error_headers(request: Request) -> dict:
    headers = _cors_headers(request)
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


def _error_envelope(
    request: Request,
    status_code: int,
    code: str,
    message: Optional[str] = None,
    **details,
) -> JSONResponse:
    data = ErrorData(error_code=code, message=message or None).model_dump(exclude_none=True)
    data.update(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": data},
        headers=_error_headers(request),
    )


# Exception handlers (include CORS headers so 4xx/5xx responses are not blocked by browser)
@app.exception_handler(CustomizeError)
async def customize_exception_handler(request: Request, exc: CustomizeError):
    """Customize failures carry their own code and status."""
    if exc.status_code >= 500:
        logger.error("Customize request failed: %s", exc.code, exc_info=exc)
        message = exc.message if settings.debug else None
    else:
        logger.info("Customize request rejected", extra={"error_code": exc.code})
        message = exc.message
    return _error_envelope(request, exc.status_code, exc.code, message)


@app.exception_handler(InvalidTransitionError)
async def transition_exception_handler(request: Request, exc: InvalidTransitionError):
    return _error_envelope(
        request, status.HTTP_400_BAD_REQUEST, TRANSACTION_PUBLISHED, str(exc),
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    logger.error("Storage failure", extra={"key": exc.key}, exc_info=exc)
    return _error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        STORAGE_ERROR,
        str(exc) if settings.debug else None,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Ensure 401/403/404 etc. responses have CORS headers."""
    headers = _error_headers(request)
    req_id = headers.get("X-Request-ID")
    content = {"detail": exc.detail}
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    headers = _error_headers(request)
    req_id = headers.get("X-Request-ID")
    content = {"detail": "Validation error", "errors": errors}
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Unexpected failures still answer with a parseable customize envelope."""
    logger.exception("Unhandled exception: %s", exc)
    details = {"request_id": getattr(request.state, "request_id", None)}
    if settings.debug:
        details.update(type=type(exc).__name__, detail=str(exc))
    return _error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        FATAL_ERROR,
        **details,
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Service and database liveness."""
    database_ok = await check_database()
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        version=settings.version,
        database="connected" if database_ok else "unavailable",
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
            "customize": f"{settings.api_v1_prefix}/customize",
        },
    }


# Mount API v1 routes
app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
