"""DevFlow Backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# CRITICAL ORDER: configure_structlog MUST be called before all other app imports
# to avoid the structlog cache pitfall (structlog caches the processor chain on first use).
from devflow.core.logging import configure_structlog
from devflow.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else _early_settings.log_level,
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devflow.api.routes import api_router
from devflow.core.clock import get_clock
from devflow.core.config import get_settings
from devflow.core.exceptions import DevFlowError, StoreError
from devflow.db import close_db, init_db
from devflow.middleware.correlation import get_correlation_id, setup_correlation_middleware
from devflow.schemas.common import error_body

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while connections drain
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info(
        "startup_begin",
        app_name=settings.app_name,
        debug=settings.debug,
        utc_offset_hours=get_clock().tz.utcoffset(None).total_seconds() / 3600,
    )

    await init_db()
    logger.info("db_initialized")

    yield

    logger.info("shutdown_begin")
    await close_db()
    logger.info("shutdown_complete")


async def devflow_exception_handler(request: Request, exc: DevFlowError) -> JSONResponse:
    """Map service errors onto the failure envelope.

    StoreError detail was already logged by the service; callers only get the
    generic message it carries.
    """
    log = logger.error if isinstance(exc, StoreError) else logger.warning
    log(
        "request_failed",
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        msg = error.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            messages.append(msg.removeprefix("Value error, "))
            continue
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{field}: {msg}" if field else msg)
    return " ".join(messages) or "Invalid request."


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input is a 400, rejected before any service code runs."""
    message = _validation_message(exc)
    logger.warning("request_validation_failed", path=request.url.path, method=request.method, message=message)
    return JSONResponse(status_code=400, content=error_body(message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) in the same envelope."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
        detail=exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns a generic 500 to the client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content=error_body(GENERIC_ERROR_MESSAGE),
        headers={"X-Debug-ID": debug_id},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="DevFlow - project time tracking",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.cors_allowed_origins])),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    app.exception_handler(DevFlowError)(devflow_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "devflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
