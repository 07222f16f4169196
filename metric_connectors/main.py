"""
FastAPI host for the metric connectors.

Serves the invocation protocol under /api/v1/connectors. Failures that never
reach a connector (a body that is not a JSON object, an unexpected crash in
the stack) are still answered with the protocol's Error envelope.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from metric_connectors import __version__
from metric_connectors.backends import get_backend
from metric_connectors.config import get_settings
from metric_connectors.connectors import CONNECTORS
from metric_connectors.models.enums import ErrorCategory
from metric_connectors.models.invocation import ErrorResponse
from metric_connectors.routers import connectors
from metric_connectors.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


def error_envelope(status_code: int, category: ErrorCategory, message: str, request_id: str):
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.build(category, message).to_wire(),
        headers={"X-Request-ID": request_id},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    backend = get_backend()

    logger.info(
        "application_startup",
        version=app.version,
        default_region=settings.default_region,
        backend=type(backend).__name__,
        metric_backend_url=settings.metric_backend_url,
        connectors=sorted(CONNECTORS),
    )

    yield

    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """Build the application: CORS, request tracing, error envelopes and routes."""
    settings = get_settings()

    app = FastAPI(
        title="Metric Connectors",
        description="Derived time series (moving average, time shift, histogram, "
        "filter, multi-region) computed from a raw metric backend",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time-Ms"],
    )

    @app.middleware("http")
    async def request_tracing_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                exc_info=True,
            )
            return error_envelope(500, ErrorCategory.INTERNAL, "Internal server error", request_id)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=elapsed_ms,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """A body that is not a JSON object is a caller error in protocol terms."""
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.warning("request_rejected", path=request.url.path, error=message)
        request_id = getattr(request.state, "request_id", "")
        return error_envelope(422, ErrorCategory.VALIDATION, f"Malformed event, {message}", request_id)

    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "version": app.version,
            "default_region": settings.default_region,
            "connectors": len(CONNECTORS),
        }

    app.include_router(connectors.router, prefix="/api/v1/connectors", tags=["Connectors"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "metric_connectors.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
