"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Initialize FastAPI application with metadata (title, version)
  - Configure middleware (actor context, exception capture)
  - Mount reporting and sample-entity routers
  - Expose health check and metrics endpoints

Collaborators:
  - AuditContextMiddleware: request id + actor identity in the Context Carrier
  - ExceptionCaptureMiddleware: unhandled exceptions → exception-events stream
  - interfaces.api.http.router: /audit-logs, /exception-logs, /users, /invoices
  - container: stores, publishers, reporter

Notes:
  - Middleware order matters: AuditContext (outermost) → ExceptionCapture → routes
  - DB pool lifecycle lives in the lifespan (not import time)
  - In test env the container uses in-memory adapters and no pool is opened
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ..container import close_publishers, get_audit_log_repository
from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import DatabaseError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import (
    AuditContextMiddleware,
    ExceptionCaptureMiddleware,
)
from ..infrastructure.db.pool import close_pool, init_pool
from ..interfaces.api.http.router import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()

    if not settings.is_test():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            role="api",
        )

    try:
        logger.info(
            "Audit relay API starting up",
            extra={
                "app_env": settings.app_env,
                "audit_topic": settings.audit_topic,
                "exception_topic": settings.exception_topic,
                "stream_partitions": settings.stream_partitions,
            },
        )
        yield
    finally:
        close_publishers()
        close_pool()
        logger.info("Audit relay API shutting down")


app = FastAPI(
    title="Audit Relay API",
    version="0.1.0",
    lifespan=lifespan,
)

# R: Last added = outermost. Capture must run while the actor context is set.
app.add_middleware(ExceptionCaptureMiddleware)
app.add_middleware(AuditContextMiddleware)

app.include_router(router)


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(
        "Error de base de datos",
        extra={
            "error_id": exc.error_id,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(status_code=503, content=exc.to_response().to_dict())


@app.get("/healthz")
def healthz(request: Request):
    """
    R: Health check that verifies the audit store is reachable.

    Returns:
        ok: True if the audit store answered
        db: "connected" or "disconnected"
        request_id: Correlation ID for this request
    """
    db_status = "disconnected"
    try:
        get_audit_log_repository().count()
        db_status = "connected"
    except Exception as e:
        logger.warning("Health check: DB unavailable", extra={"error": str(e)})

    return {
        "ok": db_status == "connected",
        "db": db_status,
        "request_id": getattr(request.state, "request_id", None),
    }


@app.get("/metrics")
def metrics():
    """R: Expose Prometheus metrics."""
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)
