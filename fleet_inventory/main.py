from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from fleet_inventory.config import settings
from fleet_inventory.api.v1.router import api_router
from fleet_inventory.core.exceptions import CycleCountError
from fleet_inventory.database import init_db, async_session_factory
from fleet_inventory.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Configure logging
    - Create tables
    - Start the nightly cycle count scheduler

    Shutdown:
    - Stop the scheduler
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    await init_db()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    shutdown_scheduler()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Cycle Counts", "description": "Schedule, execute and reconcile cycle counts"},
    {"name": "Parts", "description": "ABC classification and stock movements"},
    {"name": "Inventory Adjustments", "description": "Audit trail of reconciled variances"},
]

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Inventory cycle counting for a fleet maintenance parts store.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def _error_response(request: Request, status_code: int, message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "type": type(exc).__name__,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(CycleCountError)
async def cycle_count_exception_handler(request: Request, exc: CycleCountError):
    """Map engine errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(request, exc.status_code, exc.message, exc)


@app.exception_handler(OperationalError)
async def operational_exception_handler(request: Request, exc: OperationalError):
    """Lock timeouts and deadlocks: the caller should retry."""
    logger.warning(f"{request.method} {request.url.path} hit a database conflict: {exc.orig}")
    return _error_response(
        request,
        409,
        "The record is being modified by another request; please retry",
        exc,
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Database connectivity and the nightly job's next run."""
    checks = {"scheduler": get_job_status()}
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
        healthy = True
    except OperationalError as e:
        logger.error(f"Health check could not reach the database: {e.orig}")
        checks["database"] = f"error: {e.orig}"
        healthy = False

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
