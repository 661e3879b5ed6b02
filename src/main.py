"""
Daily Task Tracker - Main Application Entry Point

FastAPI application serving the task and account API.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .database import init_database, close_database, get_database
from .exceptions import ErrorKind, TaskTrackerError
from .web.routes import router as api_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERMISSION: 403,
    ErrorKind.CONSISTENCY: 500,
    ErrorKind.STORAGE: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    if await init_database():
        logger.info("Database initialized")
    else:
        logger.warning("Database not available; requests will retry initialization")

    yield

    logger.info("Shutting down...")
    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Daily task planning with per-item output and retrospective reviews",
    version=settings.app_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": db_health.get("status", "unknown"),
        }
    }


@app.get("/health/db")
async def db_health():
    """Database connection pool health check."""
    db = get_database()
    if not db.engine:
        return {
            "status": "not_initialized",
            "error": "Database not yet initialized"
        }

    return {
        "timestamp": datetime.now().isoformat(),
        **await db.get_pool_status(),
    }


# ============================================================================
# Exception handlers
# ============================================================================

@app.exception_handler(TaskTrackerError)
async def domain_exception_handler(request: Request, exc: TaskTrackerError):
    """Map domain errors to HTTP status codes by kind."""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)

    if status_code >= 500:
        logger.error(f"{exc.kind.value} error on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.kind.value, "detail": "Internal server error"}
        )

    logger.info(f"{exc.kind.value} error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind.value, "detail": exc.message}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 with one entry per offending field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": ErrorKind.VALIDATION.value, "detail": "Validation failed", "errors": errors}
    )


@app.exception_handler(asyncio.TimeoutError)
async def timeout_exception_handler(request: Request, exc: asyncio.TimeoutError):
    logger.error(f"Request timed out: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=503,
        content={"error": "timeout", "detail": "The request took too long to complete"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
