"""
FastAPI application entry point for the BodyVerse pricing API.

Run with:
    uvicorn bodyverse.webapp.main:app --reload

Open: http://127.0.0.1:8000/docs
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from bodyverse import __version__
from bodyverse.services.health_service import HealthService
from bodyverse.utils.logging_config import setup_logging
from bodyverse.webapp.exceptions import AppException
from bodyverse.webapp.middleware import RateLimitMiddleware
from bodyverse.webapp.routes import get_app_config, get_health_service, router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config = get_app_config()
    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
    )

    logger.info("BodyVerse pricing API starting...")
    yield
    logger.info("BodyVerse pricing API shutting down...")


app = FastAPI(
    title="BodyVerse Pricing API",
    description="Localized subscription pricing and currency conversion for the BodyVerse paywall",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def error_handling_middleware(request: Request, call_next):
    """Global error handling middleware."""
    start_time = time.time()
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception(f"Unhandled error processing {request.url.path}: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": str(e) if app.debug else "An unexpected error occurred",
                "details": {"path": str(request.url.path)},
            },
            headers={"X-Process-Time": str(process_time)},
        )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render application errors as JSON."""
    logger.info(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health_check(
    health_service: HealthService = Depends(get_health_service),
) -> dict[str, Any]:
    """Detailed health check endpoint for monitoring."""
    return health_service.get_full_health().to_dict()


@app.get("/health/simple")
def simple_health_check(
    health_service: HealthService = Depends(get_health_service),
) -> dict[str, Any]:
    """Simple health check for load balancers."""
    return health_service.get_simple_health()


@app.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """Readiness check - verifies app can serve requests."""
    return {
        "status": "ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.add_middleware(RateLimitMiddleware, settings=get_app_config().server.rate_limit)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    server = get_app_config().server
    uvicorn.run("bodyverse.webapp.main:app", host=server.host, port=server.port, reload=True)
