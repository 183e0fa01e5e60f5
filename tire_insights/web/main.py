"""FastAPI application serving the tire CRM insights."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tire_insights.core.config import get_settings
from tire_insights.core.errors import AnalysisUnavailableError
from tire_insights.core.logging import get_logger, get_request_id, setup_logging
from tire_insights.core.metrics import app_info, app_uptime_seconds, errors_total
from tire_insights.web.middleware import PrometheusMiddleware, RequestIdMiddleware
from tire_insights.web.routers import healthcheck, insights

settings = get_settings()
setup_logging(level=settings.log_level)
log = get_logger("tire_insights.web")

# Application start time for uptime calculation
APP_START_TIME = time.time()

app = FastAPI(
    title="Tire Insights API",
    version=settings.app_version,
    description="Inventory risk, cross-store transfers and margin insights for tire stores",
)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app_info.labels(version=settings.app_version, environment=settings.environment).set(1)


@app.exception_handler(AnalysisUnavailableError)
async def analysis_unavailable_handler(request: Request, exc: AnalysisUnavailableError):
    """Data source failures surface as 503 so clients can retry."""
    request_id = get_request_id()
    errors_total.labels(error_type="analysis_unavailable", component=exc.analysis).inc()

    log.warning(
        "analysis_unavailable",
        extra={
            "request_id": request_id,
            "path": str(request.url.path),
            "analysis": exc.analysis,
            "reason": exc.reason,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": "analysis_unavailable",
            "analysis": exc.analysis,
            "request_id": request_id,
        },
    )


# Global exception handler for unhandled errors (500)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with proper logging and response."""
    request_id = get_request_id()
    errors_total.labels(error_type=type(exc).__name__, component="web").inc()

    log.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": str(request.url.path),
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "request_id": request_id,
            "hint": "Contact support with this request_id",
        },
    )


app.include_router(healthcheck.router, tags=["Monitoring"])
app.include_router(insights.router, prefix="/api/v1/insights", tags=["Insights"])


@app.get("/health")
def health():
    """Basic health check for monitoring."""
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    app_uptime_seconds.set(time.time() - APP_START_TIME)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
