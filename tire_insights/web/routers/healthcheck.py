"""Healthcheck endpoint with dependency checks."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tire_insights.web.deps import DBSession

router = APIRouter()


@router.get("/healthz")
def healthz(db: DBSession):
    """Health check of the database and host memory.

    Returns:
        200 OK if all checks pass (memory pressure only degrades)
        503 Service Unavailable if the database is unreachable

    """
    status = "healthy"
    checks = {}
    overall_healthy = True

    # 1. Database check
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency = (time.time() - start) * 1000  # Convert to ms
        checks["database"] = {"status": "ok", "latency_ms": round(latency, 2)}
    except SQLAlchemyError as e:
        checks["database"] = {"status": "error", "error": str(e)}
        overall_healthy = False
        status = "unhealthy"

    # 2. Memory check
    mem = psutil.virtual_memory()
    checks["memory"] = {
        "status": "warning" if mem.percent > 90 else "ok",
        "available_mb": round(mem.available / (1024**2), 2),
        "used_percent": mem.percent,
    }
    if mem.percent > 90 and status == "healthy":
        status = "degraded"

    checks["timestamp"] = datetime.now(timezone.utc).isoformat()

    response = {
        "status": status,
        "healthy": overall_healthy,
        "checks": checks,
    }

    if not overall_healthy:
        raise HTTPException(status_code=503, detail=response)

    return response
