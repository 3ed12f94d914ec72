# backend/shelfindex/router/health.py
from __future__ import annotations
import logging
from fastapi import APIRouter, HTTPException, Request

from shelfindex.db.session import DatabasePool, ping_db
from shelfindex.models.schemas import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger("shelf.health")


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Basic health check - service is running"""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
def readiness_check(request: Request):
    """Readiness check - services wired and database reachable"""
    if getattr(request.app.state, "container", None) is None:
        raise HTTPException(status_code=503, detail="Service starting up")
    if DatabasePool.pool is not None:
        ok, message = ping_db()
        if not ok:
            raise HTTPException(status_code=503, detail=f"Database unavailable: {message}")
    return HealthResponse(status="ready")


@router.get("/db-ping")
def db_ping():
    """Simple DB connectivity test."""
    ok, message = ping_db()
    if not ok:
        logger.warning("DB ping failed: %s", message)
    return {"ok": ok, "message": message, "pool_initialized": DatabasePool.pool is not None}
