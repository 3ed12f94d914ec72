# backend/shelfindex/router/index_router.py
from __future__ import annotations
import logging
from fastapi import APIRouter, Depends

from shelfindex.container import AppContainer
from shelfindex.db.deps import get_container
from shelfindex.models.schemas import SchedulerStatusOut

logger = logging.getLogger("shelf.indexer")

router = APIRouter(prefix="/index", tags=["index"])


@router.post("/scan", response_model=SchedulerStatusOut)
def scan(container: AppContainer = Depends(get_container)):
    """Make sure the scheduler runs and kick a pass now if none is in flight."""
    scheduler = container.scheduler
    if not scheduler.ensure_started():
        # a fresh start already ticks immediately
        started = scheduler.trigger()
        logger.info("Manual scan requested | started=%s", started)
    return SchedulerStatusOut.from_entity(scheduler.get_status())


@router.get("/status", response_model=SchedulerStatusOut)
def index_status(container: AppContainer = Depends(get_container)):
    container.scheduler.ensure_started()
    return SchedulerStatusOut.from_entity(container.scheduler.get_status())
