# backend/shelfindex/db/deps.py
from __future__ import annotations
import logging
from fastapi import HTTPException, Request, status

from shelfindex.container import AppContainer

logger = logging.getLogger("shelf.db")


def get_container(request: Request) -> AppContainer:
    """FastAPI dependency yielding the wired services built at startup."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        logger.warning("Service container not ready; rejecting request.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Indexing service not ready")
    return container
