from __future__ import annotations
import logging
from typing import Optional

from shelfindex.core.entities import DocumentStatus, StatusUpdate
from shelfindex.core.ports.document_store import IDocumentStore

logger = logging.getLogger("shelf.status")


class StatusTracker:
    """
    Best-effort writer for per-document status.

    Every method returns a StatusUpdate instead of raising: losing a status
    write must not undo or abort work the pipeline already committed.
    """

    def __init__(self, store: IDocumentStore):
        self.store = store

    def mark(
        self,
        document_id: str,
        status: DocumentStatus,
        error_text: Optional[str] = None,
        chunk_count: Optional[int] = None,
    ) -> StatusUpdate:
        try:
            self.store.update_status(document_id, status, error_text=error_text, chunk_count=chunk_count)
        except Exception as e:
            logger.warning("⚠️ Status update to %s failed for %s: %s", status.value, document_id, e)
            return StatusUpdate(ok=False, error=str(e))
        return StatusUpdate(ok=True)

    def indexed(self, document_id: str, chunk_count: int) -> StatusUpdate:
        return self.mark(document_id, DocumentStatus.INDEXED, chunk_count=chunk_count)

    def failed(self, document_id: str, status: DocumentStatus, error_text: str) -> StatusUpdate:
        return self.mark(document_id, status, error_text=error_text)
