from __future__ import annotations
import os
import uuid
import logging
from pathlib import Path
from typing import Optional

from shelfindex.core.entities import Document, DocumentStatus, IngestStatus, SingleFileResult
from shelfindex.core.ports.document_store import IDocumentStore
from shelfindex.core.services.document_pipeline import DocumentPipeline
from shelfindex.models.fingerprint.file_fingerprint import sanitize_filename, sha256_bytes

logger = logging.getLogger("shelf.ingest")

IN_PROGRESS_ERROR = "Document is still being processed"

_OUTCOME_STATUS = {
    DocumentStatus.INDEXED: IngestStatus.INDEXED,
    DocumentStatus.FAILED_PARSE: IngestStatus.FAILED_PARSE,
    DocumentStatus.FAILED_EMBED: IngestStatus.FAILED_EMBED,
    DocumentStatus.FAILED_INSERT: IngestStatus.FAILED_INSERT,
}


class SingleDocumentIngestor:
    """
    Runs the pipeline for one externally supplied file (e.g. an upload).

    Runs in the caller's thread, outside the scheduler's limiter and without
    the business-hours gate. Never raises: every outcome is a SingleFileResult.
    """

    def __init__(self, store: IDocumentStore, pipeline: DocumentPipeline):
        self.store = store
        self.pipeline = pipeline

    def _existing(self, doc: Document, filename: Optional[str] = None) -> SingleFileResult:
        if not doc.status.is_terminal:
            return SingleFileResult(
                success=False,
                document_id=doc.id,
                filename=filename or doc.filename,
                chunk_count=0,
                status=IngestStatus.IN_PROGRESS,
                error=IN_PROGRESS_ERROR,
            )
        return SingleFileResult(
            success=True,
            document_id=doc.id,
            filename=filename or doc.filename,
            chunk_count=self.store.count_chunks(doc.id),
            status=IngestStatus.ALREADY_EXISTS,
        )

    def ingest(self, path: str, filename: str, content_hash: Optional[str] = None) -> SingleFileResult:
        document_id = str(uuid.uuid4())
        reserved = False
        try:
            # 1) Duplicate by content
            if content_hash:
                existing = self.store.find_by_hash(content_hash)
                if existing:
                    logger.info("Duplicate upload %s matches document %s", filename, existing.id)
                    return SingleFileResult(
                        success=True,
                        document_id=existing.id,
                        filename=existing.filename,
                        chunk_count=self.store.count_chunks(existing.id),
                        status=IngestStatus.ALREADY_EXISTS,
                    )

            # 2) Reserve by filename; on conflict find out who holds it
            if not self.store.reserve(document_id, filename, path, content_hash):
                holder = self.store.find_by_filename(filename)
                if holder is None and content_hash:
                    holder = self.store.find_by_hash(content_hash)
                if holder is not None:
                    return self._existing(holder, filename if holder.filename == filename else None)
                raise RuntimeError(f"Reservation for {filename} conflicted but no holder was found")
            reserved = True

            # 3) Same stages as a scheduled pass, ungated
            outcome = self.pipeline.process(document_id, path)
            return SingleFileResult(
                success=outcome.succeeded,
                document_id=document_id,
                filename=filename,
                chunk_count=outcome.chunk_count if outcome.succeeded else 0,
                status=_OUTCOME_STATUS[outcome.status],
                error=outcome.error,
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("❌ Single file indexing failed for %s: %s", path, message, exc_info=True)
            if reserved:
                self.pipeline.tracker.failed(document_id, DocumentStatus.FAILED_PARSE, message)
            return SingleFileResult(
                success=False,
                document_id=document_id if reserved else None,
                filename=filename,
                chunk_count=0,
                status=IngestStatus.FAILED_PARSE,
                error=message,
            )


class UploadHandler:
    """Hashes, saves and indexes an uploaded file."""

    def __init__(self, ingestor: SingleDocumentIngestor, upload_dir: str):
        self.ingestor = ingestor
        self.upload_dir = Path(upload_dir)

    def handle(self, data: bytes, original_filename: str) -> SingleFileResult:
        filename = sanitize_filename(original_filename)
        if filename in ("", ".", ".."):
            return SingleFileResult(
                success=False, document_id=None, filename=original_filename, chunk_count=0,
                status=IngestStatus.FAILED_SAVE, error="Invalid filename",
            )

        content_hash = sha256_bytes(data)
        logger.info("Processing upload %s (sha256=%s, %d bytes)", filename, content_hash[:12], len(data))

        target = self.upload_dir / filename
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            if target.exists():
                # same name on disk; the hash check in ingest decides whether it is a duplicate
                logger.info("File %s already exists on disk, checking database", target)
            else:
                target.write_bytes(data)
                logger.info("💾 Saved uploaded file to %s", target)
        except OSError as e:
            logger.error("❌ Failed to save upload %s: %s", target, e)
            return SingleFileResult(
                success=False, document_id=None, filename=filename, chunk_count=0,
                status=IngestStatus.FAILED_SAVE, error=f"Failed to save file: {e}",
            )

        return self.ingestor.ingest(str(target.resolve()), filename, content_hash)
