from __future__ import annotations
import time
import uuid
import secrets
import logging
import threading
from datetime import datetime, timezone
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

from shelfindex.core.entities import (
    DocumentStatus,
    FailedDocument,
    IndexedDocument,
    PassResult,
    ScannedFile,
)
from shelfindex.core.ports.document_store import IDocumentStore
from shelfindex.core.services.business_hours import BusinessHoursGate
from shelfindex.core.services.document_pipeline import DocumentPipeline
from shelfindex.core.services.status_tracker import StatusTracker

logger = logging.getLogger("shelf.indexer")


def new_correlation_id() -> str:
    """`<UTC timestamp>-<8 hex chars>`, e.g. 20261019T101500123456Z-1f2e3d4c."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{ts}-{secrets.token_hex(4)}"


class _PassAccumulator:
    """Thread-safe collection of per-document outcomes for one pass."""

    def __init__(self):
        self._lock = threading.Lock()
        self.newly_indexed: List[IndexedDocument] = []
        self.skipped_existing: List[str] = []
        self.failed: List[FailedDocument] = []

    def indexed(self, item: IndexedDocument) -> None:
        with self._lock:
            self.newly_indexed.append(item)

    def skipped(self, filename: str) -> None:
        with self._lock:
            self.skipped_existing.append(filename)

    def failure(self, filename: str, error: str) -> None:
        with self._lock:
            self.failed.append(FailedDocument(filename=filename, error=error))


class ScanOrchestrator:
    """
    One full pass over the library: scan, then reserve → convert → chunk →
    embed → store for every file, at most `concurrency` documents at a time.
    A document's failure is recorded and never aborts the pass.
    """

    def __init__(
        self,
        store: IDocumentStore,
        pipeline: DocumentPipeline,
        scan: Callable[[], List[ScannedFile]],
        gate: BusinessHoursGate,
        concurrency: int = 2,
        tracker: StatusTracker | None = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.scan = scan
        self.gate = gate
        self.concurrency = max(1, int(concurrency or 1))
        self.tracker = tracker or pipeline.tracker

    def _index_one(self, f: ScannedFile, acc: _PassAccumulator) -> None:
        document_id = str(uuid.uuid4())
        reserved = False
        try:
            if not self.store.reserve(document_id, f.filename, f.path):
                acc.skipped(f.filename)
                return
            reserved = True

            outcome = self.pipeline.process(document_id, f.path, gate=self.gate)
            if outcome.succeeded:
                acc.indexed(IndexedDocument(id=document_id, filename=f.filename, path=f.path, chunk_count=outcome.chunk_count))
            else:
                acc.failure(f.filename, outcome.error or outcome.status.value)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("❌ Indexing failed for %s: %s", f.path, message, exc_info=True)
            if reserved:
                self.tracker.failed(document_id, DocumentStatus.FAILED_PARSE, message)
            acc.failure(f.filename, message)

    def run(self, correlation_id: str) -> PassResult:
        start = time.monotonic()
        self.gate.wait_if_needed("run-start")
        files = self.scan()
        logger.info("🔎 [%s] Scan found %d files; concurrency=%d", correlation_id, len(files), self.concurrency)

        acc = _PassAccumulator()
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="shelf_index") as executor:
            futures = [executor.submit(self._index_one, f, acc) for f in files]
            for fut in futures:
                fut.result()

        result = PassResult(
            correlation_id=correlation_id,
            scanned_count=len(files),
            newly_indexed=list(acc.newly_indexed),
            skipped_existing=list(acc.skipped_existing),
            failed=list(acc.failed),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            "📥 [%s] Pass summary | scanned=%d | indexed=%d | skipped=%d | failed=%d | took=%dms",
            correlation_id, result.scanned_count, result.newly_indexed_count,
            len(result.skipped_existing), result.failed_count, result.duration_ms,
        )
        return result
