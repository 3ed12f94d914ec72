from __future__ import annotations
import logging
from typing import Callable, List, Optional

from shelfindex.core.entities import ChunkRow, DocumentStatus, PipelineOutcome
from shelfindex.core.errors import ConversionError, EmbeddingError, StorageError
from shelfindex.core.ports.converter import IConverter
from shelfindex.core.ports.document_store import IDocumentStore
from shelfindex.core.ports.embeddings import IEmbeddingModel
from shelfindex.core.services.business_hours import BusinessHoursGate
from shelfindex.core.services.chunking import chunk_markdown
from shelfindex.core.services.status_tracker import StatusTracker

logger = logging.getLogger("shelf.pipeline")

NO_CHUNKS_ERROR = "No chunks produced"


class DocumentPipeline:
    """
    convert → chunk → embed → store for one already-reserved document.

    Chunks are embedded and written in batches of `batch_size`; each batch is
    its own transaction. A failing batch leaves earlier batches committed and
    the document marked failed, never indexed. Every stage error, expected or
    not, becomes a terminal PipelineOutcome so no reserved row stays `scanned`.
    """

    def __init__(
        self,
        store: IDocumentStore,
        converter: IConverter,
        embedder: IEmbeddingModel,
        tracker: Optional[StatusTracker] = None,
        batch_size: int = 32,
        chunker: Callable[[str], List[str]] = chunk_markdown,
    ):
        self.store = store
        self.converter = converter
        self.embedder = embedder
        self.tracker = tracker or StatusTracker(store)
        self.batch_size = max(1, batch_size)
        self.chunker = chunker

    def _fail(self, document_id: str, status: DocumentStatus, error: str, chunk_count: int = 0) -> PipelineOutcome:
        self.tracker.failed(document_id, status, error)
        return PipelineOutcome(status=status, chunk_count=chunk_count, error=error)

    def process(
        self,
        document_id: str,
        path: str,
        gate: Optional[BusinessHoursGate] = None,
    ) -> PipelineOutcome:
        # 1) Convert
        if gate:
            gate.wait_if_needed("before-convert")
        try:
            text = self.converter.convert(path)
        except ConversionError as e:
            logger.warning("Conversion failed [%s] for %s: %s", e.code, path, e)
            return self._fail(document_id, DocumentStatus.FAILED_PARSE, str(e) or "Conversion failed")
        except Exception as e:
            logger.exception("Converter error for %s", path)
            return self._fail(document_id, DocumentStatus.FAILED_PARSE, str(e) or type(e).__name__)

        # 2) Chunk
        try:
            chunks = self.chunker(text)
        except Exception as e:
            logger.exception("Chunking failed for %s", path)
            return self._fail(document_id, DocumentStatus.FAILED_PARSE, str(e) or type(e).__name__)
        if not chunks:
            logger.warning("No chunks produced for %s; marking failed_parse", path)
            return self._fail(document_id, DocumentStatus.FAILED_PARSE, NO_CHUNKS_ERROR)

        # 3) Embed + store, one batch at a time
        committed = 0
        for offset in range(0, len(chunks), self.batch_size):
            batch = chunks[offset:offset + self.batch_size]

            if gate:
                gate.wait_if_needed("before-embed-batch")
            try:
                vectors = self.embedder.embed_batch(batch)
            except EmbeddingError as e:
                logger.warning("Embedding failed [%s] for %s at chunk %d: %s", e.code, path, offset, e)
                return self._fail(document_id, DocumentStatus.FAILED_EMBED, str(e), committed)
            except Exception as e:
                logger.exception("Embedding service error for %s at chunk %d", path, offset)
                return self._fail(document_id, DocumentStatus.FAILED_EMBED, str(e) or "Embedding failed", committed)

            rows = [ChunkRow(index=offset + i, content=c, embedding=v) for i, (c, v) in enumerate(zip(batch, vectors))]
            try:
                self.store.insert_chunks(document_id, rows)
            except StorageError as e:
                logger.warning("Chunk insert failed for %s at chunk %d: %s", path, offset, e)
                return self._fail(document_id, DocumentStatus.FAILED_INSERT, str(e), committed)
            except Exception as e:
                logger.exception("Chunk insert error for %s at chunk %d", path, offset)
                return self._fail(document_id, DocumentStatus.FAILED_INSERT, str(e) or type(e).__name__, committed)
            committed += len(rows)

        self.tracker.indexed(document_id, committed)
        logger.info("📚 Indexed %s (%d chunks)", path, committed)
        return PipelineOutcome(status=DocumentStatus.INDEXED, chunk_count=committed)
