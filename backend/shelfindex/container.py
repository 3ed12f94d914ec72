from __future__ import annotations
import logging
from dataclasses import dataclass
from functools import partial

from psycopg_pool import ConnectionPool

from shelfindex.core.ports.document_store import IDocumentStore
from shelfindex.core.ports.embeddings import IEmbeddingModel
from shelfindex.core.services.business_hours import BusinessHoursGate
from shelfindex.core.services.chunking import chunk_markdown
from shelfindex.core.services.document_pipeline import DocumentPipeline
from shelfindex.core.services.scan_orchestrator import ScanOrchestrator
from shelfindex.core.services.scan_scheduler import ScanScheduler
from shelfindex.core.services.scanner import scan_library
from shelfindex.core.services.single_ingest import SingleDocumentIngestor, UploadHandler
from shelfindex.core.services.status_tracker import StatusTracker
from shelfindex.db.config import Settings, resolve_python
from shelfindex.models.converter.markitdown_converter import MarkitdownConverter
from shelfindex.models.embedding.checked_embedding import CheckedEmbedding
from shelfindex.models.embedding.hash_embedding import HashEmbedding
from shelfindex.models.embedding.ollama_embedding import OllamaEmbedding
from shelfindex.models.embedding.openai_embedding import OpenAIEmbedding
from shelfindex.models.store.inmemory_store import InMemoryDocumentStore
from shelfindex.models.store.pg_document_store import PgDocumentStore

logger = logging.getLogger("shelf.container")


@dataclass
class AppContainer:
    store: IDocumentStore
    embedder: IEmbeddingModel
    pipeline: DocumentPipeline
    orchestrator: ScanOrchestrator
    scheduler: ScanScheduler
    ingestor: SingleDocumentIngestor
    uploads: UploadHandler


def get_embedder(settings: Settings) -> IEmbeddingModel:
    """Embedding model for EMBEDDING_BACKEND, wrapped with the dimension check."""
    backend = settings.embedding_backend.strip().lower()
    if backend == "hash":
        inner: IEmbeddingModel = HashEmbedding(dim=settings.embedding_dim)
        logger.info("🔌 Using hash embedding: dim=%d", settings.embedding_dim)
    elif backend == "ollama":
        inner = OllamaEmbedding(
            host=settings.ollama_host,
            model=settings.embedding_model,
            timeout=settings.embedding_timeout,
        )
        logger.info("🔌 Using Ollama embedding: model=%s", settings.embedding_model)
    elif backend == "openai":
        inner = OpenAIEmbedding(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout=settings.embedding_timeout,
        )
        logger.info("🔌 Using OpenAI-compatible embedding: model=%s", settings.embedding_model)
    else:
        raise ValueError(f"Unknown EMBEDDING_BACKEND: {settings.embedding_backend!r}")
    return CheckedEmbedding(inner, settings.embedding_dim)


def get_converter(settings: Settings) -> MarkitdownConverter:
    python_bin, overlay = resolve_python(settings.python_bin, settings.venv_dir)
    logger.info("🔌 markitdown via %s (timeout=%.0fs, max=%d bytes)", python_bin,
                settings.markitdown_timeout_seconds, settings.markitdown_max_bytes)
    return MarkitdownConverter(
        python_bin=python_bin,
        timeout_seconds=settings.markitdown_timeout_seconds,
        max_bytes=settings.markitdown_max_bytes,
        env_overlay=overlay,
    )


def get_gate(settings: Settings) -> BusinessHoursGate:
    return BusinessHoursGate(
        tz=settings.business_tz,
        start=settings.business_start,
        end=settings.business_end,
        poll_seconds=settings.business_poll_seconds,
        enabled=settings.business_hours_enabled,
    )


def build_container(
    settings: Settings,
    pool: ConnectionPool | None = None,
    store: IDocumentStore | None = None,
) -> AppContainer:
    """Wire every component from settings. Pass `store` to inject a ready-made store."""
    if store is None and settings.store_backend.strip().lower() == "memory":
        logger.info("🔌 Using in-memory document store (nothing is persisted)")
        store = InMemoryDocumentStore(settings.embedding_dim)
    if store is None:
        if pool is None:
            raise ValueError("build_container needs either a connection pool or a document store")
        store = PgDocumentStore(pool, settings.embedding_dim)

    embedder = get_embedder(settings)
    tracker = StatusTracker(store)
    pipeline = DocumentPipeline(
        store=store,
        converter=get_converter(settings),
        embedder=embedder,
        tracker=tracker,
        batch_size=settings.embed_batch_size,
        chunker=partial(
            chunk_markdown,
            max_paragraph=settings.chunk_max_paragraph,
            min_chunk=settings.chunk_min,
            max_chunk=settings.chunk_max,
        ),
    )
    orchestrator = ScanOrchestrator(
        store=store,
        pipeline=pipeline,
        scan=partial(scan_library, settings.library_dir, settings.extensions),
        gate=get_gate(settings),
        concurrency=settings.index_concurrency,
        tracker=tracker,
    )
    scheduler = ScanScheduler(
        orchestrator=orchestrator,
        store=store,
        interval_seconds=settings.scan_interval_seconds,
        latest_limit=settings.status_latest_limit,
    )
    ingestor = SingleDocumentIngestor(store=store, pipeline=pipeline)
    uploads = UploadHandler(ingestor=ingestor, upload_dir=settings.upload_dir)

    logger.info(
        "✅ Container built | library=%s | concurrency=%d | interval=%.0fs",
        settings.library_dir, settings.index_concurrency, settings.scan_interval_seconds,
    )
    return AppContainer(
        store=store,
        embedder=embedder,
        pipeline=pipeline,
        orchestrator=orchestrator,
        scheduler=scheduler,
        ingestor=ingestor,
        uploads=uploads,
    )
