from __future__ import annotations
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from shelfindex.core.entities import ChunkRow, Document, DocumentStatus
from shelfindex.core.errors import StorageError
from shelfindex.core.ports.document_store import IDocumentStore


class InMemoryDocumentStore(IDocumentStore):
    """
    Process-local document store (STORE_BACKEND=memory).

    Mirrors the PostgreSQL constraints that matter to the pipeline: filename
    and content hash are unique, and a chunk batch is all-or-nothing.
    """

    def __init__(self, embedding_dim: Optional[int] = None) -> None:
        self.embedding_dim = embedding_dim
        self._lock = threading.RLock()
        self.docs: Dict[str, Document] = {}
        self.chunks: Dict[str, Dict[int, ChunkRow]] = {}
        self._order: List[str] = []

    def reserve(self, document_id: str, filename: str, path: str, content_hash: Optional[str] = None) -> bool:
        with self._lock:
            for doc in self.docs.values():
                if doc.filename == filename or (content_hash and doc.content_hash == content_hash):
                    return False
            self.docs[document_id] = Document(
                id=document_id,
                filename=filename,
                path=path,
                status=DocumentStatus.SCANNED,
                content_hash=content_hash,
                created_at=datetime.now(timezone.utc),
            )
            self.chunks[document_id] = {}
            self._order.append(document_id)
            return True

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_text: Optional[str] = None,
        chunk_count: Optional[int] = None,
    ) -> None:
        with self._lock:
            doc = self.docs[document_id]
            if status is DocumentStatus.INDEXED:
                self.docs[document_id] = replace(
                    doc, status=status, error_text=None, chunk_count=chunk_count,
                    last_indexed_at=datetime.now(timezone.utc),
                )
            else:
                self.docs[document_id] = replace(doc, status=status, error_text=error_text)

    def insert_chunks(self, document_id: str, rows: Sequence[ChunkRow]) -> int:
        with self._lock:
            if document_id not in self.docs:
                raise StorageError(f"Unknown document: {document_id}")
            existing = self.chunks[document_id]
            for row in rows:
                if self.embedding_dim is not None and len(row.embedding) != self.embedding_dim:
                    raise StorageError(
                        f"Chunk {row.index} has embedding dimension {len(row.embedding)}, expected {self.embedding_dim}"
                    )
                if row.index in existing:
                    raise StorageError(f"Duplicate chunk index {row.index} for {document_id}")
            for row in rows:
                existing[row.index] = row
            return len(rows)

    def find_by_hash(self, content_hash: str) -> Optional[Document]:
        with self._lock:
            return next((d for d in self.docs.values() if d.content_hash == content_hash), None)

    def find_by_filename(self, filename: str) -> Optional[Document]:
        with self._lock:
            return next((d for d in self.docs.values() if d.filename == filename), None)

    def count_chunks(self, document_id: str) -> int:
        with self._lock:
            return len(self.chunks.get(document_id, {}))

    def latest_documents(self, limit: int) -> List[Document]:
        with self._lock:
            return [self.docs[i] for i in reversed(self._order)][:limit]

    def count_documents(self) -> int:
        with self._lock:
            return len(self.docs)

    def list_documents(self) -> List[Tuple[Document, int]]:
        with self._lock:
            return [(self.docs[i], len(self.chunks[i])) for i in reversed(self._order)]
