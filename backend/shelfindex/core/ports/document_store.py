from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from shelfindex.core.entities import ChunkRow, Document, DocumentStatus


class IDocumentStore(ABC):
    @abstractmethod
    def reserve(self, document_id: str, filename: str, path: str, content_hash: Optional[str] = None) -> bool:
        """Atomically insert a `scanned` document row; False when filename or hash is taken."""
        ...

    @abstractmethod
    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_text: Optional[str] = None,
        chunk_count: Optional[int] = None,
    ) -> None: ...

    @abstractmethod
    def insert_chunks(self, document_id: str, rows: Sequence[ChunkRow]) -> int:
        """Insert one batch in a single transaction; raise StorageError after rollback."""
        ...

    @abstractmethod
    def find_by_hash(self, content_hash: str) -> Optional[Document]: ...

    @abstractmethod
    def find_by_filename(self, filename: str) -> Optional[Document]: ...

    @abstractmethod
    def count_chunks(self, document_id: str) -> int: ...

    @abstractmethod
    def latest_documents(self, limit: int) -> List[Document]: ...

    @abstractmethod
    def count_documents(self) -> int: ...

    @abstractmethod
    def list_documents(self) -> List[Tuple[Document, int]]:
        """All documents, newest first, with their committed chunk counts."""
        ...
