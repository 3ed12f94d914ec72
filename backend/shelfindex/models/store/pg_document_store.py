# backend/shelfindex/models/store/pg_document_store.py
from __future__ import annotations

import uuid
import logging
from typing import List, Optional, Sequence, Tuple

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from shelfindex.core.entities import ChunkRow, Document, DocumentStatus
from shelfindex.core.errors import StorageError
from shelfindex.core.ports.document_store import IDocumentStore

log = logging.getLogger("shelf.db.store")

_DOCUMENT_COLUMNS = (
    "id, filename, path, content_hash, status, error_text, chunk_count, created_at, last_indexed_at"
)


def _vector_literal(vec: Sequence[float]) -> str:
    return "[" + ",".join(f"{x:.7f}" for x in vec) + "]"


def _to_document(row: dict) -> Document:
    return Document(
        id=str(row["id"]),
        filename=row["filename"],
        path=row["path"],
        status=DocumentStatus(row["status"]),
        content_hash=row.get("content_hash"),
        error_text=row.get("error_text"),
        chunk_count=row.get("chunk_count"),
        created_at=row.get("created_at"),
        last_indexed_at=row.get("last_indexed_at"),
    )


class PgDocumentStore(IDocumentStore):
    """documents/chunks tables on PostgreSQL + pgvector, through the shared pool."""

    def __init__(self, pool: ConnectionPool, embedding_dim: int):
        self.pool = pool
        self.embedding_dim = embedding_dim

    # ------------------------------------------------------------
    # Reservation + status
    # ------------------------------------------------------------
    def reserve(self, document_id: str, filename: str, path: str, content_hash: Optional[str] = None) -> bool:
        with self.pool.connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO documents (id, filename, path, content_hash, status)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT DO NOTHING;
                """,
                (document_id, filename, path, content_hash, DocumentStatus.SCANNED.value),
            )
            return cur.rowcount == 1

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_text: Optional[str] = None,
        chunk_count: Optional[int] = None,
    ) -> None:
        with self.pool.connection() as conn:
            if status is DocumentStatus.INDEXED:
                conn.execute(
                    """
                    UPDATE documents
                       SET status = %s, error_text = NULL, chunk_count = %s, last_indexed_at = NOW()
                     WHERE id = %s;
                    """,
                    (status.value, chunk_count, document_id),
                )
            else:
                conn.execute(
                    "UPDATE documents SET status = %s, error_text = %s WHERE id = %s;",
                    (status.value, error_text, document_id),
                )

    # ------------------------------------------------------------
    # Storage writer
    # ------------------------------------------------------------
    def insert_chunks(self, document_id: str, rows: Sequence[ChunkRow]) -> int:
        if not rows:
            return 0
        for row in rows:
            if len(row.embedding) != self.embedding_dim:
                raise StorageError(
                    f"Chunk {row.index} has embedding dimension {len(row.embedding)}, expected {self.embedding_dim}"
                )

        params = [
            (str(uuid.uuid4()), document_id, row.index, row.content, _vector_literal(row.embedding))
            for row in rows
        ]
        try:
            with self.pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.executemany(
                            """
                            INSERT INTO chunks (id, document_id, chunk_index, content, embedding)
                            VALUES (%s, %s, %s, %s, %s::vector);
                            """,
                            params,
                        )
        except psycopg.Error as e:
            log.warning("❌ Chunk batch rolled back for %s (%d rows): %s", document_id, len(rows), e)
            raise StorageError(f"Batch insert failed: {e}") from e
        return len(params)

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def _fetch_one(self, where: str, value: str) -> Optional[Document]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE {where} = %s LIMIT 1;", (value,))
                row = cur.fetchone()
        return _to_document(row) if row else None

    def find_by_hash(self, content_hash: str) -> Optional[Document]:
        return self._fetch_one("content_hash", content_hash)

    def find_by_filename(self, filename: str) -> Optional[Document]:
        return self._fetch_one("filename", filename)

    def count_chunks(self, document_id: str) -> int:
        with self.pool.connection() as conn:
            row = conn.execute("SELECT COUNT(*) FROM chunks WHERE document_id = %s;", (document_id,)).fetchone()
        return int(row[0]) if row else 0

    def latest_documents(self, limit: int) -> List[Document]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY created_at DESC LIMIT %s;",
                    (limit,),
                )
                return [_to_document(r) for r in cur.fetchall()]

    def count_documents(self) -> int:
        with self.pool.connection() as conn:
            row = conn.execute("SELECT COUNT(*) FROM documents;").fetchone()
        return int(row[0]) if row else 0

    def list_documents(self) -> List[Tuple[Document, int]]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT d.id, d.filename, d.path, d.content_hash, d.status, d.error_text,
                           d.chunk_count, d.created_at, d.last_indexed_at,
                           COALESCE(c.cnt, 0) AS committed_chunks
                      FROM documents d
                      LEFT JOIN (SELECT document_id, COUNT(*) AS cnt FROM chunks GROUP BY document_id) c
                        ON c.document_id = d.id
                     ORDER BY d.created_at DESC;
                    """
                )
                return [(_to_document(r), int(r["committed_chunks"])) for r in cur.fetchall()]
