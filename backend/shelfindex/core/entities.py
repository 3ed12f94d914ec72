from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class DocumentStatus(str, Enum):
    SCANNED = "scanned"
    INDEXED = "indexed"
    FAILED_PARSE = "failed_parse"
    FAILED_EMBED = "failed_embed"
    FAILED_INSERT = "failed_insert"

    @property
    def is_terminal(self) -> bool:
        return self is not DocumentStatus.SCANNED


class IngestStatus(str, Enum):
    """Outcome of a single-document ingest or upload."""
    INDEXED = "indexed"
    ALREADY_EXISTS = "already_exists"
    IN_PROGRESS = "in_progress"
    FAILED_PARSE = "failed_parse"
    FAILED_EMBED = "failed_embed"
    FAILED_INSERT = "failed_insert"
    FAILED_SAVE = "failed_save"


@dataclass(frozen=True)
class ScannedFile:
    filename: str
    path: str  # absolute


@dataclass(frozen=True)
class Document:
    id: str
    filename: str
    path: str
    status: DocumentStatus
    content_hash: Optional[str] = None
    error_text: Optional[str] = None
    chunk_count: Optional[int] = None
    created_at: Optional[datetime] = None
    last_indexed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ChunkRow:
    index: int
    content: str
    embedding: List[float]


@dataclass(frozen=True)
class IndexedDocument:
    id: str
    filename: str
    path: str
    chunk_count: int


@dataclass(frozen=True)
class FailedDocument:
    filename: str
    error: str


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal state reached by one reserved document."""
    status: DocumentStatus
    chunk_count: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is DocumentStatus.INDEXED


@dataclass(frozen=True)
class PassResult:
    correlation_id: str
    scanned_count: int
    newly_indexed: List[IndexedDocument]
    skipped_existing: List[str]
    failed: List[FailedDocument]
    duration_ms: int

    @property
    def newly_indexed_count(self) -> int:
        return len(self.newly_indexed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass(frozen=True)
class StatusUpdate:
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SingleFileResult:
    success: bool
    document_id: Optional[str]
    filename: str
    chunk_count: int
    status: IngestStatus
    error: Optional[str] = None


@dataclass(frozen=True)
class SchedulerStatus:
    started: bool
    interval_seconds: float
    is_running: bool
    runs_completed: int
    last_correlation_id: Optional[str] = None
    last_run_start: Optional[datetime] = None
    last_run_end: Optional[datetime] = None
    last_run_duration_ms: Optional[int] = None
    last_error: Optional[str] = None
    last_result: Optional[PassResult] = None
    next_scheduled_run_at: Optional[datetime] = None
    latest_documents: List[Document] = field(default_factory=list)
    total_documents: int = 0

    @property
    def last_sync_newly_indexed_count(self) -> Optional[int]:
        return self.last_result.newly_indexed_count if self.last_result else None

    @property
    def last_sync_scanned_count(self) -> Optional[int]:
        return self.last_result.scanned_count if self.last_result else None
