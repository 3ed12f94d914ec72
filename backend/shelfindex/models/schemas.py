from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from shelfindex.core.entities import Document, PassResult, SchedulerStatus, SingleFileResult


class DocumentOut(BaseModel):
    id: str
    filename: str
    path: str
    status: str
    error_text: Optional[str] = None
    chunk_count: Optional[int] = None
    created_at: Optional[datetime] = None
    last_indexed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, doc: Document, chunk_count: Optional[int] = None) -> "DocumentOut":
        return cls(
            id=doc.id,
            filename=doc.filename,
            path=doc.path,
            status=doc.status.value,
            error_text=doc.error_text,
            chunk_count=chunk_count if chunk_count is not None else doc.chunk_count,
            created_at=doc.created_at,
            last_indexed_at=doc.last_indexed_at,
        )


class DocumentList(BaseModel):
    items: List[DocumentOut]
    total: int


class IndexedOut(BaseModel):
    id: str
    filename: str
    path: str
    chunk_count: int


class FailedOut(BaseModel):
    filename: str
    error: str


class PassResultOut(BaseModel):
    correlation_id: str
    scanned_count: int
    newly_indexed_count: int
    newly_indexed: List[IndexedOut]
    skipped_existing: List[str]
    failed: List[FailedOut]
    duration_ms: int

    @classmethod
    def from_entity(cls, r: PassResult) -> "PassResultOut":
        return cls(
            correlation_id=r.correlation_id,
            scanned_count=r.scanned_count,
            newly_indexed_count=r.newly_indexed_count,
            newly_indexed=[IndexedOut(id=d.id, filename=d.filename, path=d.path, chunk_count=d.chunk_count) for d in r.newly_indexed],
            skipped_existing=list(r.skipped_existing),
            failed=[FailedOut(filename=f.filename, error=f.error) for f in r.failed],
            duration_ms=r.duration_ms,
        )


class SchedulerStatusOut(BaseModel):
    started: bool
    interval_seconds: float
    is_running: bool
    runs_completed: int
    last_correlation_id: Optional[str] = None
    last_run_start: Optional[datetime] = None
    last_run_end: Optional[datetime] = None
    last_run_duration_ms: Optional[int] = None
    last_error: Optional[str] = None
    last_result: Optional[PassResultOut] = None
    next_scheduled_run_at: Optional[datetime] = None
    latest_documents: List[DocumentOut]
    total_documents: int
    last_sync_newly_indexed_count: Optional[int] = None
    last_sync_scanned_count: Optional[int] = None

    @classmethod
    def from_entity(cls, s: SchedulerStatus) -> "SchedulerStatusOut":
        return cls(
            started=s.started,
            interval_seconds=s.interval_seconds,
            is_running=s.is_running,
            runs_completed=s.runs_completed,
            last_correlation_id=s.last_correlation_id,
            last_run_start=s.last_run_start,
            last_run_end=s.last_run_end,
            last_run_duration_ms=s.last_run_duration_ms,
            last_error=s.last_error,
            last_result=PassResultOut.from_entity(s.last_result) if s.last_result else None,
            next_scheduled_run_at=s.next_scheduled_run_at,
            latest_documents=[DocumentOut.from_entity(d) for d in s.latest_documents],
            total_documents=s.total_documents,
            last_sync_newly_indexed_count=s.last_sync_newly_indexed_count,
            last_sync_scanned_count=s.last_sync_scanned_count,
        )


class UploadResponse(BaseModel):
    success: bool
    document_id: Optional[str] = None
    filename: str
    chunk_count: int = 0
    status: str
    error: Optional[str] = None

    @classmethod
    def from_entity(cls, r: SingleFileResult) -> "UploadResponse":
        return cls(
            success=r.success,
            document_id=r.document_id,
            filename=r.filename,
            chunk_count=r.chunk_count,
            status=r.status.value,
            error=r.error,
        )


class HealthResponse(BaseModel):
    status: str
