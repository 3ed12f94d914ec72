"""Unit tests for single-document ingestion and upload handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from shelfindex.core.entities import DocumentStatus, IngestStatus
from shelfindex.core.errors import ConversionError
from shelfindex.core.services.document_pipeline import DocumentPipeline
from shelfindex.core.services.single_ingest import IN_PROGRESS_ERROR, SingleDocumentIngestor, UploadHandler
from shelfindex.models.fingerprint.file_fingerprint import sanitize_filename
from shelfindex.models.store.inmemory_store import InMemoryDocumentStore


@pytest.fixture
def ingestor(store, pipeline) -> SingleDocumentIngestor:
    return SingleDocumentIngestor(store=store, pipeline=pipeline)


class TestSingleDocumentIngestor:
    def test_new_document_is_indexed(self, ingestor, store) -> None:
        result = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-a")

        assert result.success
        assert result.status is IngestStatus.INDEXED
        assert result.chunk_count == 1
        doc = store.find_by_hash("hash-a")
        assert doc.id == result.document_id
        assert doc.status is DocumentStatus.INDEXED

    def test_same_content_returns_existing(self, ingestor, converter) -> None:
        first = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-a")
        converter.convert.reset_mock()

        again = ingestor.ingest("/up/renamed.pdf", "renamed.pdf", "hash-a")

        assert again.success
        assert again.status is IngestStatus.ALREADY_EXISTS
        assert again.document_id == first.document_id
        assert again.chunk_count == 1
        converter.convert.assert_not_called()

    def test_name_held_by_pending_document_is_in_progress(self, ingestor, store) -> None:
        store.reserve("pending", "a.pdf", "/lib/a.pdf")

        result = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-new")

        assert not result.success
        assert result.status is IngestStatus.IN_PROGRESS
        assert result.document_id == "pending"
        assert result.error == IN_PROGRESS_ERROR

    def test_name_held_by_finished_document_already_exists(self, ingestor, store) -> None:
        store.reserve("done", "a.pdf", "/lib/a.pdf", "hash-old")
        store.update_status("done", DocumentStatus.INDEXED, chunk_count=0)

        result = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-new")

        assert result.success
        assert result.status is IngestStatus.ALREADY_EXISTS
        assert result.document_id == "done"

    def test_conversion_failure(self, ingestor, converter, store) -> None:
        converter.convert.side_effect = ConversionError(ConversionError.TIMEOUT, "markitdown timed out after 300000ms")

        result = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-a")

        assert not result.success
        assert result.status is IngestStatus.FAILED_PARSE
        assert result.error == "markitdown timed out after 300000ms"
        assert store.find_by_filename("a.pdf").status is DocumentStatus.FAILED_PARSE

    def test_unexpected_error_never_raises(self, ingestor, converter, store) -> None:
        converter.convert.side_effect = RuntimeError("kaboom")

        result = ingestor.ingest("/up/a.pdf", "a.pdf")

        assert not result.success
        assert result.status is IngestStatus.FAILED_PARSE
        assert result.error == "kaboom"
        doc = store.find_by_filename("a.pdf")
        assert doc.status is DocumentStatus.FAILED_PARSE
        assert doc.error_text == "kaboom"

    def test_failed_document_is_not_left_in_progress(self, ingestor, converter) -> None:
        converter.convert.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        first = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-a")
        converter.convert.side_effect = None

        again = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-b")

        assert first.status is IngestStatus.FAILED_PARSE
        assert again.status is IngestStatus.ALREADY_EXISTS
        assert again.document_id == first.document_id

    def test_unexpected_insert_error_is_failed_insert(self, converter, embedder) -> None:
        class _BrokenStore(InMemoryDocumentStore):
            def insert_chunks(self, document_id, rows) -> int:
                raise OSError("disk full")

        store = _BrokenStore(embedding_dim=8)
        ingestor = SingleDocumentIngestor(store=store, pipeline=DocumentPipeline(store, converter, embedder))

        result = ingestor.ingest("/up/a.pdf", "a.pdf", "hash-a")

        assert not result.success
        assert result.status is IngestStatus.FAILED_INSERT
        assert result.error == "disk full"
        assert store.find_by_filename("a.pdf").status is DocumentStatus.FAILED_INSERT


class TestUploadHandler:
    def test_upload_is_saved_and_indexed(self, ingestor, tmp_path: Path) -> None:
        handler = UploadHandler(ingestor, str(tmp_path / "uploads"))

        result = handler.handle(b"%PDF-1.4 body", "report.pdf")

        saved = tmp_path / "uploads" / "report.pdf"
        assert saved.read_bytes() == b"%PDF-1.4 body"
        assert result.status is IngestStatus.INDEXED
        assert result.filename == "report.pdf"

    def test_path_components_are_stripped(self, ingestor, tmp_path: Path) -> None:
        handler = UploadHandler(ingestor, str(tmp_path / "uploads"))

        result = handler.handle(b"data", "../../etc/evil?.pdf")

        assert result.filename == "evil_.pdf"
        assert (tmp_path / "uploads" / "evil_.pdf").exists()

    def test_duplicate_upload(self, ingestor, tmp_path: Path) -> None:
        handler = UploadHandler(ingestor, str(tmp_path / "uploads"))
        first = handler.handle(b"same bytes", "one.pdf")

        second = handler.handle(b"same bytes", "two.pdf")

        assert second.status is IngestStatus.ALREADY_EXISTS
        assert second.document_id == first.document_id
        assert second.filename == "one.pdf"

    def test_invalid_filename(self, ingestor, tmp_path: Path) -> None:
        result = UploadHandler(ingestor, str(tmp_path)).handle(b"x", "..")
        assert result.status is IngestStatus.FAILED_SAVE

    def test_unwritable_upload_dir(self, ingestor, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")

        result = UploadHandler(ingestor, str(blocker)).handle(b"x", "a.pdf")

        assert not result.success
        assert result.status is IngestStatus.FAILED_SAVE
        assert result.error.startswith("Failed to save file")


class TestFingerprint:
    def test_sanitize_caps_length_and_keeps_extension(self) -> None:
        name = sanitize_filename("a" * 300 + ".pdf")
        assert len(name) == 200
        assert name.endswith(".pdf")

    def test_sanitize_windows_paths(self) -> None:
        assert sanitize_filename("C:\\Users\\me\\doc:1.pdf") == "doc_1.pdf"
