"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from shelfindex.core.ports.converter import IConverter
from shelfindex.core.services.business_hours import BusinessHoursGate
from shelfindex.core.services.document_pipeline import DocumentPipeline
from shelfindex.models.embedding.checked_embedding import CheckedEmbedding
from shelfindex.models.embedding.hash_embedding import HashEmbedding
from shelfindex.models.store.inmemory_store import InMemoryDocumentStore

DIM = 8


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(embedding_dim=DIM)


@pytest.fixture
def converter() -> MagicMock:
    """Converter double; returns a short markdown document unless told otherwise."""
    conv = MagicMock(spec=IConverter)
    conv.convert.return_value = "# Title\n\nSome body text."
    return conv


@pytest.fixture
def embedder() -> CheckedEmbedding:
    return CheckedEmbedding(HashEmbedding(dim=DIM), DIM)


@pytest.fixture
def open_gate() -> BusinessHoursGate:
    return BusinessHoursGate(enabled=False)


@pytest.fixture
def pipeline(store, converter, embedder) -> DocumentPipeline:
    return DocumentPipeline(store=store, converter=converter, embedder=embedder, batch_size=2)
