from __future__ import annotations
from typing import List
import logging

from shelfindex.core.errors import EmbeddingError
from shelfindex.core.ports.embeddings import IEmbeddingModel

log = logging.getLogger("shelf.embedding")


class CheckedEmbedding(IEmbeddingModel):
    """
    Enforces the deployment's vector dimension on any embedding model.
    One bad vector (or a short/long result list) fails the whole batch.
    """

    def __init__(self, inner: IEmbeddingModel, dim: int):
        if dim <= 0:
            raise ValueError(f"Invalid embedding dim: {dim}")
        self.inner = inner
        self.dim = dim

    def _check(self, vec: List[float], position: int) -> None:
        if len(vec) != self.dim:
            raise EmbeddingError(
                EmbeddingError.DIMENSION_MISMATCH,
                f"Unexpected embedding size at position {position}; expected {self.dim}, got {len(vec)}",
            )

    def embed(self, text: str) -> List[float]:
        vec = self.inner.embed(text)
        self._check(vec, 0)
        return vec

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        vecs = self.inner.embed_batch(texts)
        if len(vecs) != len(texts):
            raise EmbeddingError(
                EmbeddingError.DIMENSION_MISMATCH,
                f"Embedding batch mismatch: {len(vecs)} vectors for {len(texts)} inputs",
            )
        for i, vec in enumerate(vecs):
            self._check(vec, i)
        return vecs
