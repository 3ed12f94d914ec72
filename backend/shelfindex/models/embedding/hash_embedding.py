from __future__ import annotations
from typing import Iterator, List
import math, hashlib, struct
from shelfindex.core.ports.embeddings import IEmbeddingModel


def _digest_stream(text: str, namespace: bytes) -> Iterator[int]:
    """Endless stream of 64-bit ints derived from the text's blake2b digest."""
    h = hashlib.blake2b(text.encode("utf-8"), digest_size=64, key=namespace).digest()
    while True:
        for (x,) in struct.iter_unpack("<Q", h):
            yield x
        h = hashlib.blake2b(h, digest_size=64).digest()


class HashEmbedding(IEmbeddingModel):
    """
    Deterministic offline embedding for development and tests (EMBEDDING_BACKEND=hash).
    Same text -> same unit vector; carries no semantics.
    """

    def __init__(self, dim: int = 1536, namespace: str = "shelf"):
        self.dim = dim
        self.namespace = namespace.encode("utf-8")[:64]

    def _hash_vec(self, text: str) -> List[float]:
        stream = _digest_stream(text, self.namespace)
        vals = [(next(stream) % 10_000_000) / 10_000_000.0 for _ in range(self.dim)]
        mean = sum(vals) / self.dim
        vec = [v - mean for v in vals]
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]

    def embed(self, text: str) -> List[float]:
        return self._hash_vec(text or "")

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self._hash_vec(t or "") for t in texts]
