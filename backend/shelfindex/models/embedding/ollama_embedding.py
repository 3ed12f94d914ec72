# backend/shelfindex/models/embedding/ollama_embedding.py
from __future__ import annotations
from typing import List
import os, requests, time, logging

from shelfindex.core.errors import EmbeddingError
from shelfindex.core.ports.embeddings import IEmbeddingModel

logger = logging.getLogger("shelf.embedding.ollama")


def _resolve_host() -> str:
    """Resolve Ollama host inside/outside Docker with env override."""
    env_host = os.getenv("OLLAMA_HOST")
    if env_host:
        return env_host.rstrip("/")
    if os.path.exists("/.dockerenv"):
        return "http://ollama:11434"
    return "http://127.0.0.1:11434"


class OllamaEmbedding(IEmbeddingModel):
    """
    Embedding model using Ollama's /api/embed endpoint.
    One request per batch; retried with linear backoff, then raises EmbeddingError.
    """

    def __init__(
        self,
        host: str | None = None,
        model: str = "nomic-embed-text:latest",
        timeout: int = 120,
        retries: int = 3,
        backoff: float = 2.0,
    ):
        self.host = (host or _resolve_host()).rstrip("/")
        self.model = model.strip()
        if ":" not in self.model:
            self.model += ":latest"
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff

    def _post(self, inputs: List[str]) -> List[List[float]]:
        url = f"{self.host}/api/embed"
        payload = {"model": self.model, "input": inputs}
        last_err: Exception | None = None

        for attempt in range(self.retries):
            try:
                r = requests.post(url, json=payload, timeout=self.timeout)
                r.raise_for_status()
                embs = r.json().get("embeddings") or []
                return [[float(x) for x in vec] for vec in embs]
            except (requests.RequestException, ValueError, TypeError) as e:
                last_err = e
                logger.warning(
                    "⚠️ Ollama embed failed (%d items): %s (Attempt %d/%d)",
                    len(inputs), e, attempt + 1, self.retries,
                )
                if attempt + 1 < self.retries:
                    time.sleep(self.backoff * (attempt + 1))

        raise EmbeddingError(
            EmbeddingError.SERVICE_FAILURE,
            f"Ollama embedding request failed after {self.retries} attempts: {last_err}",
        )

    def embed(self, text: str) -> List[float]:
        vecs = self._post([text or ""])
        if not vecs:
            raise EmbeddingError(EmbeddingError.SERVICE_FAILURE, "Ollama returned no embedding")
        return vecs[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return self._post([t or "" for t in texts])
