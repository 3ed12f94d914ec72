# backend/shelfindex/models/embedding/openai_embedding.py
from __future__ import annotations
from typing import List
import time, logging
import requests

from shelfindex.core.errors import EmbeddingError
from shelfindex.core.ports.embeddings import IEmbeddingModel

logger = logging.getLogger("shelf.embedding.openai")

# Statuses worth another attempt; anything else fails the batch immediately.
_RETRYABLE = {408, 409, 429, 500, 502, 503, 504}


class OpenAIEmbedding(IEmbeddingModel):
    """Client for OpenAI-compatible `/embeddings` endpoints."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 120,
        retries: int = 3,
        backoff: float = 2.0,
    ):
        if not api_key:
            logger.warning("⚠️ OPENAI_API_KEY is empty; embedding requests will be rejected.")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self.session = requests.Session()

    def _request(self, inputs: List[str]) -> List[List[float]]:
        url = f"{self.base_url}/embeddings"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {"model": self.model, "input": inputs}
        last_err = "no attempt made"

        for attempt in range(self.retries):
            try:
                r = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                last_err = str(e)
            else:
                if r.ok:
                    try:
                        data = sorted(r.json().get("data") or [], key=lambda d: d.get("index", 0))
                        return [[float(x) for x in d["embedding"]] for d in data]
                    except (ValueError, KeyError, TypeError, AttributeError) as e:
                        raise EmbeddingError(
                            EmbeddingError.SERVICE_FAILURE, f"Malformed embedding response: {e}"
                        ) from e
                last_err = f"HTTP {r.status_code}: {r.text[:300]}"
                if r.status_code not in _RETRYABLE:
                    break

            logger.warning("⚠️ Embedding request failed: %s (Attempt %d/%d)", last_err, attempt + 1, self.retries)
            if attempt + 1 < self.retries:
                time.sleep(self.backoff * (attempt + 1))

        raise EmbeddingError(EmbeddingError.SERVICE_FAILURE, f"Embedding request failed: {last_err}")

    def embed(self, text: str) -> List[float]:
        vecs = self._request([text])
        if not vecs:
            raise EmbeddingError(EmbeddingError.SERVICE_FAILURE, "Embedding service returned no data")
        return vecs[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return self._request(list(texts))
