from __future__ import annotations

import hashlib
import logging

LOGGER = logging.getLogger(__name__)


class EmbeddingProvider:
    def embed_query(self, text: str) -> list[float]:
        raise NotImplementedError


class DeterministicEmbeddingProvider(EmbeddingProvider):
    """Hash-derived vectors; stable across runs, useful only for wiring checks."""

    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions

    def embed_query(self, text: str) -> list[float]:
        required_bytes = max(self._dimensions * 2, 64)
        digest_source = b""
        seed = text.encode("utf-8")
        while len(digest_source) < required_bytes:
            seed = hashlib.sha256(seed).digest()
            digest_source += seed
        return [value / 255.0 for value in digest_source[: self._dimensions]]


class GoogleGenerativeAIEmbeddingProvider(EmbeddingProvider):
    def __init__(self, *, api_key: str, model: str, dimensions: int) -> None:
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        self._embeddings = GoogleGenerativeAIEmbeddings(
            model=model,
            google_api_key=api_key,
            task_type="RETRIEVAL_QUERY",
            output_dimensionality=dimensions,
        )

    def embed_query(self, text: str) -> list[float]:
        return list(self._embeddings.embed_query(text))


def build_embedding_provider(
    *,
    backend: str,
    api_key: str | None,
    model: str,
    dimensions: int,
) -> EmbeddingProvider:
    if backend != "google" or not api_key:
        return DeterministicEmbeddingProvider(dimensions=dimensions)

    try:
        return GoogleGenerativeAIEmbeddingProvider(
            api_key=api_key,
            model=model,
            dimensions=dimensions,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning(
            "Google embedding provider unavailable; using deterministic embeddings",
            exc_info=exc,
            extra={"model": model},
        )
        return DeterministicEmbeddingProvider(dimensions=dimensions)
