from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from supabase import Client, create_client

from tandem.models import Passage, SourceCollection
from tandem.retrievers.embeddings import EmbeddingProvider
from tandem.retrievers.scoring import overlap_score

LOGGER = logging.getLogger(__name__)


class SourceUnavailableError(RuntimeError):
    """A similarity source could not be queried."""

    def __init__(self, collection: SourceCollection, reason: str) -> None:
        super().__init__(f"{collection.value} source unavailable: {reason}")
        self.collection = collection
        self.reason = reason


class SimilaritySource(Protocol):
    collection: SourceCollection

    @property
    def available(self) -> bool: ...

    async def search(self, query_text: str, k: int) -> list[Passage]: ...


class SeedSimilaritySource:
    """Pre-chunked passages from a local JSON file, ranked by token overlap."""

    def __init__(self, collection: SourceCollection, path: str) -> None:
        self.collection = collection
        self._path = path
        self._passages = _load_seed_passages(collection, path)

    @property
    def available(self) -> bool:
        return bool(self._passages)

    async def search(self, query_text: str, k: int) -> list[Passage]:
        scored = [
            (overlap_score(query_text, passage.text), index, passage)
            for index, passage in enumerate(self._passages)
        ]
        ranked = sorted(
            (row for row in scored if row[0] > 0),
            key=lambda row: (-row[0], row[1]),
        )
        return [passage for _, _, passage in ranked[: max(k, 0)]]


class SupabaseSimilaritySource:
    def __init__(
        self,
        *,
        collection: SourceCollection,
        supabase_url: str,
        supabase_key: str,
        match_function: str,
        embedding_provider: EmbeddingProvider,
        match_threshold: float,
    ) -> None:
        self.collection = collection
        self._match_function = match_function
        self._embedding_provider = embedding_provider
        self._match_threshold = match_threshold
        self._client: Client = create_client(supabase_url, supabase_key)

    @property
    def available(self) -> bool:
        return True

    async def search(self, query_text: str, k: int) -> list[Passage]:
        return await asyncio.to_thread(self._search_sync, query_text, k)

    def _search_sync(self, query_text: str, k: int) -> list[Passage]:
        try:
            query_embedding = self._embedding_provider.embed_query(query_text)
            response = self._client.rpc(
                self._match_function,
                {
                    "query_embedding": query_embedding,
                    "match_count": k,
                    "match_threshold": self._match_threshold,
                },
            ).execute()
        except Exception as exc:  # noqa: BLE001
            raise SourceUnavailableError(
                self.collection, f"{exc.__class__.__name__}: {exc}"
            ) from exc

        rows = response.data
        if not isinstance(rows, list):
            return []
        passages = [_passage_from_row(self.collection, row) for row in rows]
        return [passage for passage in passages if passage is not None][:k]


def _passage_from_row(collection: SourceCollection, row: Any) -> Passage | None:
    if not isinstance(row, dict):
        return None
    document_id = row.get("document_id")
    chunk_index = row.get("chunk_index")
    content = row.get("content")
    if not isinstance(document_id, str) or not isinstance(content, str):
        return None
    if not isinstance(chunk_index, int) or chunk_index < 0:
        return None
    metadata = row.get("metadata")
    normalized_metadata: dict[str, str] = {}
    if isinstance(metadata, dict):
        normalized_metadata = {
            str(key): str(value) for key, value in metadata.items() if value is not None
        }
    similarity = row.get("similarity")
    if isinstance(similarity, (int, float)):
        normalized_metadata["similarity"] = f"{float(similarity):.4f}"
    return Passage(
        text=content,
        source_collection=collection,
        document_id=document_id,
        chunk_index=chunk_index,
        metadata=normalized_metadata,
    )


def _load_seed_passages(collection: SourceCollection, path: str) -> list[Passage]:
    seed_path = Path(path)
    if not seed_path.is_file():
        LOGGER.info(
            "Seed passages not found",
            extra={"collection": collection.value, "path": path},
        )
        return []
    try:
        with seed_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning(
            "Seed passages could not be loaded",
            exc_info=exc,
            extra={"collection": collection.value, "path": path},
        )
        return []
    if not isinstance(payload, list):
        return []
    rows = (_passage_from_row(collection, row) for row in payload)
    return [passage for passage in rows if passage is not None]
