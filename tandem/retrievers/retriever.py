from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from tandem.models import Passage
from tandem.retrievers.fusion import RankedList, fuse_ranked_lists, normalize_weights
from tandem.retrievers.sources import SimilaritySource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceBinding:
    source: SimilaritySource
    weight: float

    @property
    def name(self) -> str:
        return self.source.collection.value


class SingleSourceRetriever:
    mode = "single"

    def __init__(self, binding: SourceBinding) -> None:
        self._binding = binding

    @property
    def source_names(self) -> tuple[str, ...]:
        return (self._binding.name,)

    async def search(self, query: str, k: int) -> list[Passage]:
        passages = await _search_softly(self._binding, query, k)
        return passages[:k]


class FusedRetriever:
    mode = "fused"

    def __init__(self, bindings: list[SourceBinding]) -> None:
        weights = normalize_weights({binding.name: binding.weight for binding in bindings})
        self._bindings = [
            SourceBinding(source=binding.source, weight=weights[binding.name])
            for binding in bindings
        ]

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(binding.name for binding in self._bindings)

    async def search(self, query: str, k: int) -> list[Passage]:
        results = await asyncio.gather(
            *(_search_softly(binding, query, k) for binding in self._bindings)
        )
        ranked_lists = [
            RankedList(name=binding.name, passages=tuple(passages[:k]), weight=binding.weight)
            for binding, passages in zip(self._bindings, results)
        ]
        return fuse_ranked_lists(ranked_lists, k)


Retriever = SingleSourceRetriever | FusedRetriever


def select_retriever(bindings: list[SourceBinding]) -> Retriever | None:
    available = [binding for binding in bindings if binding.source.available]
    if not available:
        return None
    if len(available) == 1:
        return SingleSourceRetriever(available[0])
    return FusedRetriever(available)


async def _search_softly(binding: SourceBinding, query: str, k: int) -> list[Passage]:
    try:
        return list(await binding.source.search(query, k))
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning(
            "Similarity source failed; counting it as zero passages",
            exc_info=exc,
            extra={"source": binding.name, "error_class": exc.__class__.__name__},
        )
        return []
