from __future__ import annotations

from dataclasses import dataclass

from tandem.models import Passage

_PRIORITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class RankedList:
    name: str
    passages: tuple[Passage, ...]
    weight: float


def fuse_ranked_lists(ranked_lists: list[RankedList], k: int) -> list[Passage]:
    """Interleave ranked lists by weighted remaining priority.

    At each position the next unconsumed passage is taken from the list with
    the highest ``weight * (1 - consumed / k)``. Every list shares the same
    denominator, so rank ``i`` of a heavier list always precedes rank ``i`` of
    a lighter one. Ties go to the list with the higher weight, then to the
    list declared first.
    """

    if k <= 0:
        return []
    non_empty = [ranked for ranked in ranked_lists if ranked.passages]
    if not non_empty:
        return []
    if len(non_empty) == 1:
        return list(non_empty[0].passages[:k])

    ordered = sorted(
        enumerate(non_empty),
        key=lambda item: (-item[1].weight, item[0]),
    )
    lists = [ranked for _, ranked in ordered]
    consumed = [0] * len(lists)
    total = sum(len(ranked.passages) for ranked in lists)

    fused: list[Passage] = []
    while len(fused) < min(k, total):
        best_index = -1
        best_priority = -1.0
        for index, ranked in enumerate(lists):
            if consumed[index] >= len(ranked.passages):
                continue
            priority = ranked.weight * (1 - consumed[index] / k)
            # Lists are in tie-break order; only a strictly higher priority wins.
            if priority > best_priority + _PRIORITY_TOLERANCE:
                best_index = index
                best_priority = priority
        fused.append(lists[best_index].passages[consumed[best_index]])
        consumed[best_index] += 1
    return fused


def normalize_weights(weights: dict[str, float]) -> dict[str, float]:
    total = sum(max(weight, 0.0) for weight in weights.values())
    if total <= 0:
        share = 1.0 / len(weights) if weights else 0.0
        return {name: share for name in weights}
    return {name: max(weight, 0.0) / total for name, weight in weights.items()}
