from __future__ import annotations

from collections.abc import Iterable

from tandem.models import Passage

TRUNCATION_MARKER = "... [truncated]"


def dedupe_passages(passages: Iterable[Passage]) -> list[Passage]:
    """Keep the first passage for each ``(document_id, chunk_index)`` key."""

    seen: set[tuple[str, int]] = set()
    unique_passages: list[Passage] = []
    for passage in passages:
        key = passage.identity_key
        if key in seen:
            continue
        seen.add(key)
        unique_passages.append(passage)
    return unique_passages


def budget_passages(
    passages: Iterable[Passage],
    max_chars_per_passage: int,
    max_total_chars: int,
) -> list[Passage]:
    """Truncate each passage, then take the longest prefix within the total budget.

    Rank order is never changed; selection stops at the first passage that
    would overflow ``max_total_chars``.
    """

    total_chars = 0
    budgeted: list[Passage] = []
    for passage in passages:
        text = passage.text
        if len(text) > max_chars_per_passage:
            text = text[:max_chars_per_passage] + TRUNCATION_MARKER
        if total_chars + len(text) > max_total_chars:
            break
        if text != passage.text:
            passage = passage.model_copy(update={"text": text})
        budgeted.append(passage)
        total_chars += len(text)
    return budgeted
