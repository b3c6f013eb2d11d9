from __future__ import annotations

import os

import pytest

from tandem.config import load_config
from tandem.context import build_runtime_context
from tandem.retrievers.retriever import select_retriever
from tandem.retrievers.sources import SupabaseSimilaritySource

_LIVE_ENV = {
    name: os.getenv(name)
    for name in ("SUPABASE_URL", "SUPABASE_KEY", "GEMINI_API_KEY", "EMBEDDING_BACKEND")
}

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not (_LIVE_ENV["SUPABASE_URL"] and _LIVE_ENV["SUPABASE_KEY"]),
        reason="Supabase integration env vars are not configured",
    ),
]


@pytest.mark.asyncio
async def test_real_supabase_sources_answer_similarity_queries(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    for name, value in _LIVE_ENV.items():
        if value:
            monkeypatch.setenv(name, value)
    monkeypatch.setenv("USE_REAL_SUPABASE", "true")

    context = build_runtime_context(load_config())

    assert all(
        isinstance(binding.source, SupabaseSimilaritySource) for binding in context.bindings
    )
    retriever = select_retriever(list(context.bindings))
    assert retriever is not None

    passages = await retriever.search("conflict of interest supervision", 5)

    assert len(passages) <= 5
    assert all(item.text for item in passages)
