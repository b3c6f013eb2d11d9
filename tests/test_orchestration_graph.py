from __future__ import annotations

import asyncio

import pytest

from tandem.context import MultiHopSettings, RuntimeContext
from tandem.llm.invoker import GenerationInvoker, TotalGenerationFailure
from tandem.llm.providers import GenerationProvider
from tandem.models import HopRecord, Passage, ProviderRole, SourceCollection
from tandem.orchestration import (
    MultiHopStage,
    build_multihop_graph,
    create_initial_state,
)
from tandem.retrievers.retriever import SourceBinding

QUESTION = "What supervision procedures apply if there is a conflict of interest?"


class _FakeSource:
    def __init__(
        self,
        collection: SourceCollection,
        results: dict[str, list[Passage]] | None = None,
        available: bool = True,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.collection = collection
        self._results = results or {}
        self._available = available
        self._delays = delays or {}
        self.queries: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def available(self) -> bool:
        return self._available

    async def search(self, query_text: str, k: int) -> list[Passage]:
        self.queries.append(query_text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delays.get(query_text, 0))
        finally:
            self.in_flight -= 1
        return list(self._results.get(query_text, []))[:k]


class _FakeProvider(GenerationProvider):
    def __init__(
        self,
        name: str,
        followup_reply: str = "Sorry, I cannot help",
        answer: str = "Refer to CS-043.",
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self._followup_reply = followup_reply
        self._answer = answer
        self._error = error
        self.prompts: list[str] = []

    async def generate(self, prompt_text: str) -> str:
        self.prompts.append(prompt_text)
        if self._error is not None:
            raise self._error
        if "Follow-up Questions:" in prompt_text:
            return self._followup_reply
        return self._answer


def _passage(
    document_id: str,
    chunk_index: int = 0,
    text: str | None = None,
    collection: SourceCollection = SourceCollection.DOCUMENTS,
) -> Passage:
    return Passage(
        text=text or f"Passage {document_id}#{chunk_index}",
        source_collection=collection,
        document_id=document_id,
        chunk_index=chunk_index,
    )


def _context(
    documents: _FakeSource,
    transcripts: _FakeSource,
    primary: GenerationProvider,
    secondary: GenerationProvider | None = None,
    settings: MultiHopSettings | None = None,
) -> RuntimeContext:
    return RuntimeContext(
        bindings=(SourceBinding(documents, 0.6), SourceBinding(transcripts, 0.4)),
        invoker=GenerationInvoker(primary, secondary or _FakeProvider("ollama")),
        settings=settings or MultiHopSettings(),
    )


@pytest.mark.asyncio
async def test_unparseable_followups_skip_hop_two() -> None:
    documents = _FakeSource(
        SourceCollection.DOCUMENTS,
        {QUESTION: [_passage(f"doc-{index}") for index in range(20)]},
    )
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS)
    primary = _FakeProvider("openai")
    graph = build_multihop_graph(_context(documents, transcripts, primary))

    result = await graph.ainvoke(create_initial_state(QUESTION))

    assert result["hops"] == [HopRecord(hop_number=1, queries=[QUESTION], passages_found=15)]
    assert len(result["hop1_passages"]) == 15
    assert len(result["evidence"]) == 15
    assert result["followup_questions"] == []
    assert result["followup_strategy"] == "none"
    assert result["stage"] == MultiHopStage.DONE
    assert result["answer"] == "Refer to CS-043."
    assert result["provider_used"] == ProviderRole.PRIMARY
    assert documents.queries == [QUESTION]
    assert len(primary.prompts) == 2


@pytest.mark.asyncio
async def test_followups_run_hop_two_and_dedupe_evidence() -> None:
    cd_150 = _passage("d1", 2, "Policy CD-150 governs supervision of relatives.")
    cd_150_variant = _passage("d1", 2, "... Policy CD-150 governs supervision ... next")
    documents = _FakeSource(
        SourceCollection.DOCUMENTS,
        {
            QUESTION: [_passage("d0"), cd_150],
            "What does CD-150 require?": [cd_150_variant, _passage("d5")],
            "Who documents the conflict?": [_passage("d6")],
        },
    )
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS)
    primary = _FakeProvider(
        "openai",
        followup_reply='["What does CD-150 require?", "Who documents the conflict?"]',
    )
    graph = build_multihop_graph(_context(documents, transcripts, primary))

    result = await graph.ainvoke(create_initial_state(QUESTION))

    assert [hop.hop_number for hop in result["hops"]] == [1, 2]
    assert result["hops"][1].queries == [
        "What does CD-150 require?",
        "Who documents the conflict?",
    ]
    assert result["hops"][1].passages_found == 3
    assert [(item.document_id, item.chunk_index) for item in result["evidence"]] == [
        ("d0", 0),
        ("d1", 2),
        ("d5", 0),
        ("d6", 0),
    ]
    assert result["evidence"][1].text == cd_150.text
    assert result["followup_strategy"] == "json_list"
    assert "Policy CD-150 governs supervision of relatives." in primary.prompts[-1]
    events = [event["event"] for event in result["telemetry_events"]]
    assert events == [
        "hop_completed",
        "followups_synthesized",
        "hop_completed",
        "evidence_merged",
        "answer_generated",
        "orchestration_completed",
    ]


@pytest.mark.asyncio
async def test_hop_two_is_bounded_and_keeps_question_order() -> None:
    questions = [f"Follow-up question number {index}?" for index in range(4)]
    documents = _FakeSource(
        SourceCollection.DOCUMENTS,
        {
            QUESTION: [_passage("seed")],
            **{question: [_passage(f"hop2-{index}")] for index, question in enumerate(questions)},
        },
        delays={question: 0.01 * (4 - index) for index, question in enumerate(questions)},
    )
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS, available=False)
    primary = _FakeProvider(
        "openai",
        followup_reply="[" + ", ".join(f'"{question}"' for question in questions) + "]",
    )
    settings = MultiHopSettings(max_concurrent_followups=2)
    graph = build_multihop_graph(_context(documents, transcripts, primary, settings=settings))

    result = await graph.ainvoke(create_initial_state(QUESTION))

    assert [item.document_id for item in result["hop2_passages"]] == [
        "hop2-0",
        "hop2-1",
        "hop2-2",
        "hop2-3",
    ]
    assert documents.max_in_flight <= 2
    assert result["hops"][1].passages_found == 4


@pytest.mark.asyncio
async def test_primary_timeout_answers_from_secondary() -> None:
    documents = _FakeSource(SourceCollection.DOCUMENTS, {QUESTION: [_passage("d0")]})
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS)
    primary = _FakeProvider("openai", error=asyncio.TimeoutError())
    secondary = _FakeProvider("ollama", answer="Secondary says CS-043.")
    graph = build_multihop_graph(_context(documents, transcripts, primary, secondary))

    result = await graph.ainvoke(create_initial_state(QUESTION))

    assert result["provider_used"] == ProviderRole.SECONDARY
    assert result["provider_name"] == "ollama"
    assert result["answer"] == "Secondary says CS-043."
    answer_event = result["telemetry_events"][-2]
    assert answer_event["event"] == "answer_generated"
    assert answer_event["fallback_used"] is True


@pytest.mark.asyncio
async def test_both_providers_failing_raises_total_generation_failure() -> None:
    documents = _FakeSource(SourceCollection.DOCUMENTS, {QUESTION: [_passage("d0")]})
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS)
    primary = _FakeProvider("openai", error=RuntimeError("quota exceeded"))
    secondary = _FakeProvider("ollama", error=ConnectionError("refused"))
    graph = build_multihop_graph(_context(documents, transcripts, primary, secondary))

    with pytest.raises(TotalGenerationFailure):
        await graph.ainvoke(create_initial_state(QUESTION))

    # Follow-up synthesis degrades; only the final call propagates.
    assert len(primary.prompts) == 2
    assert len(secondary.prompts) == 2


@pytest.mark.asyncio
async def test_no_available_sources_still_generates_an_answer() -> None:
    documents = _FakeSource(SourceCollection.DOCUMENTS, available=False)
    transcripts = _FakeSource(SourceCollection.TRANSCRIPTS, available=False)
    primary = _FakeProvider(
        "openai", followup_reply='["What does CD-150 require?"]', answer="Not enough."
    )
    graph = build_multihop_graph(_context(documents, transcripts, primary))

    result = await graph.ainvoke(create_initial_state(QUESTION))

    assert result["hops"][0].passages_found == 0
    assert result["hops"][1].passages_found == 0
    assert result["evidence"] == []
    assert result["answer"] == "Not enough."
    assert documents.queries == []
    assert result["telemetry_events"][0]["retriever_mode"] == "unavailable"
