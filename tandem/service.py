from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from tandem.context import RuntimeContext
from tandem.models import AnswerResult, HopRecord, Passage, ProviderRole
from tandem.orchestration import (
    MultiHopStage,
    build_graph_invoke_config,
    build_multihop_graph,
    create_initial_state,
    emit_orchestration_telemetry,
)

LOGGER = logging.getLogger(__name__)


class InvalidQuestionError(ValueError):
    """The question is empty or missing."""


class MultiHopService:
    def __init__(self, context: RuntimeContext) -> None:
        self._context = context
        self._orchestration_graph = build_multihop_graph(context)

    @property
    def context(self) -> RuntimeContext:
        return self._context

    async def run_query(self, question: str) -> AnswerResult:
        normalized = question.strip() if isinstance(question, str) else ""
        if not normalized:
            raise InvalidQuestionError("Question is required")

        request_id = uuid4().hex
        latest: dict[str, Any] = dict(create_initial_state(normalized, request_id=request_id))
        try:
            async for values in self._orchestration_graph.astream(
                latest,
                config=build_graph_invoke_config(request_id),
                stream_mode="values",
            ):
                latest = values
        except Exception as exc:
            emit_orchestration_telemetry(_failed_state(latest, exc))
            raise

        emit_orchestration_telemetry(latest)
        return _answer_from_state(latest)


def _failed_state(state: dict[str, Any], exc: Exception) -> dict[str, Any]:
    last_stage = state.get("stage")
    return {
        **state,
        "stage": MultiHopStage.FAILED,
        "telemetry_events": [
            *state.get("telemetry_events", []),
            {
                "event": "orchestration_failed",
                "last_completed_stage": (
                    last_stage.value if isinstance(last_stage, MultiHopStage) else None
                ),
                "error_class": exc.__class__.__name__,
                "error": str(exc),
            },
        ],
    }


def _answer_from_state(state: dict[str, Any]) -> AnswerResult:
    provider_used = state.get("provider_used")
    if not isinstance(provider_used, ProviderRole):
        raise RuntimeError("Orchestration finished without a generated answer")
    evidence = [item for item in state.get("evidence", []) if isinstance(item, Passage)]
    hops = [item for item in state.get("hops", []) if isinstance(item, HopRecord)]
    return AnswerResult(
        answer_text=str(state.get("answer") or ""),
        provider_used=provider_used,
        provider_name=str(state.get("provider_name") or ""),
        evidence=evidence,
        hops=hops,
    )
