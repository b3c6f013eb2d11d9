from __future__ import annotations

import json
import logging
from typing import Any

from .state import MultiHopStage

DEFAULT_TELEMETRY_TAG = "multihop-orchestration"


def build_graph_invoke_config(request_id: str) -> dict[str, Any]:
    return {
        "tags": [DEFAULT_TELEMETRY_TAG],
        "metadata": {
            "request_id": request_id,
            "component": "multihop_controller",
        },
    }


def emit_orchestration_telemetry(
    state: dict[str, Any],
    logger: logging.Logger | None = None,
) -> None:
    active_logger = logger or logging.getLogger(__name__)
    request_id = _request_id(state)
    stage = _stage_value(state.get("stage"))
    hop_count = _count(state.get("hops"))
    evidence_count = _count(state.get("evidence"))

    for event in _events(state.get("telemetry_events")):
        payload = {
            "request_id": request_id,
            "stage": stage,
            "hop_count": hop_count,
            "evidence_count": evidence_count,
            **event,
        }
        active_logger.info(
            "orchestration_event %s", json.dumps(payload, sort_keys=True, default=str)
        )


def _request_id(state: dict[str, Any]) -> str:
    request_id = state.get("request_id")
    if isinstance(request_id, str) and request_id.strip():
        return request_id
    return "unknown"


def _stage_value(stage: Any) -> str | None:
    if isinstance(stage, MultiHopStage):
        return stage.value
    if isinstance(stage, str) and stage.strip():
        return stage
    return None


def _events(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [event for event in value if isinstance(event, dict)]


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0
