from __future__ import annotations

import logging
from typing import Any

import httpx

from tandem.config import AppConfig
from tandem.context import RuntimeContext, source_mode

LOGGER = logging.getLogger(__name__)

OLLAMA_HEALTH_TIMEOUT_SECONDS = 2.0


async def build_readiness_report(
    config: AppConfig,
    context: RuntimeContext,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    collections = {
        binding.name: {
            "available": binding.source.available,
            "mode": source_mode(config),
            "weight": binding.weight,
        }
        for binding in context.bindings
    }
    any_available = any(row["available"] for row in collections.values())
    return {
        "ready": any_available,
        "collections": collections,
        "providers": {
            "primary": await _provider_readiness(
                config, config.primary_provider, transport
            ),
            "secondary": await _provider_readiness(
                config, config.secondary_provider, transport
            ),
        },
        "retrieval": {
            "initial_k": context.settings.initial_k,
            "followup_k": context.settings.followup_k,
            "max_followup_questions": context.settings.max_followup_questions,
        },
    }


async def check_ollama_connection(
    base_url: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Return True when the Ollama server answers ``GET /api/tags`` with 200."""

    endpoint = f"{base_url.rstrip('/')}/api/tags"
    try:
        async with httpx.AsyncClient(
            timeout=OLLAMA_HEALTH_TIMEOUT_SECONDS,
            transport=transport,
        ) as client:
            response = await client.get(endpoint)
    except httpx.HTTPError as exc:
        LOGGER.warning(
            "Ollama health check failed",
            exc_info=exc,
            extra={"base_url": base_url, "error_class": exc.__class__.__name__},
        )
        return False
    return response.status_code == 200


async def _provider_readiness(
    config: AppConfig,
    name: str,
    transport: httpx.AsyncBaseTransport | None,
) -> dict[str, Any]:
    if name == "openai":
        return {
            "name": name,
            "model": config.openai_model,
            "configured": bool(config.openai_api_key),
            "reason": (
                "api_key_available" if config.openai_api_key else "missing_OPENAI_API_KEY"
            ),
        }
    if name == "gemini":
        return {
            "name": name,
            "model": config.gemini_model,
            "configured": bool(config.gemini_api_key),
            "reason": (
                "api_key_available" if config.gemini_api_key else "missing_GEMINI_API_KEY"
            ),
        }
    connected = await check_ollama_connection(config.ollama_base_url, transport=transport)
    return {
        "name": name,
        "model": config.ollama_model,
        "configured": connected,
        "connected": connected,
        "reason": (
            f"connected base_url={config.ollama_base_url}"
            if connected
            else f"unreachable base_url={config.ollama_base_url}"
        ),
    }
