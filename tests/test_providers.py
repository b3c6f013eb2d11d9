from __future__ import annotations

import json

import httpx
import pytest

from tandem.config import load_config
from tandem.llm import providers
from tandem.llm.providers import (
    GeminiGenerationProvider,
    OllamaGenerationProvider,
    OpenAIGenerationProvider,
    ProviderError,
    build_generation_provider,
)


def test_build_generation_provider_maps_names() -> None:
    config = load_config()

    assert isinstance(build_generation_provider("openai", config), OpenAIGenerationProvider)
    assert isinstance(build_generation_provider("gemini", config), GeminiGenerationProvider)
    assert isinstance(build_generation_provider("ollama", config), OllamaGenerationProvider)
    with pytest.raises(ValueError):
        build_generation_provider("unknown", config)


@pytest.mark.asyncio
async def test_openai_provider_requires_api_key() -> None:
    provider = build_generation_provider("openai", load_config())

    with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
        await provider.generate("prompt")


@pytest.mark.asyncio
async def test_gemini_provider_requires_api_key() -> None:
    provider = build_generation_provider("gemini", load_config())

    with pytest.raises(ProviderError, match="GEMINI_API_KEY"):
        await provider.generate("prompt")


def _patch_ollama_transport(
    monkeypatch: pytest.MonkeyPatch,
    handler,
) -> None:
    original = httpx.AsyncClient

    def _client(*args, **kwargs):
        return original(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(providers.httpx, "AsyncClient", _client)


@pytest.mark.asyncio
async def test_ollama_provider_posts_non_streaming_generate(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": "Refer under CS-043."})

    _patch_ollama_transport(monkeypatch, _handler)
    provider = OllamaGenerationProvider(
        base_url="http://ollama.test/",
        model="mistral:latest",
        temperature=0.1,
        max_tokens=2000,
        timeout_seconds=5.0,
    )

    text = await provider.generate("Explain the policy.")

    assert text == "Refer under CS-043."
    assert str(captured[0].url) == "http://ollama.test/api/generate"
    body = json.loads(captured[0].content)
    assert body["model"] == "mistral:latest"
    assert body["prompt"] == "Explain the policy."
    assert body["stream"] is False
    assert body["options"] == {"temperature": 0.1, "num_predict": 2000}


@pytest.mark.asyncio
async def test_ollama_provider_raises_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_ollama_transport(monkeypatch, lambda request: httpx.Response(503))
    provider = OllamaGenerationProvider(
        base_url="http://ollama.test",
        model="mistral:latest",
        temperature=0.1,
        max_tokens=2000,
        timeout_seconds=5.0,
    )

    with pytest.raises(httpx.HTTPStatusError):
        await provider.generate("Explain the policy.")


@pytest.mark.asyncio
async def test_ollama_provider_rejects_empty_response(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_ollama_transport(
        monkeypatch, lambda request: httpx.Response(200, json={"response": ""})
    )
    provider = OllamaGenerationProvider(
        base_url="http://ollama.test",
        model="mistral:latest",
        temperature=0.1,
        max_tokens=2000,
        timeout_seconds=5.0,
    )

    with pytest.raises(ProviderError, match="no text"):
        await provider.generate("Explain the policy.")
