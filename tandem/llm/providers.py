from __future__ import annotations

from typing import Any

import httpx

from tandem.config import AppConfig


class ProviderError(RuntimeError):
    """A single generation provider call failed."""

    def __init__(self, provider_name: str, message: str) -> None:
        super().__init__(f"{provider_name}: {message}")
        self.provider_name = provider_name


class GenerationProvider:
    name = "unknown"

    async def generate(self, prompt_text: str) -> str:
        raise NotImplementedError


class OpenAIGenerationProvider(GenerationProvider):
    name = "openai"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds
        self._client: Any = None

    def _get_client(self) -> Any:
        if not self._api_key:
            raise ProviderError(self.name, "OPENAI_API_KEY is not configured")
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._api_key,
                timeout=self._timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt_text: str) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt_text}],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        if not response.choices:
            raise ProviderError(self.name, "response contained no choices")
        return _require_text(self.name, response.choices[0].message.content)


class GeminiGenerationProvider(GenerationProvider):
    name = "gemini"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    async def generate(self, prompt_text: str) -> str:
        if not self._api_key:
            raise ProviderError(self.name, "GEMINI_API_KEY is not configured")

        from google import genai
        from google.genai import types

        client = genai.Client(
            api_key=self._api_key,
            http_options=types.HttpOptions(timeout=int(self._timeout_seconds * 1000)),
        )
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt_text,
                config=types.GenerateContentConfig(
                    temperature=self._temperature,
                    max_output_tokens=self._max_tokens,
                ),
            )
        finally:
            await client.aio.aclose()
        return _require_text(self.name, response.text)


class OllamaGenerationProvider(GenerationProvider):
    name = "ollama"

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> None:
        self._base_url = base_url
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds

    async def generate(self, prompt_text: str) -> str:
        endpoint = f"{self._base_url.rstrip('/')}/api/generate"
        payload = {
            "model": self._model,
            "prompt": prompt_text,
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            },
        }
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            response = await client.post(endpoint, json=payload)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ProviderError(self.name, "response body is not an object")
        return _require_text(self.name, body.get("response"))


def build_generation_provider(name: str, config: AppConfig) -> GenerationProvider:
    if name == "openai":
        return OpenAIGenerationProvider(
            api_key=config.openai_api_key,
            model=config.openai_model,
            temperature=config.generation_temperature,
            max_tokens=config.generation_max_tokens,
            timeout_seconds=config.provider_timeout_seconds,
        )
    if name == "gemini":
        return GeminiGenerationProvider(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            temperature=config.generation_temperature,
            max_tokens=config.generation_max_tokens,
            timeout_seconds=config.provider_timeout_seconds,
        )
    if name == "ollama":
        return OllamaGenerationProvider(
            base_url=config.ollama_base_url,
            model=config.ollama_model,
            temperature=config.generation_temperature,
            max_tokens=config.generation_max_tokens,
            timeout_seconds=config.provider_timeout_seconds,
        )
    raise ValueError(f"Unknown generation provider: {name}")


def _require_text(provider_name: str, text: object) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ProviderError(provider_name, "response contained no text")
    return text
