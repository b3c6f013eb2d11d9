from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter

from tandem.llm.providers import GenerationProvider, ProviderError
from tandem.models import GenerationRequest, ProviderRole

LOGGER = logging.getLogger(__name__)


class TotalGenerationFailure(RuntimeError):
    """Both the primary and the secondary provider failed on one invocation."""

    def __init__(
        self,
        *,
        primary_name: str,
        primary_error: BaseException,
        secondary_name: str,
        secondary_error: BaseException,
    ) -> None:
        super().__init__(
            "Both providers failed. "
            f"Primary ({primary_name}): {_describe(primary_error)}; "
            f"Secondary ({secondary_name}): {_describe(secondary_error)}"
        )
        self.primary_name = primary_name
        self.primary_error = primary_error
        self.secondary_name = secondary_name
        self.secondary_error = secondary_error


@dataclass(frozen=True)
class GenerationResult:
    text: str
    provider_used: ProviderRole
    provider_name: str
    primary_error: str | None = None
    duration_ms: int = 0


class GenerationInvoker:
    """Primary/secondary provider pair; one attempt each, no retries."""

    def __init__(
        self,
        primary: GenerationProvider,
        secondary: GenerationProvider,
    ) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def provider_names(self) -> dict[str, str]:
        return {
            ProviderRole.PRIMARY.value: self._primary.name,
            ProviderRole.SECONDARY.value: self._secondary.name,
        }

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        started = perf_counter()
        try:
            text = await _attempt(self._primary, request.prompt_text)
        except Exception as primary_exc:  # noqa: BLE001
            LOGGER.warning(
                "Primary provider failed; trying secondary",
                exc_info=primary_exc,
                extra={
                    "primary": self._primary.name,
                    "secondary": self._secondary.name,
                    "error_class": primary_exc.__class__.__name__,
                },
            )
            try:
                text = await _attempt(self._secondary, request.prompt_text)
            except Exception as secondary_exc:  # noqa: BLE001
                raise TotalGenerationFailure(
                    primary_name=self._primary.name,
                    primary_error=primary_exc,
                    secondary_name=self._secondary.name,
                    secondary_error=secondary_exc,
                ) from secondary_exc
            return GenerationResult(
                text=text,
                provider_used=ProviderRole.SECONDARY,
                provider_name=self._secondary.name,
                primary_error=_describe(primary_exc),
                duration_ms=_duration_ms(started),
            )
        return GenerationResult(
            text=text,
            provider_used=ProviderRole.PRIMARY,
            provider_name=self._primary.name,
            duration_ms=_duration_ms(started),
        )


async def _attempt(provider: GenerationProvider, prompt_text: str) -> str:
    text = await provider.generate(prompt_text)
    if not isinstance(text, str) or not text.strip():
        raise ProviderError(provider.name, "response contained no text")
    return text


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return exc.__class__.__name__
    return f"{exc.__class__.__name__}: {message}"


def _duration_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)
