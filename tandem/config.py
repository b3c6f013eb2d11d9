from __future__ import annotations

import os
from dataclasses import dataclass

SUPPORTED_PROVIDERS = {"openai", "gemini", "ollama"}
MAX_GENERATION_TEMPERATURE = 2.0


@dataclass(frozen=True)
class AppConfig:
    primary_provider: str
    secondary_provider: str
    openai_api_key: str | None
    openai_model: str
    gemini_api_key: str | None
    gemini_model: str
    ollama_base_url: str
    ollama_model: str
    generation_temperature: float
    generation_max_tokens: int
    provider_timeout_seconds: float
    initial_retrieval_k: int
    followup_retrieval_k: int
    max_followup_questions: int
    max_concurrent_followups: int
    documents_weight: float
    transcripts_weight: float
    followup_max_chars_per_passage: int
    followup_max_total_chars: int
    final_max_chars_per_passage: int
    final_max_total_chars: int
    use_real_supabase: bool
    supabase_url: str | None
    supabase_key: str | None
    supabase_documents_function: str
    supabase_transcripts_function: str
    similarity_threshold: float
    seed_documents_path: str
    seed_transcripts_path: str
    embedding_backend: str
    embedding_dimensions: int
    gemini_embedding_model: str


def _read_optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _read_str_env(name: str, default: str) -> str:
    value = _read_optional_env(name)
    return value if value is not None else default


def _read_bool_env(name: str, default: bool) -> bool:
    value = _read_optional_env(name)
    if value is None:
        return default
    normalized = value.lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _read_int_env(name: str, default: int) -> int:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float_env(name: str, default: float, maximum: float = 1.0) -> float:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    if parsed < 0:
        return default
    if parsed > maximum:
        return maximum
    return parsed


def _read_seconds_env(name: str, default: float) -> float:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_provider_env(name: str, default: str) -> str:
    value = _read_str_env(name, default).lower()
    return value if value in SUPPORTED_PROVIDERS else default


def load_config() -> AppConfig:
    return AppConfig(
        primary_provider=_read_provider_env("PRIMARY_PROVIDER", "openai"),
        secondary_provider=_read_provider_env("SECONDARY_PROVIDER", "ollama"),
        openai_api_key=_read_optional_env("OPENAI_API_KEY"),
        openai_model=_read_str_env("OPENAI_MODEL", "gpt-4o"),
        gemini_api_key=_read_optional_env("GEMINI_API_KEY")
        or _read_optional_env("GOOGLE_API_KEY"),
        gemini_model=_read_str_env("GEMINI_MODEL", "gemini-2.5-flash"),
        ollama_base_url=_read_str_env("OLLAMA_BASE_URL", "http://localhost:11434"),
        ollama_model=_read_str_env("OLLAMA_MODEL", "mistral:latest"),
        generation_temperature=_read_float_env(
            "GENERATION_TEMPERATURE", 0.1, maximum=MAX_GENERATION_TEMPERATURE
        ),
        generation_max_tokens=_read_int_env("GENERATION_MAX_TOKENS", 2000),
        provider_timeout_seconds=_read_seconds_env("PROVIDER_TIMEOUT_SECONDS", 60.0),
        initial_retrieval_k=_read_int_env("INITIAL_RETRIEVAL_K", 15),
        followup_retrieval_k=_read_int_env("FOLLOWUP_RETRIEVAL_K", 8),
        max_followup_questions=_read_int_env("MAX_FOLLOWUP_QUESTIONS", 8),
        max_concurrent_followups=_read_int_env("MAX_CONCURRENT_FOLLOWUPS", 8),
        documents_weight=_read_float_env("DOCUMENTS_WEIGHT", 0.6),
        transcripts_weight=_read_float_env("TRANSCRIPTS_WEIGHT", 0.4),
        followup_max_chars_per_passage=_read_int_env(
            "FOLLOWUP_MAX_CHARS_PER_PASSAGE", 1500
        ),
        followup_max_total_chars=_read_int_env("FOLLOWUP_MAX_TOTAL_CHARS", 6000),
        final_max_chars_per_passage=_read_int_env("FINAL_MAX_CHARS_PER_PASSAGE", 2000),
        final_max_total_chars=_read_int_env("FINAL_MAX_TOTAL_CHARS", 10000),
        use_real_supabase=_read_bool_env("USE_REAL_SUPABASE", default=False),
        supabase_url=_read_optional_env("SUPABASE_URL"),
        supabase_key=_read_optional_env("SUPABASE_KEY"),
        supabase_documents_function=_read_str_env(
            "SUPABASE_DOCUMENTS_FUNCTION", "match_documents"
        ),
        supabase_transcripts_function=_read_str_env(
            "SUPABASE_TRANSCRIPTS_FUNCTION", "match_transcripts"
        ),
        similarity_threshold=_read_float_env("SIMILARITY_THRESHOLD", 0.5),
        seed_documents_path=_read_str_env(
            "SEED_DOCUMENTS_PATH", "data/seed/documents.json"
        ),
        seed_transcripts_path=_read_str_env(
            "SEED_TRANSCRIPTS_PATH", "data/seed/transcripts.json"
        ),
        embedding_backend=_read_str_env("EMBEDDING_BACKEND", "deterministic"),
        embedding_dimensions=_read_int_env("EMBEDDING_DIMENSIONS", 1536),
        gemini_embedding_model=_read_str_env(
            "GEMINI_EMBEDDING_MODEL", "models/gemini-embedding-001"
        ),
    )
