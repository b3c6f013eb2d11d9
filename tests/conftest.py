from __future__ import annotations

import pytest

_CONFIG_ENV_VARS = (
    "PRIMARY_PROVIDER",
    "SECONDARY_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "OLLAMA_BASE_URL",
    "OLLAMA_MODEL",
    "GENERATION_TEMPERATURE",
    "GENERATION_MAX_TOKENS",
    "PROVIDER_TIMEOUT_SECONDS",
    "INITIAL_RETRIEVAL_K",
    "FOLLOWUP_RETRIEVAL_K",
    "MAX_FOLLOWUP_QUESTIONS",
    "MAX_CONCURRENT_FOLLOWUPS",
    "DOCUMENTS_WEIGHT",
    "TRANSCRIPTS_WEIGHT",
    "FOLLOWUP_MAX_CHARS_PER_PASSAGE",
    "FOLLOWUP_MAX_TOTAL_CHARS",
    "FINAL_MAX_CHARS_PER_PASSAGE",
    "FINAL_MAX_TOTAL_CHARS",
    "USE_REAL_SUPABASE",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_DOCUMENTS_FUNCTION",
    "SUPABASE_TRANSCRIPTS_FUNCTION",
    "SIMILARITY_THRESHOLD",
    "SEED_DOCUMENTS_PATH",
    "SEED_TRANSCRIPTS_PATH",
    "EMBEDDING_BACKEND",
    "EMBEDDING_DIMENSIONS",
    "GEMINI_EMBEDDING_MODEL",
)


@pytest.fixture(autouse=True)
def clear_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
