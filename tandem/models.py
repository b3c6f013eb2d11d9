from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SourceCollection(str, Enum):
    DOCUMENTS = "documents"
    TRANSCRIPTS = "transcripts"


class ProviderRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Passage(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    source_collection: SourceCollection
    document_id: str
    chunk_index: int = Field(ge=0)
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def identity_key(self) -> tuple[str, int]:
        return (self.document_id, self.chunk_index)


class HopRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    hop_number: int = Field(ge=1)
    queries: list[str]
    passages_found: int = Field(ge=0)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_text: str = Field(min_length=1)


class AnswerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer_text: str
    provider_used: ProviderRole
    provider_name: str
    evidence: list[Passage]
    hops: list[HopRecord]


class QueryRequest(BaseModel):
    question: str = Field(min_length=1)
