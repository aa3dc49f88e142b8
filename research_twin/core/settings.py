from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from research_twin.domain.chunking import ChunkingConfig, default_chunking_for
from research_twin.domain.document import SourceRole
from research_twin.domain.redundancy import RedundancyConfig

_ENV = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


def clamp01(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return min(1.0, max(0.0, value))


def _lenient_float(v: object) -> float:
    # Unparseable thresholds collapse to 0 and are then clamped like any other value
    if isinstance(v, int | float):
        return float(v)
    try:
        return float(str(v).strip())
    except (TypeError, ValueError):
        return 0.0


def _lenient_int(v: object) -> int | None:
    # Unparseable env values fall back to the role default instead of failing startup
    if v is None or v == "":
        return None
    try:
        return int(str(v).strip())
    except (TypeError, ValueError):
        return None


class DedupSettings(BaseSettings):
    """Thresholds for thesis-vs-publication redundancy detection."""

    model_config = _ENV

    cosine_threshold: float = Field(0.96, alias="RAG_DEDUP_COSINE_THRESHOLD")
    lexical_threshold: float = Field(0.85, alias="RAG_DEDUP_LEXICAL_THRESHOLD")
    novel_sentence_threshold: float = Field(0.2, alias="RAG_DEDUP_NOVEL_SENTENCE_THRESHOLD")

    @field_validator(
        "cosine_threshold", "lexical_threshold", "novel_sentence_threshold", mode="before"
    )
    @classmethod
    def _parse(cls, v: object) -> float:
        return _lenient_float(v)

    @field_validator("cosine_threshold", "lexical_threshold", "novel_sentence_threshold")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp01(v)

    def to_config(self) -> RedundancyConfig:
        return RedundancyConfig(
            cosine_threshold=self.cosine_threshold,
            lexical_threshold=self.lexical_threshold,
            novel_sentence_threshold=self.novel_sentence_threshold,
        )


class RetrievalSettings(BaseSettings):
    model_config = _ENV

    top_k: int = Field(5, alias="RAG_TOP_K")
    max_chunks_per_document: int = Field(2, alias="RAG_MAX_CHUNKS_PER_DOCUMENT")
    # Score subtracted from redundant thesis chunks during ranking
    redundant_thesis_penalty: float = Field(0.08, alias="RAG_REDUNDANT_THESIS_PENALTY")

    @field_validator("redundant_thesis_penalty", mode="before")
    @classmethod
    def _parse(cls, v: object) -> float:
        return _lenient_float(v)

    @field_validator("redundant_thesis_penalty")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp01(v)

    @field_validator("top_k", "max_chunks_per_document")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        return max(1, int(v))


class ChunkingSettings(BaseSettings):
    """Per-role chunk window sizes.

    Role-specific variables win over the generic RAG_CHUNK_SIZE / RAG_CHUNK_OVERLAP,
    which in turn win over the built-in role defaults.
    """

    model_config = _ENV

    publication_chunk_size: int | None = Field(
        None, validation_alias=AliasChoices("RAG_CHUNK_SIZE_PUBLICATION", "RAG_CHUNK_SIZE")
    )
    publication_chunk_overlap: int | None = Field(
        None, validation_alias=AliasChoices("RAG_CHUNK_OVERLAP_PUBLICATION", "RAG_CHUNK_OVERLAP")
    )
    thesis_chunk_size: int | None = Field(
        None, validation_alias=AliasChoices("RAG_CHUNK_SIZE_THESIS", "RAG_CHUNK_SIZE")
    )
    thesis_chunk_overlap: int | None = Field(
        None, validation_alias=AliasChoices("RAG_CHUNK_OVERLAP_THESIS", "RAG_CHUNK_OVERLAP")
    )
    chunk_size: int | None = Field(None, alias="RAG_CHUNK_SIZE")
    chunk_overlap: int | None = Field(None, alias="RAG_CHUNK_OVERLAP")

    @field_validator("*", mode="before")
    @classmethod
    def _parse(cls, v: object) -> int | None:
        return _lenient_int(v)

    def for_role(self, role: SourceRole) -> ChunkingConfig:
        if role == "publication":
            size, overlap = self.publication_chunk_size, self.publication_chunk_overlap
        elif role == "thesis":
            size, overlap = self.thesis_chunk_size, self.thesis_chunk_overlap
        else:
            size, overlap = self.chunk_size, self.chunk_overlap
        default = default_chunking_for(role)
        return ChunkingConfig(
            chunk_size=size if size is not None and size > 0 else default.chunk_size,
            chunk_overlap=overlap if overlap is not None and overlap >= 0 else default.chunk_overlap,
        )


class StoreSettings(BaseSettings):
    model_config = _ENV

    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")
    default_namespace: str = Field("default", alias="DEFAULT_RAG_ID")


EmbeddingProvider = Literal["dummy", "huggingface", "ollama"]


class EmbeddingConfig(BaseSettings):
    model_config = _ENV

    provider: EmbeddingProvider = Field("dummy", alias="EMBEDDING_PROVIDER")
    model_name: str = Field("nomic-embed-text", alias="EMBEDDING_MODEL_NAME")
    base_url: str = Field("http://127.0.0.1:11434", alias="OLLAMA_BASE_URL")
    # Device for local huggingface models: "cpu" | "cuda" | "mps"
    device: str = Field("cpu", alias="EMBEDDING_DEVICE")
    normalize_embeddings: bool = Field(True, alias="EMBEDDING_NORMALIZE")

    @property
    def signature(self) -> str:
        return f"{self.provider}:{self.model_name}:{'norm' if self.normalize_embeddings else 'raw'}"


LLMProvider = Literal["dummy", "ollama"]


class LLMSettings(BaseSettings):
    model_config = _ENV

    provider: LLMProvider = Field("dummy", alias="LLM_PROVIDER")
    model: str = Field("llama3.1:8b", alias="LLM_MODEL")
    temperature: float = Field(0.4, alias="LLM_TEMPERATURE")
    base_url: str = Field("http://127.0.0.1:11434", alias="OLLAMA_BASE_URL")


class AppSettings(BaseModel):
    dedup: DedupSettings = Field(default_factory=DedupSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    embeddings: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: LLMSettings = Field(default_factory=LLMSettings)


# Cached accessor shared by CLI commands without re-parsing env
@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
