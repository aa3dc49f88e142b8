from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class EmbeddingsPort(Protocol):
    """LangChain-compatible embeddings interface implemented by providers."""

    def embed_documents(self, texts: list[str]) -> list[Sequence[float]]:  # pragma: no cover
        ...

    def embed_query(self, text: str) -> Sequence[float]:  # pragma: no cover
        ...


class EmbedderPort(Protocol):
    """Core-facing embedding service: a vector, or None when unavailable."""

    def embed(self, text: str) -> list[float] | None:  # pragma: no cover - interface
        ...
