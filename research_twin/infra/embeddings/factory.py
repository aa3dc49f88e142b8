from __future__ import annotations

import logging
import math

import numpy as np
from langchain_core.embeddings import Embeddings

from research_twin.application.ports.embeddings_port import EmbeddingsPort
from research_twin.core.settings import EmbeddingConfig

log = logging.getLogger(__name__)


def _l2_normalize(vecs: list[list[float]]) -> list[list[float]]:
    if not vecs:
        return vecs
    X = np.asarray(vecs, dtype=np.float32)
    denom = np.linalg.norm(X, axis=1, keepdims=True) + 1e-12
    return (X / denom).tolist()


class DummyEmbeddings(Embeddings):
    """Small, local, deterministic embedding to keep tests and demos offline."""

    def __init__(self, dim: int = 16) -> None:
        self.dim = dim

    def _embed(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        for i, ch in enumerate(text.lower()):
            vec[(i + ord(ch)) % self.dim] += 1.0
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)


class _Normalized(Embeddings):
    def __init__(self, base: Embeddings) -> None:
        self._base = base

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return _l2_normalize(self._base.embed_documents(texts))

    def embed_query(self, text: str) -> list[float]:
        return _l2_normalize([self._base.embed_query(text)])[0]


def build_embeddings(cfg: EmbeddingConfig) -> EmbeddingsPort:
    provider = (cfg.provider or "").lower()
    log.info("embeddings: %s", cfg.signature)

    if provider == "dummy":
        return DummyEmbeddings()

    if provider == "huggingface":
        try:
            from langchain_huggingface import HuggingFaceEmbeddings
        except ImportError as e:  # pragma: no cover - optional extra
            raise RuntimeError(
                "langchain-huggingface is required for the huggingface provider.\n"
                "Install with: pip install 'research-twin[huggingface]'"
            ) from e
        return HuggingFaceEmbeddings(
            model_name=cfg.model_name,
            model_kwargs={"device": cfg.device},
            encode_kwargs={"normalize_embeddings": cfg.normalize_embeddings},
        )

    if provider == "ollama":
        try:
            from langchain_ollama import OllamaEmbeddings
        except ImportError as e:  # pragma: no cover - optional extra
            raise RuntimeError(
                "langchain-ollama is required for the ollama provider.\n"
                "Install with: pip install 'research-twin[ollama]'"
            ) from e
        base = OllamaEmbeddings(model=cfg.model_name, base_url=cfg.base_url)
        return _Normalized(base) if cfg.normalize_embeddings else base

    raise ValueError(f"Unsupported embeddings provider: {cfg.provider}")


class SafeEmbedder:
    """Adapt a LangChain embeddings object to the ``embed(text) -> vector | None`` contract.

    Blank input and provider failures (timeouts, connection errors) yield None so
    callers fall back to keyword scoring.
    """

    def __init__(self, embeddings: EmbeddingsPort) -> None:
        self._embeddings = embeddings

    def embed(self, text: str) -> list[float] | None:
        trimmed = (text or "").strip()
        if not trimmed:
            return None
        try:
            vec = self._embeddings.embed_query(trimmed)
        except Exception as e:  # noqa: BLE001 - any provider failure means "unavailable"
            log.warning("embedding unavailable: %s", e)
            return None
        if not vec:
            return None
        return [float(v) for v in vec]
