from __future__ import annotations

import math

import pytest

from research_twin.core.settings import EmbeddingConfig
from research_twin.infra.embeddings.factory import DummyEmbeddings, SafeEmbedder, build_embeddings


def test_dummy_provider_embeds_deterministically() -> None:
    cfg = EmbeddingConfig(
        provider="dummy",
        model_name="ignored-for-dummy",
        device="cpu",
        normalize_embeddings=True,
    )

    emb = build_embeddings(cfg)
    v1 = emb.embed_query("Hello World")
    v2 = emb.embed_query("Hello World")

    assert isinstance(v1, list)
    assert len(v1) == 16
    # Deterministic for same input
    assert v1 == v2
    assert math.sqrt(sum(x * x for x in v1)) == pytest.approx(1.0)


def test_signature() -> None:
    cfg = EmbeddingConfig(provider="dummy", model_name="m", normalize_embeddings=False)
    assert cfg.signature == "dummy:m:raw"


def test_build_logs_signature(caplog: pytest.LogCaptureFixture) -> None:
    cfg = EmbeddingConfig(provider="dummy", model_name="m", normalize_embeddings=True)
    with caplog.at_level("INFO", logger="research_twin.infra.embeddings.factory"):
        build_embeddings(cfg)
    assert "embeddings: dummy:m:norm" in caplog.text


class BrokenEmbeddings(DummyEmbeddings):
    def embed_query(self, text: str) -> list[float]:
        raise ConnectionError("embedding service down")


class EmptyEmbeddings(DummyEmbeddings):
    def embed_query(self, text: str) -> list[float]:
        return []


def test_safe_embedder_degrades_to_none() -> None:
    assert SafeEmbedder(DummyEmbeddings()).embed("   ") is None
    assert SafeEmbedder(BrokenEmbeddings()).embed("text") is None
    assert SafeEmbedder(EmptyEmbeddings()).embed("text") is None

    vec = SafeEmbedder(DummyEmbeddings()).embed("text")
    assert vec is not None and all(isinstance(v, float) for v in vec)
