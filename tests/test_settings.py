from __future__ import annotations

import pytest

from research_twin.core.settings import (
    AppSettings,
    ChunkingSettings,
    DedupSettings,
    RetrievalSettings,
)

_VARS = (
    "RAG_DEDUP_COSINE_THRESHOLD",
    "RAG_DEDUP_LEXICAL_THRESHOLD",
    "RAG_DEDUP_NOVEL_SENTENCE_THRESHOLD",
    "RAG_REDUNDANT_THESIS_PENALTY",
    "RAG_TOP_K",
    "RAG_MAX_CHUNKS_PER_DOCUMENT",
    "RAG_CHUNK_SIZE",
    "RAG_CHUNK_OVERLAP",
    "RAG_CHUNK_SIZE_PUBLICATION",
    "RAG_CHUNK_OVERLAP_PUBLICATION",
    "RAG_CHUNK_SIZE_THESIS",
    "RAG_CHUNK_OVERLAP_THESIS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    cfg = AppSettings()
    assert cfg.dedup.cosine_threshold == 0.96
    assert cfg.dedup.lexical_threshold == 0.85
    assert cfg.dedup.novel_sentence_threshold == 0.2
    assert cfg.retrieval.redundant_thesis_penalty == 0.08
    assert cfg.retrieval.top_k == 5
    assert cfg.retrieval.max_chunks_per_document == 2
    assert cfg.store.default_namespace == "default"


def test_thresholds_are_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_DEDUP_COSINE_THRESHOLD", "1.5")
    monkeypatch.setenv("RAG_DEDUP_LEXICAL_THRESHOLD", "-0.3")
    monkeypatch.setenv("RAG_REDUNDANT_THESIS_PENALTY", "2")

    dedup = DedupSettings()
    assert dedup.cosine_threshold == 1.0
    assert dedup.lexical_threshold == 0.0
    assert RetrievalSettings().redundant_thesis_penalty == 1.0
    assert dedup.to_config().cosine_threshold == 1.0


def test_unparseable_thresholds_become_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_DEDUP_COSINE_THRESHOLD", "abc")
    monkeypatch.setenv("RAG_DEDUP_NOVEL_SENTENCE_THRESHOLD", "nan")
    monkeypatch.setenv("RAG_REDUNDANT_THESIS_PENALTY", "lots")

    dedup = DedupSettings()
    assert dedup.cosine_threshold == 0.0
    assert dedup.novel_sentence_threshold == 0.0
    assert dedup.lexical_threshold == 0.85
    assert RetrievalSettings().redundant_thesis_penalty == 0.0


def test_counts_at_least_one(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_TOP_K", "0")
    monkeypatch.setenv("RAG_MAX_CHUNKS_PER_DOCUMENT", "-4")
    cfg = RetrievalSettings()
    assert cfg.top_k == 1
    assert cfg.max_chunks_per_document == 1


def test_role_chunking_defaults() -> None:
    cfg = ChunkingSettings()
    pub, thesis, web = cfg.for_role("publication"), cfg.for_role("thesis"), cfg.for_role("web")
    assert (pub.chunk_size, pub.chunk_overlap) == (900, 140)
    assert (thesis.chunk_size, thesis.chunk_overlap) == (1200, 180)
    assert (web.chunk_size, web.chunk_overlap) == (900, 150)


def test_generic_chunk_size_applies_to_every_role(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_CHUNK_SIZE", "500")
    cfg = ChunkingSettings()
    assert cfg.for_role("publication").chunk_size == 500
    assert cfg.for_role("thesis").chunk_size == 500
    assert cfg.for_role("other").chunk_size == 500
    # overlaps keep their role defaults
    assert cfg.for_role("thesis").chunk_overlap == 180


def test_role_specific_variable_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_CHUNK_SIZE", "500")
    monkeypatch.setenv("RAG_CHUNK_SIZE_THESIS", "2000")
    monkeypatch.setenv("RAG_CHUNK_OVERLAP_PUBLICATION", "10")
    cfg = ChunkingSettings()
    assert cfg.for_role("thesis").chunk_size == 2000
    assert cfg.for_role("publication").chunk_size == 500
    assert cfg.for_role("publication").chunk_overlap == 10


def test_invalid_chunk_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_CHUNK_SIZE_PUBLICATION", "abc")
    monkeypatch.setenv("RAG_CHUNK_OVERLAP_PUBLICATION", "-5")
    monkeypatch.setenv("RAG_CHUNK_SIZE_THESIS", "0")
    cfg = ChunkingSettings()
    assert cfg.for_role("publication").chunk_size == 900
    assert cfg.for_role("publication").chunk_overlap == 140
    assert cfg.for_role("thesis").chunk_size == 1200
