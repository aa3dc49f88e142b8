"""Intent-aware retrieval over a namespace's chunks.

Retrieval walks an ordered ladder of strategies (strict single paper, seeded
comparison, role-mixed, unfiltered). Each rung either declines (``None``) or
returns a result; the first result wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass, field

from research_twin.application.ports.embeddings_port import EmbedderPort
from research_twin.application.ports.store_port import StorePort
from research_twin.core.settings import RetrievalSettings
from research_twin.domain.document import Chunk, Document, SourceRole
from research_twin.domain.intent import IntentClassification, classify_intent
from research_twin.domain.retrieval import (
    NARRATIVE_INTENTS,
    RetrievalResult,
    cap_chunks_per_document,
    interleave_chunks,
    merge_unique_chunks,
    mix_targets,
)
from research_twin.domain.similarity import cosine, keyword_score

log = logging.getLogger(__name__)

MAX_TARGET_DOCUMENTS = 4


@dataclass
class RetrievalRequest:
    """Everything a strategy needs; built once per ``retrieve`` call."""

    query: str
    query_embedding: list[float] | None
    chunks: list[Chunk]
    documents: list[Document]
    classification: IntentClassification
    top_k: int
    target_document_names: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def intent(self) -> str:
        return self.classification.intent

    @property
    def has_publications(self) -> bool:
        return any(d.source_role == "publication" for d in self.documents)

    @property
    def has_thesis(self) -> bool:
        return any(d.source_role == "thesis" for d in self.documents)

    def result(self, chunks: list[Chunk], target_document_names: list[str] | None = None) -> RetrievalResult:
        return RetrievalResult(
            intent=self.classification.intent,
            chunks=chunks,
            mentioned_documents=list(self.classification.mentioned_documents),
            target_document_names=list(
                self.target_document_names if target_document_names is None else target_document_names
            ),
            notes=list(self.notes),
        )


Strategy = Callable[[RetrievalRequest], RetrievalResult | None]


@dataclass
class Retriever:
    store: StorePort
    embedder: EmbedderPort | None = None
    settings: RetrievalSettings = field(default_factory=RetrievalSettings)

    def __post_init__(self) -> None:
        self.strategies: list[Strategy] = [
            self.strict_paper,
            self.compare_seeded,
            self.mixed,
            self.unfiltered,
        ]

    # ---- base ranking ----

    def score(self, query: str, query_embedding: Sequence[float] | None, chunk: Chunk) -> float:
        if query_embedding and chunk.embedding:
            value = cosine(query_embedding, chunk.embedding)
        else:
            value = keyword_score(query, chunk.text)
        if chunk.is_redundant_thesis:
            value -= self.settings.redundant_thesis_penalty
        return value

    def rank(
        self,
        request: RetrievalRequest,
        *,
        top_k: int,
        include_roles: Collection[SourceRole] | None = None,
        include_document_names: Collection[str] | None = None,
        exclude_redundant: bool = False,
        max_per_document: int | None = None,
    ) -> list[Chunk]:
        """Top chunks by score after role/name/redundancy filters, with a per-document cap."""
        candidates = request.chunks
        if include_roles:
            candidates = [c for c in candidates if c.source_role in include_roles]
        if include_document_names:
            candidates = [c for c in candidates if c.source_name in include_document_names]
        if exclude_redundant:
            candidates = [c for c in candidates if not c.is_redundant]
        if not candidates:
            return []

        # sorted() is stable: ties keep store order
        ranked = sorted(
            candidates,
            key=lambda c: self.score(request.query, request.query_embedding, c),
            reverse=True,
        )
        bounded = max(1, int(top_k))
        if not max_per_document or max_per_document <= 0:
            return ranked[:bounded]
        return cap_chunks_per_document(ranked, max_per_document)[:bounded]

    # ---- ladder rungs ----

    def strict_paper(self, request: RetrievalRequest) -> RetrievalResult | None:
        if request.intent != "paper_specific" or not request.target_document_names:
            return None
        target = request.target_document_names[0]
        chunks = self.rank(
            request,
            top_k=request.top_k,
            include_roles=("publication",),
            include_document_names=(target,),
            exclude_redundant=True,
            max_per_document=max(2, min(4, request.top_k)),
        )
        if chunks:
            request.notes.append(f"paper_specific hard filter applied: {target}")
        else:
            # An empty answer here is reported, never papered over with other sources
            request.notes.append(f"paper_specific hard filter had no results for {target}")
        return request.result(chunks, [target])

    def compare_seeded(self, request: RetrievalRequest) -> RetrievalResult | None:
        if request.intent != "paper_compare" or not request.target_document_names:
            return None
        targets = request.target_document_names
        seeds: list[Chunk] = []
        for name in targets:
            best = self.rank(
                request,
                top_k=1,
                include_roles=("publication",),
                include_document_names=(name,),
                exclude_redundant=True,
                max_per_document=1,
            )
            seeds.extend(best[:1])

        cap = self.settings.max_chunks_per_document
        additional = self.rank(
            request,
            top_k=request.top_k,
            include_roles=("publication",),
            include_document_names=targets,
            exclude_redundant=True,
            max_per_document=cap,
        )
        merged = cap_chunks_per_document(merge_unique_chunks([*seeds, *additional]), cap)
        merged = merged[: request.top_k]
        if not merged:
            return None
        request.notes.append(f"paper_compare targeted papers: {', '.join(targets)}")
        return request.result(merged)

    def mixed(self, request: RetrievalRequest) -> RetrievalResult | None:
        intent, top_k = request.intent, request.top_k
        cap = self.settings.max_chunks_per_document
        publication_target, thesis_target = mix_targets(
            intent,
            top_k,
            has_publications=request.has_publications,
            has_thesis=request.has_thesis,
        )
        narrative = intent in NARRATIVE_INTENTS

        publication_chunks: list[Chunk] = []
        if publication_target > 0:
            names = request.target_document_names if intent == "paper_compare" else None
            publication_chunks = self.rank(
                request,
                top_k=publication_target,
                include_roles=("publication",),
                include_document_names=names or None,
                exclude_redundant=True,
                max_per_document=cap,
            )
        thesis_chunks: list[Chunk] = []
        if thesis_target > 0:
            # Overview and future-work answers may frame with redundant thesis passages
            thesis_chunks = self.rank(
                request,
                top_k=thesis_target,
                include_roles=("thesis",),
                exclude_redundant=not narrative,
                max_per_document=cap,
            )

        if narrative:
            combined = interleave_chunks(thesis_chunks, publication_chunks, top_k)
        else:
            combined = interleave_chunks(publication_chunks, thesis_chunks, top_k)
        combined = cap_chunks_per_document(merge_unique_chunks(combined), cap)

        if len(combined) < top_k:
            backfill = self.rank(
                request,
                top_k=top_k * 2,
                include_roles=("publication", "thesis"),
                exclude_redundant=False,
                max_per_document=cap,
            )
            combined = cap_chunks_per_document(merge_unique_chunks([*combined, *backfill]), cap)

        final = combined[:top_k]
        if not final:
            return None
        request.notes.append(
            f"intent={intent} mix publication={publication_target} "
            f"thesis={thesis_target} topK={top_k}"
        )
        return request.result(final)

    def unfiltered(self, request: RetrievalRequest) -> RetrievalResult:
        chunks = self.rank(
            request,
            top_k=request.top_k,
            exclude_redundant=False,
            max_per_document=self.settings.max_chunks_per_document,
        )
        request.notes.append(f"intent={request.intent} fallback=unfiltered")
        return request.result(chunks)

    # ---- entry point ----

    def _embed_query(self, query: str) -> list[float] | None:
        if self.embedder is None:
            return None
        return self.embedder.embed(query)

    def retrieve(
        self,
        namespace_id: str,
        query: str,
        *,
        top_k: int | None = None,
        classification: IntentClassification | None = None,
    ) -> RetrievalResult:
        snapshot = self.store.read(namespace_id)
        documents = [
            d for d in snapshot.documents if d.namespace_id == namespace_id and d.status != "deleted"
        ]
        chunks = [c for c in snapshot.chunks if c.namespace_id == namespace_id]
        if classification is None:
            classification = classify_intent(query, documents)

        top_k = max(1, int(top_k if top_k is not None else self.settings.top_k))
        targets = [d.file_name for d in classification.mentioned_publications][:MAX_TARGET_DOCUMENTS]
        request = RetrievalRequest(
            query=query,
            query_embedding=self._embed_query(query) if chunks else None,
            chunks=chunks,
            documents=documents,
            classification=classification,
            top_k=top_k,
            target_document_names=targets,
        )

        for strategy in self.strategies:
            result = strategy(request)
            if result is not None:
                log.info(
                    "retrieval namespace=%s intent=%s strategy=%s chunks=%d",
                    namespace_id,
                    result.intent,
                    strategy.__name__,
                    len(result.chunks),
                )
                return result
        # unfiltered always answers
        return request.result([])
