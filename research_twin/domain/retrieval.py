from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from research_twin.domain.document import Chunk, Document
from research_twin.domain.intent import Intent

# Publication / thesis share of the evidence set per intent
INTENT_MIX: dict[str, tuple[float, float]] = {
    "paper_specific": (1.0, 0.0),
    "paper_compare": (1.0, 0.0),
    "technical_cross_paper": (0.75, 0.25),
    "research_overview": (0.4, 0.6),
    "future_directions": (0.3, 0.7),
}

NARRATIVE_INTENTS = frozenset({"research_overview", "future_directions"})


@dataclass
class RetrievalResult:
    intent: Intent
    chunks: list[Chunk] = field(default_factory=list)
    mentioned_documents: list[Document] = field(default_factory=list)
    target_document_names: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def intent_mix(intent: str) -> tuple[float, float]:
    return INTENT_MIX.get(intent, INTENT_MIX["technical_cross_paper"])


def mix_targets(
    intent: str, top_k: int, *, has_publications: bool, has_thesis: bool
) -> tuple[int, int]:
    """Split top_k into (publication, thesis) fetch counts for the mixed path."""
    pub_share, _ = intent_mix(intent)
    # half-up rounding: 4.5 -> 5
    publication = math.floor(top_k * pub_share + 0.5) if has_publications else 0
    thesis = top_k - publication if has_thesis else 0
    if has_publications and intent in ("technical_cross_paper", *NARRATIVE_INTENTS):
        publication = max(1, publication)
        thesis = max(0, top_k - publication) if has_thesis else 0
    return publication, thesis


def merge_unique_chunks(chunks: Iterable[Chunk]) -> list[Chunk]:
    seen: set[str] = set()
    merged: list[Chunk] = []
    for chunk in chunks:
        if chunk.id in seen:
            continue
        seen.add(chunk.id)
        merged.append(chunk)
    return merged


def cap_chunks_per_document(chunks: Iterable[Chunk], max_per_document: int) -> list[Chunk]:
    chunks = list(chunks)
    if max_per_document <= 0:
        return chunks
    counts: dict[str, int] = {}
    kept: list[Chunk] = []
    for chunk in chunks:
        n = counts.get(chunk.document_id, 0)
        if n >= max_per_document:
            continue
        kept.append(chunk)
        counts[chunk.document_id] = n + 1
    return kept


def interleave_chunks(primary: Sequence[Chunk], secondary: Sequence[Chunk], top_k: int) -> list[Chunk]:
    """Alternate one chunk from each list, primary first, up to top_k."""
    merged: list[Chunk] = []
    p, s = list(primary), list(secondary)
    while len(merged) < top_k and (p or s):
        if p:
            merged.append(p.pop(0))
        if len(merged) >= top_k:
            break
        if s:
            merged.append(s.pop(0))
    return merged
