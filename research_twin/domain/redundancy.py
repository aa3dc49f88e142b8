from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from research_twin.domain.document import Chunk, text_hash
from research_twin.domain.similarity import cosine, lexical_overlap, novel_sentence_ratio

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedundancyConfig:
    cosine_threshold: float = 0.96
    lexical_threshold: float = 0.85
    novel_sentence_threshold: float = 0.2


@dataclass(frozen=True)
class RedundancyMatch:
    publication_chunk_id: str
    score: float


def _best_near_duplicate(
    thesis: Chunk, publications: list[Chunk], cfg: RedundancyConfig
) -> tuple[Chunk, float] | None:
    best: Chunk | None = None
    best_score = 0.0
    for pub in publications:
        lexical = lexical_overlap(thesis.text, pub.text)
        if lexical < cfg.lexical_threshold:
            continue
        # Without both embeddings there is no semantic agreement: cosine counts as 0
        cos = cosine(thesis.embedding, pub.embedding) if thesis.embedding and pub.embedding else 0.0
        if cos < cfg.cosine_threshold:
            continue
        combined = (cos + lexical) / 2
        if best is None or combined > best_score:
            best, best_score = pub, combined
    if best is None:
        return None
    return best, best_score


def find_redundancy(
    thesis: Chunk,
    publications: list[Chunk],
    by_hash: dict[str, list[Chunk]],
    cfg: RedundancyConfig,
) -> RedundancyMatch | None:
    """Judge one thesis chunk against the publication chunks of its namespace.

    An exact hash match always decides on its own (first match wins); otherwise the
    best near-duplicate is taken. Either way the novelty gate has the final word.
    """
    if not publications:
        return None

    exact = by_hash.get(thesis.text_hash or text_hash(thesis.text))
    if exact:
        match = exact[0]
        if novel_sentence_ratio(thesis.text, match.text) < cfg.novel_sentence_threshold:
            return RedundancyMatch(publication_chunk_id=match.id, score=1.0)
        return None

    near = _best_near_duplicate(thesis, publications, cfg)
    if near is None:
        return None
    pub, score = near
    if novel_sentence_ratio(thesis.text, pub.text) >= cfg.novel_sentence_threshold:
        return None
    return RedundancyMatch(publication_chunk_id=pub.id, score=score)


def annotate_thesis_redundancy(
    chunks: Iterable[Chunk], namespace_id: str, cfg: RedundancyConfig | None = None
) -> int:
    """Recompute redundancy flags for every thesis chunk of a namespace in place.

    Flags are reset before evaluation, so running twice on an unchanged chunk set
    yields identical results. Returns the number of chunks marked redundant.
    """
    cfg = cfg or RedundancyConfig()
    scoped = [c for c in chunks if c.namespace_id == namespace_id]
    publications = [c for c in scoped if c.source_role == "publication"]
    theses = [c for c in scoped if c.source_role == "thesis"]
    if not theses:
        return 0

    by_hash: dict[str, list[Chunk]] = {}
    for pub in publications:
        if not pub.text_hash:
            pub.text_hash = text_hash(pub.text)
        by_hash.setdefault(pub.text_hash, []).append(pub)

    marked = 0
    for thesis in theses:
        if not thesis.text_hash:
            thesis.text_hash = text_hash(thesis.text)
        thesis.is_redundant = False
        thesis.redundant_of = None
        thesis.redundancy_score = None

        match = find_redundancy(thesis, publications, by_hash, cfg)
        if match is None:
            continue
        thesis.is_redundant = True
        thesis.redundant_of = match.publication_chunk_id
        thesis.redundancy_score = match.score
        marked += 1

    log.info(
        "redundancy[%s]: thesis=%d publication=%d redundant=%d",
        namespace_id,
        len(theses),
        len(publications),
        marked,
    )
    return marked
