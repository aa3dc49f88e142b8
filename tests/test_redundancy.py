from __future__ import annotations

import pytest

from research_twin.domain.document import Chunk, SourceRole
from research_twin.domain.redundancy import RedundancyConfig, annotate_thesis_redundancy

NS = "ns1"


def _chunk(
    cid: str, role: SourceRole, text: str, embedding: list[float] | None = None, ns: str = NS
) -> Chunk:
    return Chunk(
        id=cid,
        namespace_id=ns,
        document_id=f"doc-{cid}",
        text=text,
        source_name=f"{cid}.txt",
        chunk_index=0,
        source_role=role,
        embedding=embedding,
    )


def _flags(chunks: list[Chunk]) -> list[tuple[bool, str | None, float | None]]:
    return [(c.is_redundant, c.redundant_of, c.redundancy_score) for c in chunks]


def test_added_material_sentence_keeps_thesis_chunk() -> None:
    pub = _chunk("p1", "publication", "We achieve 92% mIoU on CamVid.", [1.0, 0.0])
    thesis = _chunk(
        "t1",
        "thesis",
        "We achieve 92% mIoU on CamVid, extending this with a discussion of failure cases.",
        [0.99, 0.1],
    )

    marked = annotate_thesis_redundancy([pub, thesis], NS)

    assert marked == 0
    assert thesis.is_redundant is False
    assert thesis.redundant_of is None
    assert thesis.redundancy_score is None


def test_exact_duplicate_is_redundant_with_full_score() -> None:
    pub = _chunk("p1", "publication", "We achieve 92% mIoU on CamVid.")
    thesis = _chunk("t1", "thesis", "We  achieve 92% mIoU on   CamVid.")

    assert annotate_thesis_redundancy([pub, thesis], NS) == 1
    assert thesis.is_redundant is True
    assert thesis.redundant_of == "p1"
    assert thesis.redundancy_score == 1.0
    assert thesis.is_redundant_thesis


def test_exact_match_uses_first_publication_with_same_hash() -> None:
    first = _chunk("p1", "publication", "Identical passage about adaptive batch norm.")
    second = _chunk("p2", "publication", "identical passage about adaptive batch norm.")
    thesis = _chunk("t1", "thesis", "Identical passage about adaptive batch norm.")

    annotate_thesis_redundancy([first, second, thesis], NS)
    assert thesis.redundant_of == "p1"


NEAR_PUB = "Our method improves segmentation accuracy on CamVid by a large margin over baselines."
NEAR_THESIS = "Our method improves segmentation accuracy on CamVid by a large margin over baselines!"


def test_near_duplicate_requires_embedding_agreement() -> None:
    pub = _chunk("p1", "publication", NEAR_PUB, [1.0, 0.0])
    thesis = _chunk("t1", "thesis", NEAR_THESIS, [1.0, 0.0])

    annotate_thesis_redundancy([pub, thesis], NS)
    assert thesis.is_redundant is True
    assert thesis.redundant_of == "p1"
    assert thesis.redundancy_score == pytest.approx(1.0)


def test_near_duplicate_without_embeddings_is_not_redundant() -> None:
    pub = _chunk("p1", "publication", NEAR_PUB)
    thesis = _chunk("t1", "thesis", NEAR_THESIS)

    assert annotate_thesis_redundancy([pub, thesis], NS) == 0
    assert thesis.is_redundant is False


def test_near_duplicate_with_divergent_embeddings_is_not_redundant() -> None:
    pub = _chunk("p1", "publication", NEAR_PUB, [1.0, 0.0])
    thesis = _chunk("t1", "thesis", NEAR_THESIS, [0.0, 1.0])

    assert annotate_thesis_redundancy([pub, thesis], NS) == 0


def test_stale_flags_are_cleared() -> None:
    pub = _chunk("p1", "publication", "A publication about open-world test time adaptation.")
    thesis = _chunk("t1", "thesis", "A thesis chapter about something else entirely, on purpose.")
    thesis.is_redundant = True
    thesis.redundant_of = "p-gone"
    thesis.redundancy_score = 0.97

    annotate_thesis_redundancy([pub, thesis], NS)
    assert _flags([thesis]) == [(False, None, None)]


def test_annotation_is_idempotent() -> None:
    chunks = [
        _chunk("p1", "publication", "We achieve 92% mIoU on CamVid.", [1.0, 0.0]),
        _chunk("p2", "publication", NEAR_PUB, [0.0, 1.0]),
        _chunk("t1", "thesis", "We achieve 92% mIoU on CamVid.", [1.0, 0.0]),
        _chunk("t2", "thesis", NEAR_THESIS, [0.0, 1.0]),
        _chunk("t3", "thesis", "Completely new motivation chapter text goes here today."),
    ]
    annotate_thesis_redundancy(chunks, NS)
    first = _flags(chunks)
    annotate_thesis_redundancy(chunks, NS)
    assert _flags(chunks) == first
    assert first[2][0] and first[3][0] and not first[4][0]


def test_other_namespaces_are_untouched() -> None:
    pub = _chunk("p1", "publication", "We achieve 92% mIoU on CamVid.")
    foreign = _chunk("t9", "thesis", "We achieve 92% mIoU on CamVid.", ns="other")

    assert annotate_thesis_redundancy([pub, foreign], NS) == 0
    assert foreign.is_redundant is False


def test_strict_novelty_threshold_disables_marking() -> None:
    pub = _chunk("p1", "publication", "We achieve 92% mIoU on CamVid.")
    thesis = _chunk("t1", "thesis", "We achieve 92% mIoU on CamVid.")
    cfg = RedundancyConfig(novel_sentence_threshold=0.0)

    # novelty 0.0 is never below a 0.0 threshold
    assert annotate_thesis_redundancy([pub, thesis], NS, cfg) == 0
