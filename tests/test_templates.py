from __future__ import annotations

from research_twin.domain.document import Chunk
from research_twin.domain.retrieval import RetrievalResult
from research_twin.infra.prompting.templates import build_intent_policy, build_prompt


def _chunk(text: str) -> Chunk:
    return Chunk(
        id="c1",
        namespace_id="ns",
        document_id="d1",
        text=text,
        source_name="paper_a.txt",
        chunk_index=0,
        source_role="publication",
    )


def test_prompt_sections() -> None:
    result = RetrievalResult(
        intent="paper_specific",
        chunks=[_chunk("Paper A reaches 80% accuracy.")],
        target_document_names=["paper_a.txt"],
        notes=["paper_specific hard filter applied: paper_a.txt"],
    )
    prompt = build_prompt("What accuracy?", result, ["- [P1] PAPER | Paper A"])

    assert "Detected query intent:\npaper_specific" in prompt
    assert "[Context 1] Paper A reaches 80% accuracy." in prompt
    assert "- paper_specific hard filter applied: paper_a.txt" in prompt
    assert "- [P1] PAPER | Paper A" in prompt
    assert "User question:\nWhat accuracy?" in prompt
    assert '"response_text"' in prompt


def test_prompt_without_context() -> None:
    prompt = build_prompt("q", RetrievalResult(intent="technical_cross_paper"), [])
    assert "No RAG context available." in prompt
    assert "No citation hints available." in prompt
    assert "[Context 1]" not in prompt


def test_intent_policies() -> None:
    specific = build_intent_policy(
        RetrievalResult(intent="paper_specific", target_document_names=["paper_a.txt"])
    )
    assert "Keep evidence restricted to: paper_a.txt." in specific[1]
    assert len(specific) == 3

    compare = build_intent_policy(
        RetrievalResult(intent="paper_compare", target_document_names=["a.txt", "b.txt"])
    )
    assert compare[1] == "Focus comparison on these papers only: a.txt, b.txt."

    overview = build_intent_policy(RetrievalResult(intent="research_overview"))
    assert overview[-1].startswith("Use thesis to structure the narrative")
