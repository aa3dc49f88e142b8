from __future__ import annotations

from collections.abc import Sequence

from research_twin.domain.retrieval import RetrievalResult

SYSTEM_TEMPLATE = """\
You are a research digital twin: a technically fluent peer who answers questions about
the researcher's publications, thesis and website. Follow the instructions exactly and
return only valid JSON with keys response_text, citations, suggested_followups.
"""

INSTRUCTIONS = """\
Core behaviors:
1. ALWAYS ground responses in the knowledge context and never fabricate paper details.
2. For paper-specific questions, stay strictly within the named paper(s). If evidence is
   missing, say it is not found in the retrieved context.
3. For quantitative or experimental claims, prioritize publication evidence.
4. Use thesis context for synthesis: motivation, research trajectory, future directions.
5. If methods come from different problem settings, say they are not directly
   experimentally comparable and give conceptual differences only.
6. Keep responses concise but substantive: direct answer first, then detail.
7. Never output hidden reasoning, <think> tags or scratch work.
"""

CITATION_CONTRACT = """\
1. Use inline evidence markers such as [P1], [T1], [TR1] directly on substantive claims.
2. For quantitative claims, cite publication evidence ([P#]) when available.
3. Do not rely on [TR#] as sole support for key claims when [P#] exists.
4. Keep paper-specific answers constrained to the target paper context only.
"""

OUTPUT_FORMAT = """\
Return ONLY a JSON object, no markdown fences and no extra text:
{"response_text":"string","citations":[{"title":"string","venue":"string","year":"string"}],"suggested_followups":["string"]}
"""


def build_intent_policy(result: RetrievalResult) -> list[str]:
    targets = result.target_document_names
    lines = [
        "Never make key factual claims based only on THESIS-REDUNDANT evidence when PAPER evidence exists."
    ]
    if result.intent == "paper_specific":
        if targets:
            lines.append(
                f"Treat this as a single-paper query. Keep evidence restricted to: {', '.join(targets)}."
            )
        else:
            lines.append("Treat this as a single-paper query and avoid cross-paper numerical claims.")
        lines.append(
            "If the requested metric/result is not present in that paper, explicitly state that it was not found."
        )
    elif result.intent == "paper_compare":
        if targets:
            lines.append(f"Focus comparison on these papers only: {', '.join(targets)}.")
        lines.append("For each compared claim, attribute evidence to the specific paper.")
    elif result.intent == "technical_cross_paper":
        lines.append(
            "Prioritize publication evidence for technical and quantitative claims; "
            "use thesis only as supporting context."
        )
    elif result.intent == "research_overview":
        lines.append(
            "Use thesis to structure the narrative, but include publication evidence for concrete technical claims."
        )
    elif result.intent == "future_directions":
        lines.append(
            "Use thesis for future-work framing while grounding key claims in publication evidence when available."
        )
    return lines


def _numbered(items: Sequence[str], empty: str) -> str:
    if not items:
        return empty
    return "\n".join(f"{i}. {line}" for i, line in enumerate(items, 1))


def build_prompt(question: str, result: RetrievalResult, citation_hints: Sequence[str]) -> str:
    context = (
        "\n\n".join(f"[Context {i}] {c.text}" for i, c in enumerate(result.chunks, 1))
        or "No RAG context available."
    )
    notes = "\n".join(f"- {n}" for n in result.notes) or "No retrieval notes."
    hints = "\n".join(citation_hints) or "No citation hints available."
    return "\n".join(
        [
            f"Instructions:\n{INSTRUCTIONS}",
            f"Detected query intent:\n{result.intent}",
            "",
            f"Intent-specific evidence policy:\n{_numbered(build_intent_policy(result), 'No special policy.')}",
            "",
            f"Citation contract:\n{CITATION_CONTRACT}",
            f"Retrieval notes:\n{notes}",
            "",
            f"User question:\n{question}",
            "",
            f"Knowledge context:\n{context}",
            "",
            f"Citation hints to prefer (if relevant):\n{hints}",
            "",
            OUTPUT_FORMAT,
        ]
    )
