from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from research_twin.application.ports.llm_port import LLMPort
from research_twin.application.use_cases.corpus import CorpusService
from research_twin.application.use_cases.retrieval import Retriever
from research_twin.domain.catalog import CANONICAL_PUBLICATIONS, CanonicalPublication
from research_twin.domain.evidence import (
    Citation,
    EvidenceReference,
    build_citation_hints,
    build_references,
    enforce_contract,
)
from research_twin.domain.intent import classify_intent
from research_twin.infra.observability.citations_log import log_citation_event
from research_twin.infra.prompting.parsers import parse_model_response
from research_twin.infra.prompting.templates import SYSTEM_TEMPLATE, build_prompt

log = logging.getLogger(__name__)


@dataclass
class AnswerResult:
    response_text: str
    citations: list[Citation] = field(default_factory=list)
    suggested_followups: list[str] = field(default_factory=list)
    intent: str = "technical_cross_paper"
    retrieval_notes: list[str] = field(default_factory=list)
    references: list[EvidenceReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "response_text": self.response_text,
            "citations": [c.to_dict() for c in self.citations],
            "suggested_followups": list(self.suggested_followups),
            "intent": self.intent,
            "retrieval_notes": list(self.retrieval_notes),
        }


@dataclass
class AnswerService:
    """Question answering over one namespace with enforced evidence citations."""

    corpus: CorpusService
    retriever: Retriever
    llm: LLMPort
    catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS

    def answer(self, namespace_id: str, question: str, top_k: int | None = None) -> AnswerResult:
        """classify -> retrieve -> references -> prompt -> completion -> contract.

        Only the model call may raise; everything around it degrades instead.
        """
        documents = self.corpus.list_documents(namespace_id)
        classification = classify_intent(question, documents)
        result = self.retriever.retrieve(
            namespace_id, question, top_k=top_k, classification=classification
        )
        refs = build_references(result.chunks, documents, self.catalog)
        prompt = build_prompt(question, result, build_citation_hints(refs))

        completion = self.llm.complete(prompt, system=SYSTEM_TEMPLATE)
        text, followups = parse_model_response(completion)

        outcome = enforce_contract(
            question,
            text,
            refs,
            intent=result.intent,
            target_document_names=result.target_document_names,
        )
        log_citation_event(question, outcome, refs)
        return AnswerResult(
            response_text=outcome.text,
            citations=outcome.citations,
            suggested_followups=followups,
            intent=result.intent,
            retrieval_notes=result.notes,
            references=refs,
        )
