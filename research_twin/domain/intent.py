from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from research_twin.domain.document import Document

Intent = Literal[
    "paper_specific",
    "paper_compare",
    "technical_cross_paper",
    "research_overview",
    "future_directions",
]

FUTURE_INTENT_TERMS = (
    "future",
    "future directions",
    "open problem",
    "open problems",
    "next step",
    "next steps",
    "roadmap",
    "limitation",
    "limitations",
)

OVERVIEW_INTENT_TERMS = (
    "overall",
    "overview",
    "big picture",
    "summary",
    "journey",
    "evolution",
    "problem definition",
    "research theme",
    "how your work evolved",
)

COMPARE_TERMS = (
    "compare",
    "comparison",
    "versus",
    "vs",
    "difference",
    "different",
    "better than",
    "tradeoff",
    "trade off",
)

PAPER_SIGNAL_TERMS = (
    "paper",
    "publication",
    "wacv",
    "cvpr",
    "cvprw",
    "iccv",
    "iccvw",
    "eccv",
    "eccvw",
    "tmlr",
    "bmvc",
    "iclr",
    "result",
    "results",
    "ablation",
    "table",
    "metric",
    "accuracy",
    "miou",
    "f1",
    "auc",
    "dataset",
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_EXT = re.compile(r"\.[a-z0-9]{2,6}$", re.IGNORECASE)
_SEPARATORS = re.compile(r"[_-]+")

MIN_VERBATIM_ALIAS_CHARS = 6
MIN_TOKEN_OVERLAP = 0.6


def normalize_match_text(value: str) -> str:
    return " ".join(_NON_ALNUM.sub(" ", (value or "").lower()).split())


def tokenize(value: str) -> list[str]:
    return [t for t in normalize_match_text(value).split(" ") if len(t) > 1]


def has_any_term(normalized_query: str, terms: Sequence[str]) -> bool:
    # Substring match, so "compared" still carries the "compare" signal
    return any(term in normalized_query for term in terms)


def document_aliases(doc: Document) -> list[str]:
    stem = _SEPARATORS.sub(" ", _EXT.sub("", doc.file_name))
    aliases = [normalize_match_text(stem)]
    if doc.metadata and doc.metadata.title:
        aliases.append(normalize_match_text(doc.metadata.title))
    if doc.metadata and doc.metadata.canonical_citation:
        aliases.append(normalize_match_text(doc.metadata.canonical_citation))
    return list(dict.fromkeys(a for a in aliases if a))


def score_document_mention(query_norm: str, query_tokens: set[str], doc: Document) -> float:
    best = 0.0
    for alias in document_aliases(doc):
        if len(alias) >= MIN_VERBATIM_ALIAS_CHARS and alias in query_norm:
            best = max(best, 3.0)
            continue
        alias_tokens = [t for t in tokenize(alias) if len(t) > 2]
        if not alias_tokens:
            continue
        ratio = sum(1 for t in alias_tokens if t in query_tokens) / len(alias_tokens)
        if len(alias_tokens) >= 2 and ratio >= MIN_TOKEN_OVERLAP:
            best = max(best, 2.0 + ratio)
        elif len(alias.split(" ")) == 1 and ratio >= 1.0:
            # "paper b" is not a one-word alias even though only "paper" survives filtering
            best = max(best, 1.25)
    return best


def find_mentioned_documents(query: str, documents: Sequence[Document]) -> list[Document]:
    """Documents referenced by the query, best match first (stable for ties)."""
    query_norm = normalize_match_text(query)
    query_tokens = set(tokenize(query_norm))
    scored = [(doc, score_document_mention(query_norm, query_tokens, doc)) for doc in documents]
    ranked = sorted((item for item in scored if item[1] > 0), key=lambda item: -item[1])
    return [doc for doc, _ in ranked]


def detect_intent(query: str, mentioned: Sequence[Document]) -> Intent:
    query_norm = normalize_match_text(query)
    paper_mentions = [d for d in mentioned if d.source_role == "publication"]

    if (has_any_term(query_norm, COMPARE_TERMS) and paper_mentions) or len(paper_mentions) >= 2:
        return "paper_compare"
    if has_any_term(query_norm, FUTURE_INTENT_TERMS):
        return "future_directions"
    if has_any_term(query_norm, OVERVIEW_INTENT_TERMS):
        return "research_overview"
    if len(paper_mentions) == 1 and has_any_term(query_norm, PAPER_SIGNAL_TERMS):
        return "paper_specific"
    return "technical_cross_paper"


@dataclass(frozen=True)
class IntentClassification:
    intent: Intent
    mentioned_documents: list[Document] = field(default_factory=list)

    @property
    def mentioned_publications(self) -> list[Document]:
        return [d for d in self.mentioned_documents if d.source_role == "publication"]


def classify_intent(query: str, known_documents: Sequence[Document]) -> IntentClassification:
    mentioned = find_mentioned_documents(query, known_documents)
    return IntentClassification(intent=detect_intent(query, mentioned), mentioned_documents=mentioned)
