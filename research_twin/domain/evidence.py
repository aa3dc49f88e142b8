"""Evidence markers and the citation contract applied to model answers.

Every retrieved chunk gets a marker (P1, T1, TR1, W1, S1). The model is asked to
cite those markers inline; its answer is then cleaned of invented markers and
self-made evidence sections, and a canonical evidence listing is appended.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from research_twin.domain.catalog import (
    CANONICAL_PUBLICATIONS,
    CanonicalPublication,
    resolve_from_candidates,
)
from research_twin.domain.document import Chunk, Document

log = logging.getLogger(__name__)

SourceLabel = Literal["PAPER", "THESIS", "THESIS-REDUNDANT", "WEB", "SOURCE"]

MARKER_PREFIX: dict[str, str] = {
    "PAPER": "P",
    "THESIS": "T",
    "THESIS-REDUNDANT": "TR",
    "WEB": "W",
    "SOURCE": "S",
}

MARKER_RE = re.compile(r"\[(TR\d+|P\d+|T\d+|W\d+|S\d+)\]")

MODEL_EVIDENCE_HEADERS = (
    "\nPrimary evidence:",
    "\n### Evidence Notes",
    "\n### Evidence",
    "\nEvidence Notes\n",
    "\nEvidence\n",
    "\nCitations\n",
    "\nReferences\n",
)

QUANTITATIVE_SIGNAL_TERMS = (
    "result",
    "results",
    "metric",
    "metrics",
    "accuracy",
    "miou",
    "f1",
    "auc",
    "score",
    "gain",
    "improvement",
    "ablation",
    "table",
    "benchmark",
)

_NUMBER_WITH_UNIT = re.compile(r"\b\d+(\.\d+)?\s*(%|percent|points|x)?")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

MAX_PRIMARY_MARKERS = 4
MAX_CITATIONS = 8


@dataclass(frozen=True)
class EvidenceReference:
    marker: str
    source_label: SourceLabel
    source_name: str
    title: str
    venue: str
    year: str
    chunk_id: str


@dataclass(frozen=True)
class Citation:
    title: str
    venue: str
    year: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "venue": self.venue, "year": self.year}


@dataclass
class ContractOutcome:
    text: str
    citations: list[Citation] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    primary_evidence_added: bool = False


def source_label(chunk: Chunk) -> SourceLabel:
    if chunk.source_role == "publication":
        return "PAPER"
    if chunk.is_redundant_thesis:
        return "THESIS-REDUNDANT"
    if chunk.source_role == "thesis":
        return "THESIS"
    if chunk.source_role == "web":
        return "WEB"
    return "SOURCE"


def _display_fields(
    chunk: Chunk,
    label: SourceLabel,
    doc: Document | None,
    catalog: Sequence[CanonicalPublication],
) -> tuple[str, str, str, str]:
    md = doc.metadata if doc else None
    source_name = doc.file_name if doc else chunk.source_name
    title = (md.title if md else None) or chunk.document_title or chunk.source_name
    venue = (md.venue if md else None) or "N/A"
    year = (md.year if md else None) or "N/A"

    if label == "PAPER":
        canonical = resolve_from_candidates(
            [
                (md.title if md else None) or "",
                (md.canonical_citation if md else None) or "",
                doc.file_name if doc else "",
                chunk.source_name or "",
                chunk.document_title or "",
                chunk.paper_key or "",
            ],
            catalog,
        )
        if canonical is not None:
            return source_name, canonical.title, canonical.venue, canonical.year
    elif label == "WEB":
        venue = "WEB"
    return source_name, title, venue, year


def build_references(
    chunks: Sequence[Chunk],
    documents: Sequence[Document],
    catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS,
) -> list[EvidenceReference]:
    """Assign markers in retrieval order, numbered per prefix."""
    by_id = {d.id: d for d in documents}
    counters: dict[str, int] = {}
    refs: list[EvidenceReference] = []
    for chunk in chunks:
        label = source_label(chunk)
        prefix = MARKER_PREFIX[label]
        counters[prefix] = counters.get(prefix, 0) + 1
        source_name, title, venue, year = _display_fields(
            chunk, label, by_id.get(chunk.document_id), catalog
        )
        refs.append(
            EvidenceReference(
                marker=f"{prefix}{counters[prefix]}",
                source_label=label,
                source_name=source_name,
                title=title,
                venue=venue,
                year=year,
                chunk_id=chunk.id,
            )
        )
    return refs


def build_citation_hints(refs: Sequence[EvidenceReference], limit: int = MAX_CITATIONS) -> list[str]:
    return [f"- [{r.marker}] {r.source_label} | {r.title}" for r in refs[:limit]]


def build_evidence_block(refs: Sequence[EvidenceReference]) -> str:
    if not refs:
        return ""
    lines = [
        f"- [{r.marker}] {r.source_label} | {r.title} | venue: {r.venue} | year: {r.year} | chunk: {r.chunk_id}"
        for r in refs
    ]
    return "\n".join(["### Evidence", *lines])


def strip_model_evidence_sections(text: str) -> str:
    """Cut everything from the first evidence/citation section the model wrote itself."""
    positions = [i for i in (text.find(h) for h in MODEL_EVIDENCE_HEADERS) if i >= 0]
    if not positions:
        return text.strip()
    return text[: min(positions)].strip()


def strip_unknown_markers(text: str, valid_markers: set[str]) -> str:
    return MARKER_RE.sub(lambda m: m.group(0) if m.group(1) in valid_markers else "", text)


def count_valid_markers(text: str, valid_markers: set[str]) -> int:
    return sum(1 for m in MARKER_RE.finditer(text) if m.group(1) in valid_markers)


def has_quantitative_signals(text: str) -> bool:
    if _NUMBER_WITH_UNIT.search(text or ""):
        return True
    normalized = " ".join(_NON_ALNUM.sub(" ", (text or "").lower()).split())
    return any(term in normalized for term in QUANTITATIVE_SIGNAL_TERMS)


def compliance_notes(
    query: str,
    answer: str,
    refs: Sequence[EvidenceReference],
    *,
    intent: str,
    target_document_names: Sequence[str],
) -> list[str]:
    labels = [r.source_label for r in refs]
    has_paper = "PAPER" in labels
    has_thesis = "THESIS" in labels
    has_redundant = "THESIS-REDUNDANT" in labels
    targeted = intent == "paper_specific" and bool(target_document_names)

    notes: list[str] = []
    if targeted:
        notes.append(f"Evidence is restricted to the target paper: {target_document_names[0]}.")
    if (has_quantitative_signals(query) or has_quantitative_signals(answer)) and not has_paper:
        if targeted:
            notes.append(
                "Requested quantitative result was not found in retrieved context from the target paper."
            )
        else:
            notes.append(
                "Publication-backed quantitative evidence was not found in current retrieved context."
            )
    if has_redundant and not has_paper:
        notes.append(
            "Only thesis-redundant evidence was available for some claims; "
            "treat those claims as lower confidence."
        )
    if has_paper and (has_thesis or has_redundant):
        notes.append(
            "When thesis framing differs from paper wording, publication evidence is treated "
            "as canonical for factual details."
        )
    return notes


def _prioritized_markers(refs: Sequence[EvidenceReference]) -> list[str]:
    order = {"PAPER": 0, "THESIS": 1, "THESIS-REDUNDANT": 2}
    ranked = sorted(refs, key=lambda r: order.get(r.source_label, 3))
    return [f"[{r.marker}]" for r in ranked[:MAX_PRIMARY_MARKERS]]


def dedupe_citations(refs: Sequence[EvidenceReference], limit: int = MAX_CITATIONS) -> list[Citation]:
    seen: set[tuple[str, str, str, str]] = set()
    out: list[Citation] = []
    for r in refs:
        key = (r.source_label, r.title, r.year, r.venue)
        if key in seen:
            continue
        seen.add(key)
        out.append(Citation(title=r.title, venue=r.venue, year=r.year))
        if len(out) >= limit:
            break
    return out


def enforce_contract(
    query: str,
    answer_text: str,
    refs: Sequence[EvidenceReference],
    *,
    intent: str = "technical_cross_paper",
    target_document_names: Sequence[str] = (),
) -> ContractOutcome:
    """Validate and repair a model answer against the retrieved evidence markers.

    Never raises: on unexpected input the cleaned text is returned without notes.
    """
    refs = [r for r in (refs or []) if isinstance(r, EvidenceReference)]
    answer_text = answer_text if isinstance(answer_text, str) else ""
    text = strip_model_evidence_sections(answer_text.strip())
    valid = {r.marker for r in refs}
    text = strip_unknown_markers(text, valid).strip()

    try:
        notes = compliance_notes(
            query if isinstance(query, str) else "",
            text,
            refs,
            intent=intent,
            target_document_names=list(target_document_names or []),
        )
    except Exception:  # noqa: BLE001 - enforcement must not abort the response
        log.exception("compliance notes failed; continuing without notes")
        notes = []

    added = False
    if refs and count_valid_markers(text, valid) == 0:
        text = f"{text}\n\nPrimary evidence: {' '.join(_prioritized_markers(refs))}".strip()
        added = True

    if notes:
        block = "\n".join(["### Evidence Notes", *(f"- {n}" for n in notes)])
        text = f"{text}\n\n{block}".strip()

    evidence = build_evidence_block(refs)
    if evidence:
        text = f"{text}\n\n{evidence}".strip()

    return ContractOutcome(
        text=text,
        citations=dedupe_citations(refs),
        notes=notes,
        primary_evidence_added=added,
    )
