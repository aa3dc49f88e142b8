"""Normalization of persisted records.

Stored JSON is treated as untrusted: every record is normalized on read and
malformed entries are dropped instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from research_twin.domain.document import (
    SOURCE_ROLES,
    Chunk,
    Document,
    DocumentMetadata,
    SourceRole,
    StoreSnapshot,
    infer_source_role,
    resolve_paper_key,
    text_hash,
)

EPOCH_ISO = "1970-01-01T00:00:00.000Z"


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return math.floor(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def normalize_role(value: Any, fallback: SourceRole = "other") -> SourceRole:
    if isinstance(value, str) and value.strip().lower() in SOURCE_ROLES:
        return value.strip().lower()  # type: ignore[return-value]
    return fallback


def normalize_metadata(raw: Any) -> DocumentMetadata | None:
    if isinstance(raw, DocumentMetadata):
        return None if raw.is_empty() else raw
    if not isinstance(raw, Mapping):
        return None
    topics_raw = raw.get("topics")
    topics = (
        tuple(t for t in (_text(x) for x in topics_raw) if t)
        if isinstance(topics_raw, list | tuple)
        else ()
    )
    md = DocumentMetadata(
        title=_text(raw.get("title")),
        year=_text(raw.get("year")),
        venue=_text(raw.get("venue")),
        chapter=_text(raw.get("chapter")),
        section=_text(raw.get("section")),
        subsection=_text(raw.get("subsection")),
        topics=topics,
        canonical_citation=_text(raw.get("canonicalCitation")),
    )
    return None if md.is_empty() else md


def normalize_document(raw: Any) -> Document | None:
    if not isinstance(raw, Mapping):
        return None
    doc_id = _text(raw.get("id"))
    namespace_id = _text(raw.get("namespaceId"))
    file_name = _text(raw.get("fileName"))
    if not doc_id or not namespace_id or not file_name:
        return None

    file_type = raw.get("fileType") if raw.get("fileType") in ("pdf", "docx", "txt") else "txt"
    status = raw.get("status") if raw.get("status") in ("active", "failed", "deleted") else "failed"
    source_type = "crawl" if raw.get("sourceType") == "crawl" else "upload"
    return Document(
        id=doc_id,
        namespace_id=namespace_id,
        file_name=file_name,
        file_type=file_type,
        status=status,
        uploaded_at=_text(raw.get("uploadedAt")) or EPOCH_ISO,
        source_type=source_type,
        source_ref=_text(raw.get("sourceRef")),
        document_count=_int(raw.get("documentCount")) or 0,
        source_role=normalize_role(raw.get("sourceRole"), infer_source_role(file_name, source_type)),
        metadata=normalize_metadata(raw.get("metadata")),
    )


def normalize_chunk(raw: Any, documents_by_id: Mapping[str, Document]) -> Chunk | None:
    if not isinstance(raw, Mapping):
        return None
    chunk_id = _text(raw.get("id"))
    namespace_id = _text(raw.get("namespaceId"))
    document_id = _text(raw.get("documentId"))
    text = _text(raw.get("text"))
    source_name = _text(raw.get("sourceName"))
    if not chunk_id or not namespace_id or not document_id or not text or not source_name:
        return None

    doc = documents_by_id.get(document_id)
    embedding_raw = raw.get("embedding")
    embedding: list[float] | None = None
    if isinstance(embedding_raw, list):
        embedding = [f for f in (_float(x) for x in embedding_raw) if f is not None] or None

    is_redundant = raw.get("isRedundant")
    return Chunk(
        id=chunk_id,
        namespace_id=namespace_id,
        document_id=document_id,
        text=text,
        source_name=source_name,
        chunk_index=_int(raw.get("chunkIndex")) or 0,
        source_role=normalize_role(raw.get("sourceRole"), doc.source_role if doc else "other"),
        text_hash=_text(raw.get("textHash")) or text_hash(text),
        embedding=embedding,
        paper_key=_text(raw.get("paperKey"))
        or resolve_paper_key(source_name, doc.metadata if doc else None),
        document_title=_text(raw.get("documentTitle")) or (doc.title if doc else None),
        heading_path=_text(raw.get("headingPath")),
        page_start=_int(raw.get("pageStart")),
        page_end=_int(raw.get("pageEnd")),
        redundant_of=_text(raw.get("redundantOf")),
        redundancy_score=_float(raw.get("redundancyScore")),
        is_redundant=is_redundant if isinstance(is_redundant, bool) else False,
    )


def snapshot_from_raw(raw: Any) -> tuple[StoreSnapshot, int]:
    """Normalize a raw ``{"documents": [...], "chunks": [...]}`` payload.

    Returns the snapshot and the number of records dropped as malformed.
    """
    raw = raw if isinstance(raw, Mapping) else {}
    raw_docs = raw.get("documents") if isinstance(raw.get("documents"), list) else []
    raw_chunks = raw.get("chunks") if isinstance(raw.get("chunks"), list) else []

    documents = [d for d in (normalize_document(x) for x in raw_docs) if d is not None]
    by_id = {d.id: d for d in documents}
    chunks = [c for c in (normalize_chunk(x, by_id) for x in raw_chunks) if c is not None]
    dropped = (len(raw_docs) - len(documents)) + (len(raw_chunks) - len(chunks))
    return StoreSnapshot(documents=documents, chunks=chunks), dropped


def _prune(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None and v != () and v != []}


def metadata_to_raw(md: DocumentMetadata | None) -> dict[str, Any] | None:
    if md is None:
        return None
    return _prune(
        {
            "title": md.title,
            "year": md.year,
            "venue": md.venue,
            "chapter": md.chapter,
            "section": md.section,
            "subsection": md.subsection,
            "topics": list(md.topics),
            "canonicalCitation": md.canonical_citation,
        }
    )


def document_to_raw(doc: Document) -> dict[str, Any]:
    return _prune(
        {
            "id": doc.id,
            "namespaceId": doc.namespace_id,
            "fileName": doc.file_name,
            "fileType": doc.file_type,
            "status": doc.status,
            "uploadedAt": doc.uploaded_at,
            "sourceType": doc.source_type,
            "sourceRef": doc.source_ref,
            "documentCount": doc.document_count,
            "sourceRole": doc.source_role,
            "metadata": metadata_to_raw(doc.metadata),
        }
    )


def chunk_to_raw(chunk: Chunk) -> dict[str, Any]:
    return _prune(
        {
            "id": chunk.id,
            "namespaceId": chunk.namespace_id,
            "documentId": chunk.document_id,
            "text": chunk.text,
            "textHash": chunk.text_hash,
            "embedding": chunk.embedding,
            "sourceName": chunk.source_name,
            "chunkIndex": chunk.chunk_index,
            "sourceRole": chunk.source_role,
            "paperKey": chunk.paper_key,
            "documentTitle": chunk.document_title,
            "headingPath": chunk.heading_path,
            "pageStart": chunk.page_start,
            "pageEnd": chunk.page_end,
            "redundantOf": chunk.redundant_of,
            "redundancyScore": chunk.redundancy_score,
            "isRedundant": chunk.is_redundant,
        }
    )


def snapshot_to_raw(snapshot: StoreSnapshot) -> dict[str, Any]:
    return {
        "documents": [document_to_raw(d) for d in snapshot.documents],
        "chunks": [chunk_to_raw(c) for c in snapshot.chunks],
    }
