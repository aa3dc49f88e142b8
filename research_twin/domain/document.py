from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Literal

SourceRole = Literal["publication", "thesis", "web", "other"]
FileType = Literal["pdf", "docx", "txt"]
DocumentStatus = Literal["active", "failed", "deleted"]
SourceType = Literal["upload", "crawl"]

SOURCE_ROLES: tuple[SourceRole, ...] = ("publication", "thesis", "web", "other")

_WS = re.compile(r"\s+")
_EXT = re.compile(r"\.[a-z0-9]{2,6}$", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_THESIS_NAME = re.compile(r"thesis|dissertation", re.IGNORECASE)


def normalize_text_for_hash(text: str) -> str:
    return _WS.sub(" ", (text or "").lower()).strip()


def text_hash(text: str) -> str:
    """SHA-1 over lowercased, whitespace-collapsed text (exact-duplicate key)."""
    return hashlib.sha1(normalize_text_for_hash(text).encode("utf-8")).hexdigest()


def normalize_paper_key(value: str) -> str:
    s = _EXT.sub("", (value or "").lower())
    return _WS.sub(" ", _NON_ALNUM.sub(" ", s)).strip()


def infer_source_role(file_name: str, source_type: SourceType) -> SourceRole:
    if source_type == "crawl":
        return "web"
    if _THESIS_NAME.search(file_name or ""):
        return "thesis"
    return "publication"


def infer_file_type(file_name: str) -> FileType:
    lower = (file_name or "").lower()
    if lower.endswith(".pdf"):
        return "pdf"
    if lower.endswith(".docx"):
        return "docx"
    return "txt"


@dataclass(frozen=True)
class DocumentMetadata:
    title: str | None = None
    year: str | None = None
    venue: str | None = None
    chapter: str | None = None
    section: str | None = None
    subsection: str | None = None
    topics: tuple[str, ...] = ()
    canonical_citation: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.title,
                self.year,
                self.venue,
                self.chapter,
                self.section,
                self.subsection,
                self.topics,
                self.canonical_citation,
            )
        )


def resolve_paper_key(file_name: str, metadata: DocumentMetadata | None = None) -> str | None:
    base = (metadata.title if metadata and metadata.title else None) or file_name
    key = normalize_paper_key(base)
    return key or None


@dataclass(frozen=True)
class Document:
    """One ingested source unit. Only ``status`` ever changes after creation."""

    id: str
    namespace_id: str
    file_name: str
    file_type: FileType
    status: DocumentStatus
    uploaded_at: str
    source_type: SourceType
    document_count: int
    source_role: SourceRole
    source_ref: str | None = None
    metadata: DocumentMetadata | None = None

    @property
    def title(self) -> str | None:
        return self.metadata.title if self.metadata else None


@dataclass
class Chunk:
    """Retrievable text window owned by exactly one Document.

    The redundancy fields are rewritten wholesale by the redundancy engine and are
    only meaningful for thesis chunks.
    """

    id: str
    namespace_id: str
    document_id: str
    text: str
    source_name: str
    chunk_index: int
    source_role: SourceRole
    text_hash: str = ""
    embedding: list[float] | None = None
    paper_key: str | None = None
    document_title: str | None = None
    heading_path: str | None = None
    page_start: int | None = None
    page_end: int | None = None
    redundant_of: str | None = None
    redundancy_score: float | None = None
    is_redundant: bool = False

    def __post_init__(self) -> None:
        if not self.text_hash:
            self.text_hash = text_hash(self.text)

    @property
    def is_redundant_thesis(self) -> bool:
        return self.source_role == "thesis" and self.is_redundant and bool(self.redundant_of)

    def short(self, limit: int = 200) -> str:
        t = (self.text or "").replace("\n", " ")
        return (t[:limit] + ("..." if len(t) > limit else "")) if t else ""


@dataclass
class StoreSnapshot:
    """Whole-namespace state as read from / written to the store."""

    documents: list[Document] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)
