from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from research_twin.application.ports.embeddings_port import EmbedderPort
from research_twin.application.ports.store_port import StorePort
from research_twin.core.settings import ChunkingSettings, DedupSettings
from research_twin.domain.catalog import (
    CANONICAL_PUBLICATIONS,
    CanonicalPublication,
    with_canonical_metadata,
)
from research_twin.domain.chunking import chunk_text, normalize_extracted_text
from research_twin.domain.document import (
    Chunk,
    Document,
    DocumentMetadata,
    FileType,
    SourceRole,
    SourceType,
    StoreSnapshot,
    infer_file_type,
    infer_source_role,
    resolve_paper_key,
)
from research_twin.domain.records import normalize_metadata, normalize_role
from research_twin.domain.redundancy import annotate_thesis_redundancy
from research_twin.exceptions import IngestionError

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class CorpusService:
    """Ingestion, deletion and listing for namespaced corpora.

    Every write is a whole-namespace read-modify-write cycle. Redundancy flags are
    recomputed before the snapshot is persisted, and writers to the same namespace
    are serialized by a per-namespace lock.
    """

    store: StorePort
    embedder: EmbedderPort | None = None
    chunking: ChunkingSettings = field(default_factory=ChunkingSettings)
    dedup: DedupSettings = field(default_factory=DedupSettings)
    catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS

    def __post_init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, namespace_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(namespace_id)
            if lock is None:
                lock = self._locks[namespace_id] = threading.Lock()
            return lock

    def _embed(self, text: str) -> list[float] | None:
        if self.embedder is None:
            return None
        return self.embedder.embed(text)

    def _recompute(self, snapshot: StoreSnapshot, namespace_id: str) -> None:
        annotate_thesis_redundancy(snapshot.chunks, namespace_id, self.dedup.to_config())

    # ---- reads ----

    def list_documents(self, namespace_id: str) -> list[Document]:
        snapshot = self.store.read(namespace_id)
        return [
            d for d in snapshot.documents if d.namespace_id == namespace_id and d.status != "deleted"
        ]

    def list_chunks(self, namespace_id: str) -> list[Chunk]:
        snapshot = self.store.read(namespace_id)
        return [c for c in snapshot.chunks if c.namespace_id == namespace_id]

    # ---- writes ----

    def ingest_document(
        self,
        namespace_id: str,
        file_name: str,
        text: str,
        *,
        file_type: FileType | None = None,
        source_type: SourceType = "upload",
        source_ref: str | None = None,
        source_role: SourceRole | str | None = None,
        metadata: DocumentMetadata | dict | None = None,
    ) -> Document:
        """Chunk, embed and store one document, replacing any same-named document.

        A document that yields no chunks is stored with status ``failed``.
        """
        namespace_id = (namespace_id or "").strip()
        file_name = (file_name or "").strip()
        if not namespace_id:
            raise IngestionError("namespace_id must not be empty")
        if not file_name:
            raise IngestionError("file_name must not be empty")

        role = normalize_role(source_role, infer_source_role(file_name, source_type))
        md = normalize_metadata(metadata)
        if role == "publication":
            md = with_canonical_metadata(file_name, md, self.catalog)
        paper_key = resolve_paper_key(file_name, md)
        cfg = self.chunking.for_role(role)

        pieces = chunk_text(normalize_extracted_text(text), cfg.chunk_size, cfg.chunk_overlap)
        document_id = str(uuid.uuid4())
        chunks: list[Chunk] = []
        for index, piece in enumerate(pieces):
            chunks.append(
                Chunk(
                    id=str(uuid.uuid4()),
                    namespace_id=namespace_id,
                    document_id=document_id,
                    text=piece,
                    source_name=file_name,
                    chunk_index=index,
                    source_role=role,
                    embedding=self._embed(piece),
                    paper_key=paper_key,
                    document_title=md.title if md else None,
                )
            )

        document = Document(
            id=document_id,
            namespace_id=namespace_id,
            file_name=file_name,
            file_type=file_type or infer_file_type(file_name),
            status="active" if chunks else "failed",
            uploaded_at=_now_iso(),
            source_type=source_type,
            source_ref=source_ref,
            document_count=len(chunks),
            source_role=role,
            metadata=md,
        )

        with self._lock_for(namespace_id):
            snapshot = self.store.read(namespace_id)
            replaced = {
                d.id
                for d in snapshot.documents
                if d.namespace_id == namespace_id and d.file_name == file_name
            }
            snapshot.documents = [d for d in snapshot.documents if d.id not in replaced]
            snapshot.documents.append(document)
            snapshot.chunks = [c for c in snapshot.chunks if c.document_id not in replaced]
            snapshot.chunks.extend(chunks)
            self._recompute(snapshot, namespace_id)
            self.store.write_all(namespace_id, snapshot)

        log.info(
            "ingested %s into %s: role=%s chunks=%d status=%s replaced=%d",
            file_name,
            namespace_id,
            role,
            len(chunks),
            document.status,
            len(replaced),
        )
        return document

    def delete_documents(self, namespace_id: str, file_names: Iterable[str]) -> int:
        """Soft-delete documents by file name and purge their chunks.

        Returns the number of documents marked deleted.
        """
        names = {n for n in file_names if n}
        if not names:
            return 0
        with self._lock_for(namespace_id):
            snapshot = self.store.read(namespace_id)
            doomed = {
                d.id
                for d in snapshot.documents
                if d.namespace_id == namespace_id and d.file_name in names
            }
            if not doomed:
                return 0
            snapshot.documents = [
                replace(d, status="deleted") if d.id in doomed else d for d in snapshot.documents
            ]
            snapshot.chunks = [c for c in snapshot.chunks if c.document_id not in doomed]
            # Removing a publication can clear thesis flags that pointed at it
            self._recompute(snapshot, namespace_id)
            self.store.write_all(namespace_id, snapshot)
        log.info("deleted %d document(s) from %s", len(doomed), namespace_id)
        return len(doomed)
