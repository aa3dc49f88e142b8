from __future__ import annotations

import json
from pathlib import Path

from research_twin.domain.document import Chunk, Document, DocumentMetadata, StoreSnapshot
from research_twin.infra.store.json_store import JsonFileStore, sanitize_file_name
from research_twin.infra.store.memory_store import InMemoryStore


def _doc(doc_id: str = "d1", ns: str = "lab") -> Document:
    return Document(
        id=doc_id,
        namespace_id=ns,
        file_name="paper_a.pdf",
        file_type="pdf",
        status="active",
        uploaded_at="2024-05-01T10:00:00.000Z",
        source_type="upload",
        document_count=1,
        source_role="publication",
        metadata=DocumentMetadata(title="Paper A", year="2024", venue="WACV", topics=("tta",)),
    )


def _chunk(doc: Document) -> Chunk:
    return Chunk(
        id="c1",
        namespace_id=doc.namespace_id,
        document_id=doc.id,
        text="Paper A adapts models at test time.",
        source_name=doc.file_name,
        chunk_index=0,
        source_role="publication",
        embedding=[0.5, 0.5],
        paper_key="paper a",
        document_title="Paper A",
    )


def test_round_trip(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    doc = _doc()
    chunk = _chunk(doc)

    store.write_all("lab", StoreSnapshot(documents=[doc], chunks=[chunk]))
    back = store.read("lab")

    assert back.documents == [doc]
    assert back.chunks == [chunk]
    assert store.path_for("lab") == tmp_path / "rag" / "lab.json"


def test_camel_case_on_disk(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    doc = _doc()
    store.write_all("lab", StoreSnapshot(documents=[doc], chunks=[_chunk(doc)]))

    raw = json.loads(store.path_for("lab").read_text(encoding="utf-8"))
    assert raw["documents"][0]["namespaceId"] == "lab"
    assert raw["documents"][0]["sourceRole"] == "publication"
    assert raw["chunks"][0]["textHash"]
    assert "redundantOf" not in raw["chunks"][0]


def test_missing_and_unreadable_files_read_empty(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    assert store.read("nothing") == StoreSnapshot()

    path = store.path_for("broken")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{not json", encoding="utf-8")
    assert store.read("broken") == StoreSnapshot()


def test_malformed_records_are_dropped(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    path = store.path_for("lab")
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "documents": [
            {"id": "d1", "namespaceId": "lab", "fileName": "thesis_final.txt", "status": "weird"},
            {"namespaceId": "lab", "fileName": "no_id.txt"},
            "garbage",
        ],
        "chunks": [
            {
                "id": "c1",
                "namespaceId": "lab",
                "documentId": "d1",
                "text": "Some thesis text.",
                "sourceName": "thesis_final.txt",
                "embedding": [1, "x", 2.5],
                "isRedundant": "yes",
            },
            {"id": "c2", "namespaceId": "lab", "documentId": "d1", "sourceName": "thesis_final.txt"},
            {"id": "c3", "namespaceId": "elsewhere", "documentId": "d1", "text": "t", "sourceName": "s"},
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    snap = store.read("lab")

    assert [d.id for d in snap.documents] == ["d1"]
    doc = snap.documents[0]
    assert doc.status == "failed"
    assert doc.file_type == "txt"
    assert doc.source_role == "thesis"
    assert doc.uploaded_at.startswith("1970-01-01")

    assert [c.id for c in snap.chunks] == ["c1"]
    chunk = snap.chunks[0]
    assert chunk.embedding == [1.0, 2.5]
    assert chunk.is_redundant is False
    assert chunk.source_role == "thesis"
    assert chunk.text_hash


def test_sanitized_namespace_file_name(tmp_path: Path) -> None:
    assert sanitize_file_name("team/alpha beta") == "team_alpha_beta"
    store = JsonFileStore(tmp_path)
    assert store.path_for("team/alpha").name == "team_alpha.json"


def test_memory_store_copies_snapshots() -> None:
    store = InMemoryStore()
    doc = _doc()
    snap = StoreSnapshot(documents=[doc], chunks=[_chunk(doc)])
    store.write_all("lab", snap)

    snap.chunks[0].is_redundant = True
    read = store.read("lab")
    assert read.chunks[0].is_redundant is False
    read.chunks.clear()
    assert len(store.read("lab").chunks) == 1
    assert store.writes == 1
