from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import typer

from research_twin.application.use_cases.answer import AnswerService
from research_twin.application.use_cases.corpus import CorpusService
from research_twin.application.use_cases.retrieval import Retriever
from research_twin.core.settings import AppSettings, get_settings
from research_twin.domain.chunking import strip_html_to_text
from research_twin.domain.document import SOURCE_ROLES, DocumentMetadata
from research_twin.domain.evidence import build_references
from research_twin.exceptions import ConfigurationError
from research_twin.infra.embeddings.factory import SafeEmbedder, build_embeddings
from research_twin.infra.llm.providers import build_llm
from research_twin.infra.store.json_store import JsonFileStore
from research_twin.logging_setup import setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Research twin RAG tools")

TEXT_SUFFIXES = {".txt", ".md"}
HTML_SUFFIXES = {".html", ".htm"}


@dataclass
class Services:
    corpus: CorpusService
    retriever: Retriever
    settings: AppSettings

    def answerer(self) -> AnswerService:
        return AnswerService(
            corpus=self.corpus,
            retriever=self.retriever,
            llm=build_llm(self.settings.llm),
        )


def build_services(settings: AppSettings | None = None) -> Services:
    settings = settings or get_settings()
    store = JsonFileStore(settings.store.data_dir)
    embedder = SafeEmbedder(build_embeddings(settings.embeddings))
    corpus = CorpusService(
        store=store,
        embedder=embedder,
        chunking=settings.chunking,
        dedup=settings.dedup,
    )
    retriever = Retriever(store=store, embedder=embedder, settings=settings.retrieval)
    return Services(corpus=corpus, retriever=retriever, settings=settings)


def _namespace(value: str | None) -> str:
    return (value or get_settings().store.default_namespace).strip()


def _emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("ingest")
def ingest(
    paths: list[Path] = typer.Argument(..., help="Text, Markdown or HTML files."),  # noqa: B008
    namespace: str = typer.Option(None, "--namespace", "-n", help="Target namespace."),
    role: str = typer.Option(None, help="publication | thesis | web | other (inferred if omitted)."),
    source_type: str = typer.Option("upload", help="upload | crawl"),
    title: str = typer.Option(None, help="Document title."),
    venue: str = typer.Option(None, help="Publication venue."),
    year: str = typer.Option(None, help="Publication year."),
) -> None:
    """Chunk, embed and store documents; same-named documents are replaced."""
    setup_logging(logging.INFO)
    if role is not None and role.strip().lower() not in SOURCE_ROLES:
        raise ConfigurationError(f"unknown role: {role}")
    if source_type not in ("upload", "crawl"):
        raise ConfigurationError(f"unknown source type: {source_type}")

    svc = build_services()
    ns = _namespace(namespace)
    metadata = DocumentMetadata(title=title, venue=venue, year=year)

    for path in paths:
        if not path.is_file():
            raise ConfigurationError(f"file not found: {path}")
        suffix = path.suffix.lower()
        if suffix not in TEXT_SUFFIXES | HTML_SUFFIXES:
            typer.echo(f"skip {path.name}: unsupported file type {suffix or '(none)'}")
            continue
        raw = path.read_text(encoding="utf-8", errors="replace")
        text = strip_html_to_text(raw) if suffix in HTML_SUFFIXES else raw
        doc = svc.corpus.ingest_document(
            ns,
            path.name,
            text,
            source_type=source_type,  # type: ignore[arg-type]
            source_ref=str(path),
            source_role=role,
            metadata=metadata,
        )
        typer.echo(
            f"{doc.status.upper()}: {doc.file_name} role={doc.source_role} "
            f"chunks={doc.document_count} → {ns}"
        )


@app.command("delete")
def delete(
    names: list[str] = typer.Argument(..., help="File names to delete."),  # noqa: B008
    namespace: str = typer.Option(None, "--namespace", "-n"),
) -> None:
    setup_logging(logging.INFO)
    count = build_services().corpus.delete_documents(_namespace(namespace), names)
    typer.echo(f"deleted {count} document(s)")


@app.command("list")
def list_cmd(
    namespace: str = typer.Option(None, "--namespace", "-n"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List active and failed documents of a namespace."""
    setup_logging(logging.ERROR if as_json else logging.INFO)
    docs = build_services().corpus.list_documents(_namespace(namespace))
    if as_json:
        _emit_json(
            [
                {
                    "fileName": d.file_name,
                    "status": d.status,
                    "sourceRole": d.source_role,
                    "chunks": d.document_count,
                    "title": d.title,
                    "uploadedAt": d.uploaded_at,
                }
                for d in docs
            ]
        )
        raise typer.Exit()
    if not docs:
        typer.echo("No documents.")
        return
    for d in docs:
        typer.echo(f"{d.file_name}  [{d.source_role}/{d.status}]  chunks={d.document_count}")


@app.command("retrieve")
def retrieve_cmd(
    query: str = typer.Argument(..., help="Query text"),
    namespace: str = typer.Option(None, "--namespace", "-n"),
    k: int = typer.Option(None, help="Number of chunks (default: RAG_TOP_K)"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the evidence set an answer would be built from."""
    setup_logging(logging.ERROR if as_json else logging.INFO)
    svc = build_services()
    ns = _namespace(namespace)
    result = svc.retriever.retrieve(ns, query, top_k=k)
    refs = build_references(result.chunks, svc.corpus.list_documents(ns))

    if as_json:
        _emit_json(
            {
                "intent": result.intent,
                "targets": result.target_document_names,
                "notes": result.notes,
                "chunks": [
                    {
                        "marker": r.marker,
                        "label": r.source_label,
                        "title": r.title,
                        "source": c.source_name,
                        "chunkId": c.id,
                        "text": c.text,
                    }
                    for r, c in zip(refs, result.chunks, strict=True)
                ],
            }
        )
        raise typer.Exit()

    typer.echo(f"intent={result.intent}")
    for note in result.notes:
        typer.echo(f"  note: {note}")
    if not result.chunks:
        typer.echo("No evidence.")
        return
    for r, c in zip(refs, result.chunks, strict=True):
        typer.echo(f"[{r.marker}] {r.source_label} | {r.title}  ({c.source_name}#{c.chunk_index})")
        typer.echo(c.short(600))
        typer.echo("-" * 80)


@app.command("ask")
def ask(
    question: str = typer.Argument(..., help="Question"),
    namespace: str = typer.Option(None, "--namespace", "-n"),
    k: int = typer.Option(None, help="Number of evidence chunks"),
) -> None:
    setup_logging(logging.WARNING)
    result = build_services().answerer().answer(_namespace(namespace), question, top_k=k)
    typer.echo(result.response_text)
    if result.suggested_followups:
        typer.echo("\nFollow-ups:")
        for q in result.suggested_followups:
            typer.echo(f"- {q}")


def main() -> int:
    try:
        app()
        return 0
    except ConfigurationError as ce:
        typer.secho(f"Config error: {ce}", fg=typer.colors.RED)
        return 2
    except Exception as e:  # noqa: BLE001
        typer.secho(f"Unexpected error: {e}", fg=typer.colors.RED)
        return 1


if __name__ == "__main__":
    sys.exit(main())
