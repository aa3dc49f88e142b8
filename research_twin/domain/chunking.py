from __future__ import annotations

import re
from dataclasses import dataclass

from research_twin.domain.document import SourceRole

_MANY_NEWLINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ChunkingConfig:
    chunk_size: int = 900
    chunk_overlap: int = 150


_ROLE_DEFAULTS: dict[str, ChunkingConfig] = {
    "publication": ChunkingConfig(chunk_size=900, chunk_overlap=140),
    "thesis": ChunkingConfig(chunk_size=1200, chunk_overlap=180),
}


def default_chunking_for(role: SourceRole) -> ChunkingConfig:
    return _ROLE_DEFAULTS.get(role, ChunkingConfig())


def normalize_extracted_text(text: str) -> str:
    """Clean text handed over by extractors/crawlers before chunking."""
    t = (text or "").replace("\x00", "").replace("\r\n", "\n")
    return _MANY_NEWLINES.sub("\n\n", t).strip()


def chunk_text(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Split text into overlapping fixed-size character windows.

    The window advances by ``chunk_size - overlap`` (never moving backwards) and the
    last window always ends at the end of the text. Slices are trimmed; empty ones
    are dropped.
    """
    normalized = (text or "").replace("\r\n", "\n").strip()
    if not normalized:
        return []

    size = max(1, int(chunk_size))
    ovl = max(0, int(overlap))
    total = len(normalized)

    chunks: list[str] = []
    start = 0
    while start < total:
        end = min(start + size, total)
        piece = normalized[start:end].strip()
        if piece:
            chunks.append(piece)
        if end >= total:
            break
        # overlap >= size would stall the window; always make progress
        start = max(start + 1, end - ovl)
    return chunks


_HTML_BLOCKS = re.compile(r"<(script|style|noscript)\b[\s\S]*?</\1\s*>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<[^>]+>")
_HTML_ENTITIES = (("&nbsp;", " "), ("&amp;", "&"), ("&lt;", "<"), ("&gt;", ">"))
_WS = re.compile(r"\s+")


def strip_html_to_text(html: str) -> str:
    """Visible text of a crawled page, collapsed to single spaces."""
    t = _HTML_BLOCKS.sub(" ", html or "")
    t = _HTML_TAG.sub(" ", t)
    for entity, repl in _HTML_ENTITIES:
        t = re.sub(re.escape(entity), repl, t, flags=re.IGNORECASE)
    return _WS.sub(" ", t).strip()
