"""Domain layer: pure types and logic (no I/O, no external libs).

Keep this layer free of side-effects. Define entities and small pure helpers only.
"""

from .catalog import CANONICAL_PUBLICATIONS, CanonicalPublication
from .chunking import ChunkingConfig, chunk_text
from .document import Chunk, Document, DocumentMetadata, StoreSnapshot, text_hash
from .evidence import EvidenceReference, build_references, enforce_contract
from .intent import IntentClassification, classify_intent
from .redundancy import RedundancyConfig, annotate_thesis_redundancy
from .retrieval import RetrievalResult
from .similarity import cosine, lexical_overlap, novel_sentence_ratio

__all__ = [
    "CANONICAL_PUBLICATIONS",
    "CanonicalPublication",
    "Chunk",
    "ChunkingConfig",
    "Document",
    "DocumentMetadata",
    "EvidenceReference",
    "IntentClassification",
    "RedundancyConfig",
    "RetrievalResult",
    "StoreSnapshot",
    "annotate_thesis_redundancy",
    "build_references",
    "chunk_text",
    "classify_intent",
    "cosine",
    "enforce_contract",
    "lexical_overlap",
    "novel_sentence_ratio",
    "text_hash",
]
