from __future__ import annotations

import math
import re
from collections.abc import Sequence

_WORD_SPLIT = re.compile(r"\W+")
_SENTENCE_SPLIT = re.compile(r"[.!?]\s+|\n+")
_WS = re.compile(r"\s+")
_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9 ]")

NGRAM_SIZE = 5
MIN_SENTENCE_CHARS = 20


def cosine(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity; 0.0 for empty, mismatched-length or zero-norm inputs."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    na = sum(x * x for x in a)
    nb = sum(y * y for y in b)
    if not na or not nb:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


def keyword_score(query: str, candidate: str) -> float:
    """Fraction of candidate tokens that also occur in the query."""
    query_terms = {t for t in _WORD_SPLIT.split((query or "").lower()) if t}
    if not query_terms:
        return 0.0
    candidate_terms = _WORD_SPLIT.split((candidate or "").lower())
    hits = sum(1 for term in candidate_terms if term in query_terms)
    return hits / max(len(candidate_terms), 1)


def word_ngrams(text: str, n: int = NGRAM_SIZE) -> set[str]:
    terms = [t for t in _WORD_SPLIT.split((text or "").lower()) if len(t) > 1]
    if len(terms) < n:
        return {" ".join(terms)} if terms else set()
    return {" ".join(terms[i : i + n]) for i in range(len(terms) - n + 1)}


def jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    inter = len(a & b)
    union = len(a) + len(b) - inter
    return inter / union if union else 0.0


def lexical_overlap(a: str, b: str) -> float:
    """Jaccard overlap of word 5-gram sets."""
    return jaccard(word_ngrams(a), word_ngrams(b))


def normalize_sentence(text: str) -> str:
    s = _WS.sub(" ", (text or "").lower())
    return _NON_ALNUM_SPACE.sub("", s).strip()


def split_sentences(text: str) -> list[str]:
    sentences = (normalize_sentence(s) for s in _SENTENCE_SPLIT.split(text or ""))
    return [s for s in sentences if len(s) >= MIN_SENTENCE_CHARS]


def novel_sentence_ratio(thesis_text: str, publication_text: str) -> float:
    """Share of qualifying thesis sentences absent (verbatim, normalized) from the publication."""
    thesis_sentences = split_sentences(thesis_text)
    if not thesis_sentences:
        return 0.0
    publication_sentences = set(split_sentences(publication_text))
    novel = sum(1 for s in thesis_sentences if s not in publication_sentences)
    return novel / len(thesis_sentences)
