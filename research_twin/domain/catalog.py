"""Canonical publication catalog.

Static title/venue/year records consulted read-only when rendering citations and
when enriching metadata of uploaded publications.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from research_twin.domain.document import DocumentMetadata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_EXT = re.compile(r"\.[a-z0-9]{2,6}$", re.IGNORECASE)
_SEPARATORS = re.compile(r"[_-]+")

MIN_FUZZY_ALIAS_CHARS = 6


@dataclass(frozen=True)
class CanonicalPublication:
    title: str
    venue: str
    year: str
    aliases: tuple[str, ...] = ()

    @property
    def citation(self) -> str:
        return f"{self.title} ({self.venue} {self.year})"


CANONICAL_PUBLICATIONS: tuple[CanonicalPublication, ...] = (
    CanonicalPublication(
        title="Improved Cross-Dataset Facial Expression Recognition by Handling Data Imbalance and Feature Confusion",
        venue="ECCVW",
        year="2022",
        aliases=("difc", "DIFC_ECCVW_2022.pdf"),
    ),
    CanonicalPublication(
        title="A Simple Signal for Domain Shift",
        venue="ICCVW",
        year="2023",
        aliases=("dss", "DSS_ICCVW_2023.pdf"),
    ),
    CanonicalPublication(
        title="PhISH-Net: Physics Inspired System for High Resolution Underwater Image Enhancement",
        venue="WACV",
        year="2024",
        aliases=("phishnet", "PhishNet_WACV_2024.pdf", "phish-net"),
    ),
    CanonicalPublication(
        title="Effectiveness of Vision Language Models for Open-world Single Image Test Time Adaptation",
        venue="TMLR",
        year="2025",
        aliases=("rosita", "ROSITA_TMLR_2025.pdf"),
    ),
    CanonicalPublication(
        title="SANTA: Source Anchoring Network and Target Alignment for Continual Test Time Adaptation",
        venue="TMLR",
        year="2023",
        aliases=("santa", "SANTA_TMLR_2023.pdf"),
    ),
    CanonicalPublication(
        title="Similar Class Style Augmentation for Efficient Cross-Domain Few-Shot Learning",
        venue="CVPRW",
        year="2023",
        aliases=("ssabns", "SSABNS_CVPRW_2023.pdf"),
    ),
    CanonicalPublication(
        title="Segmentation Assisted Incremental Test Time Adaptation in an Open World",
        venue="BMVC",
        year="2025",
        aliases=("segassist", "SegAssist_BMVC_2025.pdf"),
    ),
    CanonicalPublication(
        title="pSTarC: Pseudo Source Guided Target Clustering for Fully Test-Time Adaptation",
        venue="WACV",
        year="2024",
        aliases=("pstarc", "pSTarC_WACV_2024.pdf"),
    ),
    CanonicalPublication(
        title="JumpStyle: A Framework for Data-Efficient Online Adaptation",
        venue="ICLRW",
        year="2023",
        aliases=("jumpstyle",),
    ),
)


def normalize_catalog_text(value: str) -> str:
    return " ".join(_NON_ALNUM.sub(" ", (value or "").lower()).split())


def _aliases(pub: CanonicalPublication) -> list[str]:
    return [a for a in (normalize_catalog_text(x) for x in (pub.title, *pub.aliases)) if a]


def resolve_by_file_name(
    file_name: str, catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS
) -> CanonicalPublication | None:
    normalized = normalize_catalog_text(file_name)
    stem = normalize_catalog_text(_SEPARATORS.sub(" ", _EXT.sub("", file_name or "")))
    for pub in catalog:
        for alias in _aliases(pub):
            if alias in (normalized, stem):
                return pub
            if len(alias) >= MIN_FUZZY_ALIAS_CHARS and (alias in normalized or alias in stem):
                return pub
    return None


def resolve_from_candidates(
    candidates: Iterable[str], catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS
) -> CanonicalPublication | None:
    """First catalog entry matching any candidate string, candidates tried in order."""
    normalized = [c for c in (normalize_catalog_text(x) for x in candidates) if c]
    for candidate in normalized:
        for pub in catalog:
            for alias in _aliases(pub):
                if candidate == alias:
                    return pub
                if len(alias) >= MIN_FUZZY_ALIAS_CHARS and alias in candidate:
                    return pub
                if len(candidate) >= MIN_FUZZY_ALIAS_CHARS and candidate in alias:
                    return pub
    return None


def with_canonical_metadata(
    file_name: str,
    metadata: DocumentMetadata | None,
    catalog: Sequence[CanonicalPublication] = CANONICAL_PUBLICATIONS,
) -> DocumentMetadata | None:
    """Fill missing title/venue/year/citation from the catalog entry matching file_name."""
    pub = resolve_by_file_name(file_name, catalog)
    if pub is None:
        return metadata
    base = metadata or DocumentMetadata()
    merged = replace(
        base,
        title=base.title or pub.title,
        year=base.year or pub.year,
        venue=base.venue or pub.venue,
        canonical_citation=base.canonical_citation or pub.citation,
    )
    return None if merged.is_empty() else merged
