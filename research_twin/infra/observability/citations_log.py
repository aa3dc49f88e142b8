from __future__ import annotations

import logging
from collections.abc import Sequence

from research_twin.domain.evidence import ContractOutcome, EvidenceReference

_log = logging.getLogger(__name__)


def log_citation_event(
    question: str, outcome: ContractOutcome, refs: Sequence[EvidenceReference]
) -> None:
    """Log the evidence contract outcome for one answer.

    Parameters
    ----------
    question : str
        The input question asked.
    outcome : ContractOutcome
        Result of contract enforcement on the model answer.
    refs : Sequence[EvidenceReference]
        References offered to the model, in marker order.
    """
    _log.info(
        "citation_event: refs=%d citations=%d primary_added=%s notes=%d markers=%s q=%r",
        len(refs),
        len(outcome.citations),
        outcome.primary_evidence_added,
        len(outcome.notes),
        [r.marker for r in refs],
        (question or "")[:80],
    )
