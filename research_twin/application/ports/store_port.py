from __future__ import annotations

from typing import Protocol

from research_twin.domain.document import StoreSnapshot


class StorePort(Protocol):
    """Whole-snapshot persistence of one namespace's documents and chunks.

    ``read`` returns normalized records (malformed ones dropped); ``write_all``
    replaces the namespace state in one step.
    """

    def read(self, namespace_id: str) -> StoreSnapshot:  # pragma: no cover - interface
        ...

    def write_all(self, namespace_id: str, snapshot: StoreSnapshot) -> None:  # pragma: no cover
        ...
