from __future__ import annotations

import copy

from research_twin.domain.document import StoreSnapshot


class InMemoryStore:
    """Process-local store; snapshots are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, StoreSnapshot] = {}
        self.writes = 0

    def read(self, namespace_id: str) -> StoreSnapshot:
        return copy.deepcopy(self._data.get(namespace_id, StoreSnapshot()))

    def write_all(self, namespace_id: str, snapshot: StoreSnapshot) -> None:
        self._data[namespace_id] = copy.deepcopy(snapshot)
        self.writes += 1
