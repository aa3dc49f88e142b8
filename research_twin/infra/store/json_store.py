"""JSON-file backed namespace store with atomic whole-file writes."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path

from research_twin.domain.document import StoreSnapshot
from research_twin.domain.records import snapshot_from_raw, snapshot_to_raw
from research_twin.exceptions import StoreWriteError

log = logging.getLogger(__name__)

FILE_WRITE_RETRIES = 3
_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_file_name(name: str) -> str:
    return _UNSAFE.sub("_", name)


class JsonFileStore:
    def __init__(self, data_dir: Path) -> None:
        self._root = Path(data_dir) / "rag"

    def path_for(self, namespace_id: str) -> Path:
        return self._root / f"{sanitize_file_name(namespace_id)}.json"

    def read(self, namespace_id: str) -> StoreSnapshot:
        path = self.path_for(namespace_id)
        if not path.exists():
            return StoreSnapshot()
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("store: falling back for unreadable JSON file %s (%s)", path, e)
            return StoreSnapshot()

        snapshot, dropped = snapshot_from_raw(raw)
        if dropped:
            log.debug("store[%s]: dropped %d malformed records", namespace_id, dropped)
        # Records of other namespaces never leak through a misplaced file
        snapshot.documents = [d for d in snapshot.documents if d.namespace_id == namespace_id]
        snapshot.chunks = [c for c in snapshot.chunks if c.namespace_id == namespace_id]
        return snapshot

    def write_all(self, namespace_id: str, snapshot: StoreSnapshot) -> None:
        path = self.path_for(namespace_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot_to_raw(snapshot), ensure_ascii=False, indent=2)

        for attempt in range(FILE_WRITE_RETRIES):
            try:
                fd, tmp = tempfile.mkstemp(prefix=f"{path.name}.", suffix=".tmp", dir=path.parent)
                try:
                    with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                        f.write(payload)
                    os.replace(tmp, path)
                finally:
                    if os.path.exists(tmp):
                        os.unlink(tmp)
                return
            except OSError as e:
                if attempt == FILE_WRITE_RETRIES - 1:
                    raise StoreWriteError(f"could not write {path}: {e}") from e
                log.warning("store: write attempt %d for %s failed (%s)", attempt + 1, path, e)
                time.sleep(0.05 * (attempt + 1))
