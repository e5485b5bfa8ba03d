from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Optional

from common.logger import get_logger
from vectorstore.base import StoredRecord, VectorStore
from vectorstore.json_store import read_document, write_document

log = get_logger(__name__)


class InMemoryVectorStore(VectorStore):
    """
    Records live in memory. With ``snapshot_path`` set, the collection is
    loaded on ``open()``, snapshotted every ``snapshot_every`` writes, and
    flushed on ``close()``, using the same JSON layout as the file store.
    """

    def __init__(self, snapshot_path: Path | str | None = None, snapshot_every: int = 1):
        super().__init__()
        self.snapshot_path: Optional[Path] = Path(snapshot_path) if snapshot_path else None
        self.snapshot_every = max(1, snapshot_every)
        self._records: "OrderedDict[str, StoredRecord]" = OrderedDict()
        self._dirty_writes = 0

    def open(self) -> "InMemoryVectorStore":
        with self._lock:
            if self.snapshot_path is not None:
                self._records = read_document(self.snapshot_path)
                log.info("Loaded %d records from %s", len(self._records), self.snapshot_path)
            self._dirty_writes = 0
        super().open()
        return self

    def flush(self) -> None:
        with self._lock:
            if self.snapshot_path is None or not self._dirty_writes:
                return
            write_document(self.snapshot_path, self._records)
            self._dirty_writes = 0

    def _load(self) -> "OrderedDict[str, StoredRecord]":
        return self._records

    def _save(self, records: "OrderedDict[str, StoredRecord]") -> None:
        self._records = records
        self._dirty_writes += 1
        if self._dirty_writes >= self.snapshot_every:
            self.flush()
