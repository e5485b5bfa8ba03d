from __future__ import annotations

import os
import tempfile
from collections import OrderedDict
from pathlib import Path

import orjson

from common.config import yaml_config
from common.logger import get_logger
from vectorstore.base import StoredRecord, VectorStore

log = get_logger(__name__)


def read_document(path: Path) -> "OrderedDict[str, StoredRecord]":
    """Load ``{"chunks": [...]}``; a missing file is an empty collection."""
    if not path.exists():
        return OrderedDict()
    raw = orjson.loads(path.read_bytes())
    records: "OrderedDict[str, StoredRecord]" = OrderedDict()
    for item in raw.get("chunks", []):
        rec = StoredRecord.from_dict(item)
        records[rec.id] = rec
    return records


def write_document(path: Path, records: "OrderedDict[str, StoredRecord]") -> None:
    """Write the whole collection to a temp file and swap it in atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = orjson.dumps(
        {"chunks": [r.to_dict() for r in records.values()]},
        option=orjson.OPT_INDENT_2,
    )
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class JsonFileVectorStore(VectorStore):
    """
    Single JSON document on disk, re-read and rewritten on every operation.
    A completed write leaves either the old or the new full collection.
    """

    def __init__(self, path: Path | str | None = None):
        super().__init__()
        self.path = Path(path or yaml_config.vectorstore.path)

    def _load(self) -> "OrderedDict[str, StoredRecord]":
        return read_document(self.path)

    def _save(self, records: "OrderedDict[str, StoredRecord]") -> None:
        write_document(self.path, records)
        log.debug("Saved %d records to %s", len(records), self.path)
