from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from common.errors import DegenerateVector, DimensionMismatch
from common.logger import get_logger
from ingestion.document_models import EmbeddedChunk

log = get_logger(__name__)


def record_id(paper_id: str, chunk_index: int) -> str:
    return f"{paper_id}_chunk_{chunk_index}"


@dataclass
class StoredRecord:
    id: str
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_chunk(cls, chunk: EmbeddedChunk) -> "StoredRecord":
        return cls(
            id=record_id(chunk.paper_id, chunk.chunk_index),
            text=chunk.text,
            embedding=list(chunk.embedding),
            metadata=dict(chunk.metadata),
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StoredRecord":
        return cls(
            id=d["id"],
            text=d["text"],
            embedding=list(d["embedding"]),
            metadata=dict(d.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "embedding": self.embedding,
            "metadata": self.metadata,
        }


@dataclass
class ScoredRecord(StoredRecord):
    score: float = 0.0


def cosine_scores(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """dot(a, b) / (|a| |b|) of ``query`` against every row of ``matrix``."""
    q_norm = np.linalg.norm(query)
    if q_norm == 0:
        raise DegenerateVector("Query vector has zero magnitude")
    row_norms = np.linalg.norm(matrix, axis=1)
    if np.any(row_norms == 0):
        raise DegenerateVector("A stored vector has zero magnitude")
    return (matrix @ query) / (row_norms * q_norm)


class VectorStore(ABC):
    """
    Keyed collection of embedded chunks with brute-force cosine search.

    Subclasses only decide where the collection lives (``_load`` / ``_save``).
    Every public call reads the whole collection, mutates it, and writes it
    back under one lock, so a single store instance is a single writer.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._opened = False

    # ---- lifecycle ------------------------------------------------------------

    def open(self) -> "VectorStore":
        self._opened = True
        return self

    def flush(self) -> None:
        """Make pending state durable. No-op for stores that write through."""

    def close(self) -> None:
        if self._opened:
            self.flush()
        self._opened = False

    def __enter__(self) -> "VectorStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- storage hooks --------------------------------------------------------

    @abstractmethod
    def _load(self) -> "OrderedDict[str, StoredRecord]":
        ...

    @abstractmethod
    def _save(self, records: "OrderedDict[str, StoredRecord]") -> None:
        ...

    # ---- operations -----------------------------------------------------------

    @property
    def dimension(self) -> Optional[int]:
        with self._lock:
            return self._dimension_of(self._load())

    @staticmethod
    def _dimension_of(records: "OrderedDict[str, StoredRecord]") -> Optional[int]:
        for r in records.values():
            return len(r.embedding)
        return None

    def upsert(self, records: Iterable[StoredRecord | EmbeddedChunk]) -> int:
        """Insert or replace by id; returns the number of records written."""
        batch = [
            r if isinstance(r, StoredRecord) else StoredRecord.from_chunk(r)
            for r in records
        ]
        if not batch:
            return 0

        with self._lock:
            data = self._load()
            expected = self._dimension_of(data) or len(batch[0].embedding)
            for r in batch:
                if len(r.embedding) != expected:
                    raise DimensionMismatch(expected, len(r.embedding))
                if not np.any(np.asarray(r.embedding, dtype=float)):
                    raise DegenerateVector(f"Record {r.id} has a zero-magnitude embedding")
            for r in batch:
                # assignment to an existing key keeps its position
                data[r.id] = r
            self._save(data)
            log.info("Upserted %d records (%d total)", len(batch), len(data))
        return len(batch)

    def search(self, query_vector: Sequence[float], top_k: int = 5) -> List[ScoredRecord]:
        with self._lock:
            records = list(self._load().values())
        if not records or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        dim = len(records[0].embedding)
        if query.shape != (dim,):
            raise DimensionMismatch(dim, int(query.size))

        matrix = np.asarray([r.embedding for r in records], dtype=float)
        scores = cosine_scores(matrix, query)
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            ScoredRecord(
                id=records[i].id,
                text=records[i].text,
                embedding=records[i].embedding,
                metadata=records[i].metadata,
                score=float(scores[i]),
            )
            for i in order
        ]

    def stats(self) -> Dict[str, int]:
        with self._lock:
            data = self._load()
            papers = {r.metadata.get("paperId") for r in data.values()}
            return {"totalChunks": len(data), "totalPapers": len(papers)}

    def clear(self) -> None:
        with self._lock:
            self._save(OrderedDict())
        log.info("Vector store cleared")
