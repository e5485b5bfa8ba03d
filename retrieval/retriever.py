from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from common.config import yaml_config
from common.logger import get_logger
from models.embedder import Embedder
from vectorstore.base import VectorStore

log = get_logger(__name__)


@dataclass(frozen=True)
class ChunkSource:
    title: str
    authors: str
    published: str
    pdfUrl: str
    chunkIndex: int


@dataclass(frozen=True)
class RetrievedChunk:
    rank: int
    text: str
    score: float
    source: ChunkSource

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Retriever:
    """Embeds a question and returns the top-k stored chunks with provenance."""

    def __init__(self, store: VectorStore, embedder: Embedder, k: Optional[int] = None):
        self.store = store
        self.embedder = embedder
        self.k = yaml_config.retrieval.k if k is None else k

    def retrieve(self, question: str, top_k: Optional[int] = None) -> List[RetrievedChunk]:
        top_k = self.k if top_k is None else top_k
        if self.store.stats()["totalChunks"] == 0:
            log.warning("Vector store is empty, nothing to retrieve")
            return []

        query_vector = self.embedder.embed_query(question)
        results = self.store.search(query_vector, top_k)
        log.info("Retrieved %d chunks for '%s'", len(results), question[:80])

        return [
            RetrievedChunk(
                rank=rank,
                text=r.text,
                score=round(r.score, 4),
                source=ChunkSource(
                    title=r.metadata.get("title", ""),
                    authors=r.metadata.get("authors", ""),
                    published=r.metadata.get("published", "Unknown"),
                    pdfUrl=r.metadata.get("pdfUrl", ""),
                    chunkIndex=r.metadata.get("chunkIndex", 0),
                ),
            )
            for rank, r in enumerate(results, start=1)
        ]
