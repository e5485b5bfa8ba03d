from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from langchain_core.embeddings import Embeddings

from common.config import yaml_config
from common.errors import EmbeddingFailure
from common.logger import get_logger
from ingestion.document_models import Chunk, EmbeddedChunk
from models.embeddings import load_embeddings

log = get_logger(__name__)


class Embedder:
    """
    Turns chunks and questions into vectors through an embedding provider.

    Chunks go out in sub-batches: one provider call per chunk, issued
    concurrently, then a short pause before the next sub-batch so hosted
    providers are not flooded. Any failed call fails the whole batch.
    """

    def __init__(
        self,
        provider: Optional[Embeddings] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        cfg = yaml_config.embeddings
        self.provider = provider or load_embeddings()
        self.batch_size = batch_size or cfg.batch_size
        self.batch_delay = cfg.batch_delay if batch_delay is None else batch_delay
        self._sleep = sleep

    def _embed(self, text: str) -> List[float]:
        try:
            vector = self.provider.embed_query(text)
        except Exception as e:
            raise EmbeddingFailure(f"Embedding provider failed: {e}") from e
        if vector is None or len(vector) == 0:
            raise EmbeddingFailure("Embedding provider returned an empty vector")
        return [float(x) for x in vector]

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)

    def embed_batch(self, chunks: Sequence[Chunk]) -> List[EmbeddedChunk]:
        if not chunks:
            return []
        log.info("Embedding %d chunks in batches of %d", len(chunks), self.batch_size)

        out: List[EmbeddedChunk] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, len(chunks), self.batch_size):
                batch = chunks[start : start + self.batch_size]
                # map() keeps input order and re-raises the first failure
                vectors = list(pool.map(lambda c: self._embed(c.text), batch))
                for chunk, vector in zip(batch, vectors):
                    out.append(
                        EmbeddedChunk(
                            text=chunk.text,
                            metadata=dict(chunk.metadata),
                            embedding=vector,
                        )
                    )
                log.info("Embedded %d/%d chunks", len(out), len(chunks))
                if start + self.batch_size < len(chunks) and self.batch_delay:
                    self._sleep(self.batch_delay)

        dims = {len(c.embedding) for c in out}
        if len(dims) > 1:
            raise EmbeddingFailure(f"Provider returned mixed dimensionalities: {sorted(dims)}")
        log.info("Vector size: %d", dims.pop())
        return out
