from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional, Sequence

from chains.answer_synthesizer import Answer, AnswerSynthesizer
from common.errors import EmptyCorpus
from common.logger import get_logger
from ingestion.ingest_pipeline import (
    EventSink,
    IngestionPipeline,
    IngestionReport,
    ProgressEvent,
    UploadResult,
)
from models.embedder import Embedder
from retrieval.retriever import Retriever
from vectorstore.base import VectorStore

log = get_logger(__name__)


class ResearchAssistant:
    """
    The operations a request-routing layer exposes: ingest (streamed or
    atomic), upload, ask, stats, clear. The store is owned by the caller and
    shared by the ingestion and query paths.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        llm=None,
        pipeline: Optional[IngestionPipeline] = None,
        synthesizer: Optional[AnswerSynthesizer] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.pipeline = pipeline or IngestionPipeline(store, embedder)
        self.retriever = Retriever(store, embedder)
        if synthesizer is None:
            if llm is None:
                from models.llm import load_llm

                llm = load_llm("llm_qa")
            synthesizer = AnswerSynthesizer(llm)
        self.synthesizer = synthesizer

    @classmethod
    def from_config(cls) -> "ResearchAssistant":
        from vectorstore.factory import open_vector_store

        return cls(store=open_vector_store(), embedder=Embedder())

    def close(self) -> None:
        self.store.close()

    # ---- ingestion --------------------------------------------------------------

    def ingest_stream(
        self,
        query: str,
        max_results: int = 5,
        source: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[ProgressEvent]:
        return self.pipeline.stream(query, max_results, source, cancel=cancel)

    def ingest(
        self,
        query: str,
        max_results: int = 5,
        source: Optional[str] = None,
        on_event: Optional[EventSink] = None,
        parallel: bool = False,
    ) -> IngestionReport:
        if parallel:
            return self.pipeline.ingest_parallel(query, max_results, source)
        return self.pipeline.ingest(query, max_results, source, on_event=on_event)

    def upload(
        self,
        content: bytes,
        title: Optional[str] = None,
        authors: Optional[Sequence[str] | str] = None,
        abstract: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> UploadResult:
        return self.pipeline.ingest_upload(
            content, title=title, authors=authors, abstract=abstract, filename=filename
        )

    # ---- query ------------------------------------------------------------------

    def ask(self, question: str, top_k: Optional[int] = None) -> Answer:
        """Raises ``EmptyCorpus`` when nothing has been ingested yet."""
        if not question.strip():
            raise ValueError("Question is required")
        chunks = self.retriever.retrieve(question, top_k)
        if not chunks:
            raise EmptyCorpus()
        return self.synthesizer.synthesize(question, chunks)

    # ---- admin ------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        return self.store.stats()

    def clear(self) -> None:
        self.store.clear()
