from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from tqdm import tqdm

from common.config import yaml_config
from common.errors import (
    IngestionFailed,
    NoPapersFound,
    ResearchMindError,
    UnusableContent,
)
from common.logger import get_logger
from ingestion.acquisition import Acquirer, Extractor, extract_pdf_text, extract_upload_text
from ingestion.chunkers import chunk_paper
from ingestion.document_models import NO_PDF, Chunk, Paper
from models.embedder import Embedder
from sources.registry import search_papers
from vectorstore.base import VectorStore

log = get_logger(__name__)

Searcher = Callable[[str, int, str], List[Paper]]
EventSink = Callable[["ProgressEvent"], None]

# event types, in the order a run emits them
SEARCH_STARTED = "search_started"
PAPERS_FOUND = "papers_found"
PAPER_DOWNLOADING = "paper_downloading"
PAPER_CHUNKING = "paper_chunking"
PAPER_EMBEDDING = "paper_embedding"
PAPER_INDEXED = "paper_indexed"
PAPER_SKIPPED = "paper_skipped"
FINALIZING = "finalizing"
DONE = "done"
ERROR = "error"


@dataclass
class IngestionReport:
    query: str
    source: str
    found: int
    indexed: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def message(self) -> str:
        return f"Indexed {len(self.indexed)} of {self.found} papers"

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["message"] = self.message
        return d


@dataclass(frozen=True)
class ProgressEvent:
    type: str
    message: str
    progress: int
    stage: Optional[str] = None
    paper_index: Optional[int] = None  # 1-based
    total: Optional[int] = None
    paper_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)
    report: Optional[IngestionReport] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "type": self.type,
            "message": self.message,
            "progress": self.progress,
        }
        for key in ("stage", "paper_index", "total", "paper_id"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.data:
            out["data"] = self.data
        return out


@dataclass(frozen=True)
class UploadResult:
    paper: Paper
    chunks: int
    stats: Dict[str, int]


def _short(title: str, width: int = 45) -> str:
    return title if len(title) <= width else title[:width] + "..."


class IngestionPipeline:
    """
    search -> acquire -> chunk -> embed -> upsert, one paper at a time.

    ``stream`` is the primary contract: a finite, ordered generator of
    ``ProgressEvent``. ``ingest`` drives it and feeds a sink callback;
    ``ingest_parallel`` trades progress visibility for latency. Per-paper
    failures become skips; only corpus-level failures surface as errors.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        acquirer: Optional[Callable[[Paper], Paper]] = None,
        searcher: Searcher = search_papers,
        chunker: Callable[[Paper], List[Chunk]] = chunk_paper,
        extractor: Extractor = extract_pdf_text,
    ):
        self.store = store
        self.embedder = embedder
        self.acquirer = acquirer or Acquirer(extractor=extractor)
        self.searcher = searcher
        self.chunker = chunker
        self.extractor = extractor

    # ---- per paper --------------------------------------------------------------

    def _index_chunks(self, paper: Paper, chunks: Sequence[Chunk]) -> int:
        if not chunks:
            raise UnusableContent(f"No usable content in '{_short(paper.title)}'")
        embedded = self.embedder.embed_batch(chunks)
        return self.store.upsert(embedded)

    def process_paper(self, paper: Paper) -> Tuple[Paper, int]:
        """Run one paper end to end; raises on any per-paper failure."""
        acquired = self.acquirer(paper)
        if acquired.fallback:
            log.warning("Indexing abstract only for %s", paper.id)
        count = self._index_chunks(acquired, self.chunker(acquired))
        return acquired, count

    # ---- progressive ------------------------------------------------------------

    def stream(
        self,
        query: str,
        max_results: int = 5,
        source: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[ProgressEvent]:
        source = source or yaml_config.sources.default_source
        yield ProgressEvent(SEARCH_STARTED, f'Searching {source} for "{query}"...', 5)

        try:
            papers = self.searcher(query, max_results, source)
        except ResearchMindError as e:
            log.error("Search failed: %s", e)
            yield ProgressEvent(ERROR, str(e), 5, error=e)
            return

        if not papers:
            err = NoPapersFound(query, source)
            yield ProgressEvent(ERROR, str(err), 5, error=err)
            return

        total = len(papers)
        report = IngestionReport(query=query, source=source, found=total)
        yield ProgressEvent(
            PAPERS_FOUND, f"Found {total} papers. Starting ingestion...", 15, total=total
        )

        per_paper = 70 / total
        progress = 15.0
        for i, paper in enumerate(papers, start=1):
            if cancel is not None and cancel.is_set():
                log.info("Ingestion cancelled after %d of %d papers", i - 1, total)
                report.cancelled = True
                break

            label = f"({i}/{total})"
            title = _short(paper.title)
            ctx = dict(paper_index=i, total=total, paper_id=paper.id)
            try:
                yield ProgressEvent(
                    PAPER_DOWNLOADING, f"{label} Downloading: {title}",
                    round(progress), stage="download", **ctx,
                )
                acquired = self.acquirer(paper)

                yield ProgressEvent(
                    PAPER_CHUNKING, f"{label} Chunking: {title}",
                    round(progress + per_paper * 0.3), stage="chunk", **ctx,
                )
                chunks = self.chunker(acquired)
                if not chunks:
                    raise UnusableContent("No usable content")

                yield ProgressEvent(
                    PAPER_EMBEDDING, f"{label} Embedding: {title}",
                    round(progress + per_paper * 0.6), stage="embed", **ctx,
                )
                count = self._index_chunks(acquired, chunks)
            except Exception as e:
                reason = str(e) or e.__class__.__name__
                if isinstance(e, ResearchMindError):
                    log.warning("Skipping %s: %s", paper.id, reason)
                else:
                    log.error("Skipping %s after unexpected error", paper.id, exc_info=True)
                report.skipped.append((paper.id, reason))
                progress += per_paper
                yield ProgressEvent(
                    PAPER_SKIPPED, f"{label} Skipped: {title}", round(progress),
                    stage="skip", data={"reason": reason}, **ctx,
                )
                continue

            summary = acquired.summary()
            report.indexed.append(summary)
            progress += per_paper
            if acquired.fallback:
                log.warning("Indexed abstract only for %s (full text unavailable)", paper.id)
            yield ProgressEvent(
                PAPER_INDEXED, f"{label} Indexed: {title}", round(progress),
                stage="indexed", data={"chunks": count, "fallback": acquired.fallback},
                **ctx,
            )

        if not report.indexed and not report.cancelled:
            err = IngestionFailed(
                f"Could not process any of the {total} papers. "
                "PDFs may be scanned or unavailable; please try again or use a different query."
            )
            yield ProgressEvent(ERROR, str(err), round(progress), error=err, report=report)
            return

        yield ProgressEvent(FINALIZING, "Finalizing database...", 95)
        report.stats = self.store.stats()
        yield ProgressEvent(
            DONE,
            f"Successfully indexed {len(report.indexed)} of {total} papers!",
            100,
            data={"papers": report.indexed, "stats": report.stats},
            report=report,
        )

    def ingest(
        self,
        query: str,
        max_results: int = 5,
        source: Optional[str] = None,
        on_event: Optional[EventSink] = None,
        cancel: Optional[threading.Event] = None,
    ) -> IngestionReport:
        """Drive ``stream`` to completion, forwarding every event to ``on_event`` in order."""
        for event in self.stream(query, max_results, source, cancel=cancel):
            if on_event is not None:
                on_event(event)
            if event.type == ERROR:
                raise event.error
            if event.type == DONE:
                return event.report
        raise RuntimeError("Ingestion stream ended without a terminal event")

    # ---- parallel -----------------------------------------------------------------

    def ingest_parallel(
        self,
        query: str,
        max_results: int = 5,
        source: Optional[str] = None,
        max_workers: int = 4,
        show_progress: bool = False,
    ) -> IngestionReport:
        source = source or yaml_config.sources.default_source
        papers = self.searcher(query, max_results, source)
        if not papers:
            raise NoPapersFound(query, source)

        report = IngestionReport(query=query, source=source, found=len(papers))
        results: Dict[int, Paper] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(self.process_paper, p): i for i, p in enumerate(papers)}
            done = as_completed(futures)
            if show_progress:
                done = tqdm(done, total=len(futures), desc="Ingesting papers", unit="paper")
            for fut in done:
                i = futures[fut]
                try:
                    acquired, _ = fut.result()
                except Exception as e:
                    log.warning("Skipping %s: %s", papers[i].id, e)
                    report.skipped.append((papers[i].id, str(e) or e.__class__.__name__))
                    continue
                results[i] = acquired

        report.indexed = [results[i].summary() for i in sorted(results)]
        if not report.indexed:
            raise IngestionFailed(f"Could not process any of the {len(papers)} papers.")
        report.stats = self.store.stats()
        log.info("%s (parallel)", report.message)
        return report

    # ---- upload -------------------------------------------------------------------

    def ingest_upload(
        self,
        content: bytes,
        title: Optional[str] = None,
        authors: Optional[Sequence[str] | str] = None,
        abstract: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> UploadResult:
        """Index a user-supplied PDF; raises ``UnusableContent`` if it has no text."""
        text = extract_upload_text(content, self.extractor)

        if isinstance(authors, str):
            authors = [authors]
        default_title = (filename or "").rsplit(".pdf", 1)[0].replace("_", " ").strip()
        paper = Paper(
            id=f"upload_{int(time.time() * 1000)}",
            title=title or default_title or "Uploaded Paper",
            authors=list(authors) if authors else ["Unknown Author"],
            abstract=abstract or "Uploaded PDF document",
            published=str(datetime.now().year),
            pdf_url=NO_PDF,
            source="upload",
            full_text=text,
        )
        chunks = self.chunker(paper)
        if not chunks:
            raise UnusableContent("PDF had no usable text content.")
        self._index_chunks(paper, chunks)

        log.info("Upload indexed: '%s' -> %d chunks", paper.title, len(chunks))
        return UploadResult(paper=paper, chunks=len(chunks), stats=self.store.stats())
