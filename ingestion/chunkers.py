from __future__ import annotations

from typing import List, Optional

from common.config import yaml_config
from common.logger import get_logger
from ingestion.document_models import Chunk, Paper

log = get_logger(__name__)


def chunk_text(
    text: str,
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
    max_chunks: Optional[int] = None,
    min_chars: Optional[int] = None,
) -> List[str]:
    """
    Split text into overlapping word windows.

    The window is ``chunk_size`` words and advances ``chunk_size - overlap``
    words per step. Windows whose joined text is ``min_chars`` characters or
    shorter are dropped, and at most ``max_chunks`` windows are produced.
    """
    cfg = yaml_config.chunking
    chunk_size = cfg.chunk_size if chunk_size is None else chunk_size
    overlap = cfg.overlap if overlap is None else overlap
    max_chunks = cfg.max_chunks if max_chunks is None else max_chunks
    min_chars = cfg.min_chunk_chars if min_chars is None else min_chars

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= overlap < chunk_size:
        raise ValueError("overlap must be in [0, chunk_size)")

    words = text.split()
    step = chunk_size - overlap
    out: List[str] = []
    start = 0
    while start < len(words) and len(out) < max_chunks:
        piece = " ".join(words[start : start + chunk_size])
        if len(piece) > min_chars:
            out.append(piece)
        if start + chunk_size >= len(words):
            # last window reached the end; a further one would only repeat overlap
            break
        start += step
    return out


def chunk_paper(paper: Paper, **kwargs) -> List[Chunk]:
    """
    Chunk a paper's full text and attach provenance metadata.
    Returns [] when the paper has no usable text; callers treat that as a skip.
    """
    min_chars = yaml_config.chunking.min_chunk_chars
    if not paper.full_text or len(paper.full_text) < min_chars:
        log.warning("Text too short to chunk for %s, skipping", paper.id)
        return []

    pieces = chunk_text(paper.full_text, **kwargs)
    authors = ", ".join(paper.authors)
    chunks = [
        Chunk(
            text=piece,
            metadata={
                "paperId": paper.id,
                "title": paper.title,
                "authors": authors,
                "published": paper.published,
                "pdfUrl": paper.pdf_url,
                "chunkIndex": i,
                "totalChunks": len(pieces),
            },
        )
        for i, piece in enumerate(pieces)
    ]
    log.info(
        "Split '%s' (%d chars) into %d chunks", paper.title[:50], len(paper.full_text), len(chunks)
    )
    return chunks
