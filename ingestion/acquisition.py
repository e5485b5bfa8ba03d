from __future__ import annotations

import hashlib
import re
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from typing import Callable, Optional

import requests
from pypdf import PdfReader

from common.config import yaml_config
from common.errors import UnusableContent
from common.logger import get_logger
from ingestion.cleaners import normalize_text
from ingestion.document_models import NO_PDF, Paper

log = get_logger(__name__)

Extractor = Callable[[bytes], str]

_STREAM_CHUNK = 64 * 1024


def extract_pdf_text(content: bytes) -> str:
    """Default extractor; raises on malformed, encrypted or image-only input."""
    reader = PdfReader(BytesIO(content))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_upload_text(
    content: bytes,
    extractor: Extractor = extract_pdf_text,
    min_chars: Optional[int] = None,
) -> str:
    """Extract an uploaded PDF; uploads have no abstract to fall back to, so fail loudly."""
    min_chars = min_chars or yaml_config.acquisition.min_text_chars
    try:
        text = normalize_text(extractor(content))
    except Exception as e:
        raise UnusableContent(f"Could not read this PDF: {e}") from e
    if len(text) < min_chars:
        raise UnusableContent(
            "Could not extract text from this PDF. It may be scanned or image-based."
        )
    return text


class PdfCache:
    """Downloaded PDF bytes on disk, keyed by paper id."""

    def __init__(self, cache_dir: Path | str | None = None):
        self.dir = Path(cache_dir or yaml_config.app.cache_dir) / "pdfs"

    def path_for(self, paper_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", paper_id)[:80]
        # hash suffix keeps ids that sanitize to the same name apart
        digest = hashlib.sha1(paper_id.encode("utf-8")).hexdigest()[:8]
        return self.dir / f"{safe}-{digest}.pdf"

    def get(self, paper_id: str) -> bytes | None:
        path = self.path_for(paper_id)
        return path.read_bytes() if path.exists() else None

    def put(self, paper_id: str, data: bytes) -> None:
        self.dir.mkdir(parents=True, exist_ok=True)
        self.path_for(paper_id).write_bytes(data)


class Acquirer:
    """
    Attach full text to a Paper. Never raises: any download or extraction
    failure falls back to the abstract (or title) with ``fallback=True``.
    """

    def __init__(
        self,
        extractor: Extractor = extract_pdf_text,
        cache: Optional[PdfCache] = None,
        timeout: Optional[int] = None,
        max_bytes: Optional[int] = None,
        min_text_chars: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        cfg = yaml_config.acquisition
        self.extractor = extractor
        self.cache = cache or PdfCache()
        self.timeout = timeout or cfg.timeout
        self.max_bytes = max_bytes or cfg.max_pdf_bytes
        self.min_text_chars = min_text_chars or cfg.min_text_chars
        self.user_agent = user_agent or yaml_config.app.user_agent

    def __call__(self, paper: Paper) -> Paper:
        return self.acquire(paper)

    def acquire(self, paper: Paper) -> Paper:
        if paper.full_text and len(paper.full_text) > self.min_text_chars:
            log.info("Using pre-fetched text for '%s'", paper.title[:50])
            return replace(paper)

        try:
            if paper.pdf_url == NO_PDF or not paper.pdf_url:
                raise ValueError("no downloadable file")
            content = self._load_bytes(paper)
            text = normalize_text(self.extractor(content))
            if not text:
                raise ValueError("extractor returned no text")
        except Exception as e:
            log.warning(
                "Full text unavailable for %s (%s), falling back to abstract", paper.id, e
            )
            # keep adapter-built abstract-only text when present
            text = paper.full_text or paper.abstract or paper.title
            return replace(paper, full_text=text, fallback=True)

        log.info("Extracted %d characters from %s", len(text), paper.id)
        return replace(paper, full_text=text, fallback=False)

    def _load_bytes(self, paper: Paper) -> bytes:
        cached = self.cache.get(paper.id)
        if cached is not None:
            log.info("Using cached PDF for %s", paper.id)
            return cached
        content = self._download(paper.pdf_url)
        self.cache.put(paper.id, content)
        return content

    def _download(self, url: str) -> bytes:
        """Stream the body, truncating at max_bytes rather than rejecting large files."""
        with requests.get(
            url,
            stream=True,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        ) as resp:
            resp.raise_for_status()
            buf = bytearray()
            for part in resp.iter_content(chunk_size=_STREAM_CHUNK):
                buf.extend(part)
                if len(buf) >= self.max_bytes:
                    log.warning("Large PDF at %s, capping at %d bytes", url, self.max_bytes)
                    del buf[self.max_bytes :]
                    break
        log.info("Downloaded %d KB from %s", len(buf) // 1024, url)
        return bytes(buf)


def acquire(paper: Paper) -> Paper:
    return Acquirer().acquire(paper)
