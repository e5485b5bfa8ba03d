from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

NO_PDF = "no-pdf"  # pdf_url sentinel: nothing to download
UNKNOWN_DATE = "Unknown"

SourceKind = Literal["arxiv", "semantic", "pubmed", "chemrxiv", "upload"]


@dataclass
class Paper:
    id: str  # namespaced by source, e.g. "arxiv_2401.00001"
    title: str
    authors: List[str]
    abstract: str
    published: str  # 4-digit year or "Unknown"
    pdf_url: str  # URL or NO_PDF
    source: SourceKind
    full_text: Optional[str] = None  # set by acquisition
    fallback: bool = False  # True when full_text is only abstract/title

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "published": self.published,
            "abstract": self.abstract,
            "pdfUrl": self.pdf_url,
            "source": self.source,
            "fallback": self.fallback,
        }


@dataclass
class Chunk:
    text: str
    # { "paperId", "title", "authors", "published", "pdfUrl", "chunkIndex", "totalChunks" }
    metadata: Dict[str, Any]

    @property
    def paper_id(self) -> str:
        return self.metadata["paperId"]

    @property
    def chunk_index(self) -> int:
        return self.metadata["chunkIndex"]


@dataclass
class EmbeddedChunk(Chunk):
    embedding: List[float] = field(default_factory=list)
