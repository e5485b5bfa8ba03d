from __future__ import annotations

from typing import Any, List

import feedparser
import requests

from common.retry import RateLimitSignal
from ingestion.cleaners import collapse_spaces, to_year
from ingestion.document_models import Paper
from sources.base import SourceAdapter

ARXIV_API_URL = "https://export.arxiv.org/api/query"


class ArxivAdapter(SourceAdapter):
    """arXiv Atom API. Every entry has a PDF, so no open-access filtering applies."""

    kind = "arxiv"
    id_prefix = "arxiv_"
    filters_open_access = False

    def _check_response(self, resp: requests.Response) -> None:
        # arXiv answers throttled clients with a plain-text body instead of XML.
        if not resp.text.lstrip().startswith("<"):
            raise RateLimitSignal(status=resp.status_code, detail="non-XML body from arXiv")

    def _fetch(self, query: str, max_results: int) -> Any:
        resp = self._get(
            ARXIV_API_URL,
            {
                "search_query": f"all:{query}",
                "max_results": max_results,
                "sortBy": "relevance",
            },
        )
        return feedparser.parse(resp.text)

    def _parse(self, payload: Any) -> List[Paper]:
        papers: List[Paper] = []
        for entry in payload.entries:
            entry_id = entry.get("id", "")
            arxiv_id = entry_id.split("/abs/")[-1].strip()
            if not arxiv_id:
                continue
            papers.append(
                Paper(
                    id=self._namespaced(arxiv_id.replace("/", "_")),
                    title=collapse_spaces(entry.get("title")) or "No title",
                    authors=[
                        collapse_spaces(a.get("name"))
                        for a in entry.get("authors", [])
                        if a.get("name")
                    ],
                    abstract=collapse_spaces(entry.get("summary")),
                    published=to_year(entry.get("published")),
                    pdf_url=f"https://arxiv.org/pdf/{arxiv_id}.pdf",
                    source="arxiv",
                )
            )
        return papers
