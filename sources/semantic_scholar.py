from __future__ import annotations

from typing import Any, Dict, List

from ingestion.cleaners import collapse_spaces, to_year
from ingestion.document_models import NO_PDF, Paper
from sources.base import SourceAdapter

SEMANTIC_SCHOLAR_SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
SEARCH_FIELDS = "title,authors,abstract,year,externalIds,openAccessPdf"


class SemanticScholarAdapter(SourceAdapter):
    """
    Semantic Scholar Graph API. The public endpoint throttles aggressively, so
    every search waits a courtesy delay first and 429s get a long fixed backoff.
    """

    kind = "semantic"
    id_prefix = "ss_"

    def _search_params(self, query: str, max_results: int) -> Dict[str, Any]:
        return {"query": query, "limit": max_results, "fields": SEARCH_FIELDS}

    def _fetch(self, query: str, max_results: int) -> Any:
        return self._get_json(
            SEMANTIC_SCHOLAR_SEARCH_URL, self._search_params(query, max_results)
        )

    def _parse(self, payload: Any) -> List[Paper]:
        papers: List[Paper] = []
        for item in (payload or {}).get("data") or []:
            if not item.get("paperId"):
                continue
            pdf = (item.get("openAccessPdf") or {}).get("url")
            papers.append(
                Paper(
                    id=self._namespaced(item["paperId"]),
                    title=collapse_spaces(item.get("title")) or "No title",
                    authors=[
                        a["name"].strip()
                        for a in item.get("authors") or []
                        if a.get("name")
                    ],
                    abstract=collapse_spaces(item.get("abstract")),
                    published=to_year(item.get("year")),
                    pdf_url=pdf or NO_PDF,
                    source=self.kind,
                )
            )
        return papers


class ChemRxivAdapter(SemanticScholarAdapter):
    """Chemistry preprints, reached through Semantic Scholar's field-of-study filter."""

    kind = "chemrxiv"
    id_prefix = "ss_chem_"
    fields_of_study = "Chemistry,Materials Science,Chemical Engineering"

    def _search_params(self, query: str, max_results: int) -> Dict[str, Any]:
        params = super()._search_params(query, max_results)
        params["fieldsOfStudy"] = self.fields_of_study
        return params
