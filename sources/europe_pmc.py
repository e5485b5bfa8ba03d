from __future__ import annotations

from typing import Any, Dict, List

from ingestion.cleaners import collapse_spaces, to_year
from ingestion.document_models import NO_PDF, Paper
from sources.base import SourceAdapter

EUROPE_PMC_SEARCH_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest/search"


def _pick_full_text_url(item: Dict[str, Any]) -> str:
    """Prefer the PDF rendition; otherwise the first full-text link, if any."""
    urls = (item.get("fullTextUrlList") or {}).get("fullTextUrl") or []
    for u in urls:
        if u.get("documentStyle") == "pdf" and u.get("url"):
            return u["url"]
    for u in urls:
        if u.get("url"):
            return u["url"]
    return NO_PDF


def _author_names(item: Dict[str, Any]) -> List[str]:
    authors = (item.get("authorList") or {}).get("author") or []
    names = []
    for a in authors:
        name = f"{a.get('firstName') or ''} {a.get('lastName') or ''}".strip()
        name = name or (a.get("fullName") or "").strip()
        if name:
            names.append(name)
    return names


class EuropePMCAdapter(SourceAdapter):
    """Europe PMC (PubMed + PMC) REST search; only open-access hits keep their PDF."""

    kind = "pubmed"
    id_prefix = "epmc_"

    def _fetch(self, query: str, max_results: int) -> Any:
        return self._get_json(
            EUROPE_PMC_SEARCH_URL,
            {
                "query": query,
                "format": "json",
                "pageSize": max_results,
                "resultType": "core",
            },
        )

    def _parse(self, payload: Any) -> List[Paper]:
        results = ((payload or {}).get("resultList") or {}).get("result") or []
        papers: List[Paper] = []
        for item in results:
            if not item.get("id"):
                continue
            open_access = item.get("isOpenAccess") == "Y"
            papers.append(
                Paper(
                    id=self._namespaced(str(item["id"])),
                    title=collapse_spaces(item.get("title")) or "No title",
                    authors=_author_names(item),
                    abstract=collapse_spaces(item.get("abstractText")),
                    published=to_year(
                        item.get("firstPublicationDate") or item.get("pubYear")
                    ),
                    pdf_url=_pick_full_text_url(item) if open_access else NO_PDF,
                    source="pubmed",
                )
            )
        return papers
