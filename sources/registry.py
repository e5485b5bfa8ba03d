from __future__ import annotations

from typing import Dict, List, Type

from common.config import yaml_config
from common.logger import get_logger
from ingestion.document_models import Paper
from sources.arxiv import ArxivAdapter
from sources.base import SourceAdapter
from sources.europe_pmc import EuropePMCAdapter
from sources.semantic_scholar import ChemRxivAdapter, SemanticScholarAdapter

log = get_logger(__name__)

ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    "arxiv": ArxivAdapter,
    "semantic": SemanticScholarAdapter,
    "pubmed": EuropePMCAdapter,
    "chemrxiv": ChemRxivAdapter,
}


def get_adapter(source: str | None = None, **kwargs) -> SourceAdapter:
    """Unknown source kinds fall back to the configured default catalog."""
    kind = source or yaml_config.sources.default_source
    if kind not in ADAPTERS:
        log.warning("Unknown source '%s', falling back to %s", kind, yaml_config.sources.default_source)
        kind = yaml_config.sources.default_source
    return ADAPTERS[kind](**kwargs)


def search_papers(query: str, max_results: int = 10, source: str | None = None) -> List[Paper]:
    return get_adapter(source).search(query, max_results)
