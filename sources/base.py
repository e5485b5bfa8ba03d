from __future__ import annotations

import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

import requests

from common.config import SourceRetryConfig, yaml_config
from common.errors import RateLimited, SourceUnavailable
from common.logger import get_logger
from common.retry import RateLimitSignal, RetryPolicy
from ingestion.document_models import NO_PDF, Paper

log = get_logger(__name__)


def abstract_only(paper: Paper) -> Paper:
    """
    Turn a catalog hit without a downloadable PDF into a self-contained paper
    whose text is title + authors + abstract. Acquisition will use it as-is.
    """
    text = (
        f"{paper.title}\n\nAuthors: {', '.join(paper.authors)}\n\n"
        f"Abstract: {paper.abstract or ''}"
    )
    return replace(paper, pdf_url=NO_PDF, full_text=text)


class SourceAdapter:
    """
    One external paper catalog. Subclasses implement ``_fetch`` (transport +
    payload decoding) and ``_parse`` (normalization into ``Paper``).

    ``search`` never raises for "no results". Transport problems are retried
    per the adapter's ``RetryPolicy`` and surface as ``RateLimited`` or
    ``SourceUnavailable`` once attempts run out.
    """

    kind: str = ""
    id_prefix: str = ""
    # Whether the catalog exposes direct PDF links worth filtering on.
    filters_open_access: bool = True

    def __init__(
        self,
        *,
        timeout: Optional[int] = None,
        policy: Optional[RetryPolicy] = None,
        courtesy_delay: Optional[float] = None,
        wait_hint: Optional[str] = None,
        user_agent: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        cfg: SourceRetryConfig = getattr(yaml_config.sources, self.kind)
        self.timeout = timeout or yaml_config.sources.timeout
        self.policy = policy or RetryPolicy(
            max_attempts=cfg.max_attempts,
            backoff_seconds=cfg.backoff_seconds,
            sleep=sleep,
        )
        self.courtesy_delay = (
            cfg.courtesy_delay if courtesy_delay is None else courtesy_delay
        )
        self.wait_hint = wait_hint or cfg.wait_hint
        self.user_agent = user_agent or yaml_config.app.user_agent
        self._sleep = sleep

    # ---- public -------------------------------------------------------------

    def search(self, query: str, max_results: int = 10) -> List[Paper]:
        query = query.strip()
        if not query:
            return []
        log.info("Searching %s for '%s' (max_results=%d)", self.kind, query, max_results)

        if self.courtesy_delay:
            self._sleep(self.courtesy_delay)

        payload = self._fetch(query, max_results)
        candidates = self._parse(payload)[:max_results]
        if not candidates:
            log.info("No papers found on %s for '%s'", self.kind, query)
            return []

        papers = self._select_open_access(candidates)
        log.info("%s returned %d papers (%d raw)", self.kind, len(papers), len(candidates))
        return papers

    # ---- hooks ----------------------------------------------------------------

    def _fetch(self, query: str, max_results: int) -> Any:
        raise NotImplementedError

    def _parse(self, payload: Any) -> List[Paper]:
        raise NotImplementedError

    def _check_response(self, resp: requests.Response) -> None:
        """Source-specific validation of a 2xx response; raise to reject it."""

    # ---- shared transport -----------------------------------------------------

    def _request(self, url: str, params: Dict[str, Any]) -> requests.Response:
        resp = requests.get(
            url,
            params=params,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        )
        if resp.status_code == 429:
            raise RateLimitSignal(status=429)
        if not resp.ok:
            raise SourceUnavailable(self.kind, f"API error: HTTP {resp.status_code}")
        self._check_response(resp)
        return resp

    def _get(self, url: str, params: Dict[str, Any]) -> requests.Response:
        try:
            return self.policy.call(self._request, url, params)
        except RateLimitSignal as e:
            log.warning("%s still rate limited after %d attempts", self.kind, self.policy.max_attempts)
            raise RateLimited(self.kind, self.wait_hint) from e
        except requests.Timeout as e:
            raise SourceUnavailable(self.kind, f"request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise SourceUnavailable(self.kind, f"request failed: {e}") from e

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        resp = self._get(url, params)
        try:
            return resp.json()
        except ValueError as e:
            raise SourceUnavailable(self.kind, "response was not valid JSON") from e

    # ---- normalization --------------------------------------------------------

    def _namespaced(self, raw_id: str) -> str:
        return f"{self.id_prefix}{raw_id}"

    def _select_open_access(self, candidates: List[Paper]) -> List[Paper]:
        if not self.filters_open_access:
            return candidates
        with_pdf = [p for p in candidates if p.pdf_url and p.pdf_url != NO_PDF]
        if with_pdf:
            return with_pdf
        log.warning(
            "%s: no open-access PDFs among %d results, using abstracts only",
            self.kind,
            len(candidates),
        )
        return [abstract_only(p) for p in candidates]
