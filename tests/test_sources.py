from unittest.mock import MagicMock, patch

import pytest
import requests

from common.errors import RateLimited, SourceUnavailable
from common.retry import RetryPolicy
from ingestion.document_models import NO_PDF
from sources.arxiv import ArxivAdapter
from sources.europe_pmc import EuropePMCAdapter
from sources.registry import get_adapter
from sources.semantic_scholar import ChemRxivAdapter, SemanticScholarAdapter

ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/abs/1706.03762v7</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models are based on
      complex recurrent networks.  </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2005.14165v4</id>
    <published>2020-05-28T17:29:03Z</published>
    <title>Language Models are Few-Shot Learners</title>
    <summary>We train GPT-3.</summary>
    <author><name>Tom B. Brown</name></author>
  </entry>
</feed>
"""


def _response(status=200, text="", payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    resp.json.return_value = payload
    return resp


def _no_wait(**kwargs):
    defaults = dict(policy=RetryPolicy(max_attempts=3, backoff_seconds=0), courtesy_delay=0)
    defaults.update(kwargs)
    return defaults


def _ss_item(pid, pdf=None, year=2021):
    return {
        "paperId": pid,
        "title": f"Paper {pid}",
        "authors": [{"name": "Ada Lovelace"}, {"name": "Alan Turing"}],
        "abstract": f"Abstract of {pid}.",
        "year": year,
        "openAccessPdf": {"url": pdf} if pdf else None,
    }


# ---- arXiv ---------------------------------------------------------------------


def test_arxiv_parses_atom_feed():
    with patch("sources.base.requests.get", return_value=_response(text=ARXIV_FEED)) as get:
        papers = ArxivAdapter(**_no_wait()).search("attention", max_results=5)

    assert [p.id for p in papers] == ["arxiv_1706.03762v7", "arxiv_2005.14165v4"]
    first = papers[0]
    assert first.title == "Attention Is All You Need"
    assert first.authors == ["Ashish Vaswani", "Noam Shazeer"]
    assert first.abstract.startswith("The dominant sequence")
    assert first.published == "2017"
    assert first.pdf_url == "https://arxiv.org/pdf/1706.03762v7.pdf"
    assert first.source == "arxiv"
    assert get.call_args.kwargs["params"]["search_query"] == "all:attention"


def test_arxiv_truncates_to_max_results():
    with patch("sources.base.requests.get", return_value=_response(text=ARXIV_FEED)):
        papers = ArxivAdapter(**_no_wait()).search("attention", max_results=1)
    assert len(papers) == 1


def test_arxiv_plain_text_body_is_rate_limit():
    body = "Rate exceeded."
    with patch("sources.base.requests.get", return_value=_response(text=body)) as get:
        with pytest.raises(RateLimited) as exc:
            ArxivAdapter(**_no_wait()).search("attention")

    assert get.call_count == 3
    assert exc.value.source == "arxiv"
    assert "wait" in str(exc.value)


def test_arxiv_recovers_after_transient_rate_limit():
    responses = [_response(text="Rate exceeded."), _response(text=ARXIV_FEED)]
    with patch("sources.base.requests.get", side_effect=responses):
        papers = ArxivAdapter(**_no_wait()).search("attention")
    assert len(papers) == 2


def test_arxiv_empty_feed_is_not_an_error():
    empty = '<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom"></feed>'
    with patch("sources.base.requests.get", return_value=_response(text=empty)):
        assert ArxivAdapter(**_no_wait()).search("nothing matches") == []


# ---- Semantic Scholar / ChemRxiv -------------------------------------------------


def test_semantic_scholar_keeps_only_open_access():
    payload = {"data": [_ss_item("a", pdf="https://x/a.pdf"), _ss_item("b")]}
    with patch("sources.base.requests.get", return_value=_response(payload=payload)):
        papers = SemanticScholarAdapter(**_no_wait()).search("graphs")

    assert [p.id for p in papers] == ["ss_a"]
    assert papers[0].pdf_url == "https://x/a.pdf"
    assert papers[0].published == "2021"


def test_semantic_scholar_falls_back_to_abstracts():
    payload = {"data": [_ss_item("a"), _ss_item("b", year=None)]}
    with patch("sources.base.requests.get", return_value=_response(payload=payload)):
        papers = SemanticScholarAdapter(**_no_wait()).search("graphs")

    assert len(papers) == 2
    assert all(p.pdf_url == NO_PDF for p in papers)
    assert papers[0].full_text.startswith("Paper a\n\nAuthors: Ada Lovelace, Alan Turing")
    assert "Abstract: Abstract of a." in papers[0].full_text
    assert papers[1].published == "Unknown"


def test_semantic_scholar_429_exhausts_retries():
    sleeps = []
    adapter = SemanticScholarAdapter(
        policy=RetryPolicy(max_attempts=3, backoff_seconds=10, sleep=sleeps.append),
        courtesy_delay=0,
    )
    with patch("sources.base.requests.get", return_value=_response(status=429)) as get:
        with pytest.raises(RateLimited):
            adapter.search("graphs")

    assert get.call_count == 3
    assert sleeps == [10, 10]


def test_semantic_scholar_server_error_is_not_retried():
    with patch("sources.base.requests.get", return_value=_response(status=500)) as get:
        with pytest.raises(SourceUnavailable) as exc:
            SemanticScholarAdapter(**_no_wait()).search("graphs")

    assert get.call_count == 1
    assert not isinstance(exc.value, RateLimited)
    assert "HTTP 500" in str(exc.value)


def test_courtesy_delay_precedes_request():
    sleeps = []
    adapter = SemanticScholarAdapter(courtesy_delay=1.0, sleep=sleeps.append)
    with patch("sources.base.requests.get", return_value=_response(payload={"data": []})):
        adapter.search("graphs")
    assert sleeps == [1.0]


def test_chemrxiv_adds_field_of_study_filter():
    payload = {"data": [_ss_item("c", pdf="https://x/c.pdf")]}
    with patch("sources.base.requests.get", return_value=_response(payload=payload)) as get:
        papers = ChemRxivAdapter(**_no_wait()).search("catalysis")

    params = get.call_args.kwargs["params"]
    assert "Chemistry" in params["fieldsOfStudy"]
    assert papers[0].id == "ss_chem_c"
    assert papers[0].source == "chemrxiv"


# ---- Europe PMC ------------------------------------------------------------------


def test_europe_pmc_parses_core_results():
    payload = {
        "resultList": {
            "result": [
                {
                    "id": "PMC123",
                    "title": "CRISPR screens",
                    "abstractText": "We screen.",
                    "firstPublicationDate": "2019-03-01",
                    "isOpenAccess": "Y",
                    "authorList": {
                        "author": [
                            {"firstName": "Jennifer", "lastName": "Doudna"},
                            {"fullName": "Zhang F"},
                        ]
                    },
                    "fullTextUrlList": {
                        "fullTextUrl": [
                            {"documentStyle": "html", "url": "https://x/123.html"},
                            {"documentStyle": "pdf", "url": "https://x/123.pdf"},
                        ]
                    },
                },
                {
                    "id": "999",
                    "title": "Closed access study",
                    "pubYear": "2015",
                    "isOpenAccess": "N",
                },
            ]
        }
    }
    with patch("sources.base.requests.get", return_value=_response(payload=payload)):
        papers = EuropePMCAdapter(**_no_wait()).search("crispr")

    assert [p.id for p in papers] == ["epmc_PMC123"]
    paper = papers[0]
    assert paper.authors == ["Jennifer Doudna", "Zhang F"]
    assert paper.pdf_url == "https://x/123.pdf"
    assert paper.published == "2019"
    assert paper.source == "pubmed"


# ---- transport failures / registry ------------------------------------------------


def test_timeout_becomes_source_unavailable():
    with patch("sources.base.requests.get", side_effect=requests.Timeout("slow")) as get:
        with pytest.raises(SourceUnavailable) as exc:
            EuropePMCAdapter(**_no_wait()).search("crispr")

    assert get.call_count == 3
    assert "timed out" in str(exc.value)


def test_invalid_json_becomes_source_unavailable():
    resp = _response()
    resp.json.side_effect = ValueError("not json")
    with patch("sources.base.requests.get", return_value=resp):
        with pytest.raises(SourceUnavailable):
            SemanticScholarAdapter(**_no_wait()).search("graphs")


def test_blank_query_does_not_hit_the_network():
    with patch("sources.base.requests.get") as get:
        assert ArxivAdapter(**_no_wait()).search("   ") == []
    get.assert_not_called()


def test_registry_resolves_kinds_and_falls_back():
    assert isinstance(get_adapter("pubmed"), EuropePMCAdapter)
    assert isinstance(get_adapter("chemrxiv"), ChemRxivAdapter)
    assert isinstance(get_adapter("nonsense"), ArxivAdapter)


def test_europe_pmc_closed_access_falls_back_to_abstracts():
    payload = {
        "resultList": {
            "result": [
                {
                    "id": "111",
                    "title": "Closed study one",
                    "abstractText": "Findings one.",
                    "pubYear": "2018",
                    "isOpenAccess": "N",
                    "authorList": {"author": [{"fullName": "Smith J"}]},
                    "fullTextUrlList": {
                        "fullTextUrl": [{"documentStyle": "pdf", "url": "https://paywall/111.pdf"}]
                    },
                },
                {
                    "id": "222",
                    "title": "Closed study two",
                    "abstractText": "Findings two.",
                    "pubYear": "2020",
                    "isOpenAccess": "N",
                },
            ]
        }
    }
    with patch("sources.base.requests.get", return_value=_response(payload=payload)):
        papers = EuropePMCAdapter(**_no_wait()).search("crispr")

    assert [p.id for p in papers] == ["epmc_111", "epmc_222"]
    assert all(p.pdf_url == NO_PDF for p in papers)
    assert papers[0].full_text == (
        "Closed study one\n\nAuthors: Smith J\n\nAbstract: Findings one."
    )
    assert papers[1].full_text.startswith("Closed study two\n\nAuthors: \n\n")
