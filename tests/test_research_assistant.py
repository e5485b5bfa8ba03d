from unittest.mock import MagicMock

import pytest

from chains.research_assistant import ResearchAssistant
from common.errors import EmptyCorpus
from tests.fakes import FakeLLM, make_paper, words


@pytest.fixture
def assistant(store, embedder, pdf_cache):
    from ingestion.acquisition import Acquirer
    from ingestion.ingest_pipeline import IngestionPipeline

    papers = [
        make_paper("arxiv_1", title="Attention Is All You Need", pdf_url="no-pdf",
                   full_text="attention " + words(300, prefix="attn")),
        make_paper("arxiv_2", title="Protein Folding", pdf_url="no-pdf",
                   full_text="protein " + words(300, prefix="fold")),
    ]
    pipeline = IngestionPipeline(
        store, embedder,
        acquirer=Acquirer(extractor=MagicMock(), cache=pdf_cache),
        searcher=MagicMock(return_value=papers),
    )
    return ResearchAssistant(store, embedder, llm=FakeLLM(), pipeline=pipeline)


def test_ask_on_empty_store_raises(assistant):
    with pytest.raises(EmptyCorpus, match="ingest papers first"):
        assistant.ask("What is attention?")


def test_blank_question_is_rejected(assistant):
    with pytest.raises(ValueError):
        assistant.ask("   ")


def test_ingest_then_ask(assistant):
    report = assistant.ingest("transformers", max_results=2)
    assert report.message == "Indexed 2 of 2 papers"
    assert assistant.stats() == {"totalChunks": 2, "totalPapers": 2}

    answer = assistant.ask("attention attn1 attn2", top_k=3)

    assert len(answer.citations) == 2
    assert {c.title for c in answer.citations} == {"Attention Is All You Need", "Protein Folding"}
    assert "[Source 1]" in assistant.synthesizer.llm.prompts[0]


def test_ingest_stream_yields_events(assistant):
    types = [e.type for e in assistant.ingest_stream("transformers")]
    assert types[0] == "search_started"
    assert types[-1] == "done"


def test_clear(assistant):
    assistant.ingest("transformers", parallel=True)
    assistant.clear()
    assert assistant.stats() == {"totalChunks": 0, "totalPapers": 0}
