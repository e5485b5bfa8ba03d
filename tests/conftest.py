import pytest

from ingestion.acquisition import PdfCache
from models.embedder import Embedder
from tests.fakes import FakeEmbeddings
from vectorstore.json_store import JsonFileVectorStore


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def embedder(fake_embeddings):
    return Embedder(provider=fake_embeddings, batch_size=5, batch_delay=0)


@pytest.fixture
def store(tmp_path):
    with JsonFileVectorStore(tmp_path / "vectorStore.json") as s:
        yield s


@pytest.fixture
def pdf_cache(tmp_path):
    return PdfCache(tmp_path / "cache")
