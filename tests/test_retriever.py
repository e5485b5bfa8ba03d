from unittest.mock import MagicMock

from retrieval.retriever import Retriever
from vectorstore.base import StoredRecord


def _rec(pid, idx, embedding, text):
    return StoredRecord(
        id=f"{pid}_chunk_{idx}",
        text=text,
        embedding=embedding,
        metadata={
            "paperId": pid,
            "title": f"Title {pid}",
            "authors": "A. Author, B. Author",
            "published": "2020",
            "pdfUrl": f"https://x/{pid}.pdf",
            "chunkIndex": idx,
            "totalChunks": 1,
        },
    )


def test_empty_store_returns_nothing_without_embedding(store):
    embedder = MagicMock()
    assert Retriever(store, embedder, k=3).retrieve("what is attention?") == []
    embedder.embed_query.assert_not_called()


def test_fewer_chunks_than_k(store, embedder, fake_embeddings):
    store.upsert(
        [
            _rec("p1", 0, fake_embeddings.embed_query("attention heads"), "attention heads"),
            _rec("p2", 0, fake_embeddings.embed_query("protein folding"), "protein folding"),
        ]
    )

    results = Retriever(store, embedder).retrieve("attention heads", top_k=3)

    assert len(results) == 2
    assert [r.rank for r in results] == [1, 2]
    assert results[0].text == "attention heads"
    assert results[0].score == 1.0
    assert results[0].score >= results[1].score


def test_provenance_is_carried_from_metadata(store):
    store.upsert([_rec("p1", 0, [1.0, 0.0], "some text")])
    embedder = MagicMock()
    embedder.embed_query.return_value = [0.6, 0.8]

    (hit,) = Retriever(store, embedder, k=3).retrieve("question")

    assert hit.score == 0.6
    assert hit.source.title == "Title p1"
    assert hit.source.pdfUrl == "https://x/p1.pdf"
    assert hit.to_dict()["source"]["chunkIndex"] == 0


def test_zero_top_k_returns_nothing(store):
    store.upsert([_rec("p1", 0, [1.0, 0.0], "some text")])
    embedder = MagicMock()
    embedder.embed_query.return_value = [1.0, 0.0]

    assert Retriever(store, embedder, k=3).retrieve("question", top_k=0) == []
