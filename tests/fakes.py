import hashlib
from typing import List

from ingestion.document_models import Paper

DIM = 16


class FakeEmbeddings:
    """Deterministic bag-of-words vectors; never zero thanks to the bias slot."""

    def __init__(self, dim: int = DIM):
        self.dim = dim
        self.calls: List[str] = []

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        vec = [0.0] * self.dim
        vec[0] = 1.0
        for word in text.lower().split():
            h = int(hashlib.md5(word.encode()).hexdigest(), 16)
            vec[1 + h % (self.dim - 1)] += 1.0
        return vec


class FakeLLM:
    def __init__(self, reply: str = "Transformers use attention [Source 1]."):
        self.reply = reply
        self.prompts: List[str] = []

    def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def words(n: int, prefix: str = "word") -> str:
    return " ".join(f"{prefix}{i}" for i in range(n))


def make_paper(pid: str = "arxiv_2401.00001", **overrides) -> Paper:
    fields = dict(
        id=pid,
        title="Attention Is All You Need",
        authors=["Ashish Vaswani", "Noam Shazeer"],
        abstract="We propose the Transformer, a model architecture based on attention. " * 3,
        published="2017",
        pdf_url="https://arxiv.org/pdf/1706.03762.pdf",
        source="arxiv",
    )
    fields.update(overrides)
    return Paper(**fields)
