from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence

from chains.prompts import GROUNDED_ANSWER_TEMPLATE, SOURCE_TEMPLATE
from common.errors import GenerationFailure
from common.logger import get_logger
from retrieval.retriever import RetrievedChunk

log = get_logger(__name__)

NO_INFORMATION_ANSWER = "I couldn't find relevant information in the stored papers."


@dataclass(frozen=True)
class Citation:
    number: int
    title: str
    authors: str
    published: str
    pdfUrl: str


@dataclass(frozen=True)
class Answer:
    answer: str
    citations: List[Citation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_context(chunks: Sequence[RetrievedChunk]) -> str:
    """Label each chunk ``[Source N]`` in retrieval order."""
    return "\n\n".join(
        SOURCE_TEMPLATE.format(
            number=i,
            title=c.source.title,
            authors=c.source.authors,
            published=c.source.published,
            text=c.text,
        )
        for i, c in enumerate(chunks, start=1)
    )


def build_citations(chunks: Sequence[RetrievedChunk]) -> List[Citation]:
    """
    One citation per retrieved chunk, in order. This lists what was retrieved;
    it does not check which sources the answer text actually cites.
    """
    return [
        Citation(
            number=i,
            title=c.source.title,
            authors=c.source.authors,
            published=c.source.published,
            pdfUrl=c.source.pdfUrl,
        )
        for i, c in enumerate(chunks, start=1)
    ]


class AnswerSynthesizer:
    """
    Grounded answer generation over retrieved chunks.

    ``llm`` is anything with ``invoke(prompt)``: a LangChain LLM / chat model
    or ``models.llm.OpenAICompatibleLLM``, already configured with a low
    temperature and an output-token limit (see ``models.llm.load_llm``).
    """

    def __init__(self, llm):
        self.llm = llm

    def build_prompt(self, question: str, chunks: Sequence[RetrievedChunk]) -> str:
        return GROUNDED_ANSWER_TEMPLATE.format(
            context=build_context(chunks), question=question
        )

    def synthesize(self, question: str, chunks: Sequence[RetrievedChunk]) -> Answer:
        if not chunks:
            return Answer(answer=NO_INFORMATION_ANSWER, citations=[])

        prompt = self.build_prompt(question, chunks)
        log.info("Generating answer from %d sources", len(chunks))
        try:
            raw = self.llm.invoke(prompt)
        except Exception as e:
            log.error("LLM invocation failed: %s", e, exc_info=True)
            raise GenerationFailure(f"Answer generation failed: {e}") from e

        # chat models return a message object, plain LLMs a string
        text = getattr(raw, "content", raw)
        return Answer(answer=str(text).strip(), citations=build_citations(chunks))
