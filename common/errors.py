"""Error taxonomy shared by ingestion, retrieval and answering.

Per-paper failures (``UnusableContent``, ``EmbeddingFailure``) are caught at the
paper boundary by the ingestion pipeline and turned into skips. Corpus-level
failures propagate to the caller with a message a user can act on.
"""
from __future__ import annotations


class ResearchMindError(Exception):
    """Base class for all errors raised by this package."""


class SourceUnavailable(ResearchMindError):
    """A paper catalog failed (transport, timeout, bad status) after retries."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class RateLimited(SourceUnavailable):
    """A paper catalog kept answering 429 after all retry attempts."""

    def __init__(self, source: str, wait_hint: str):
        self.wait_hint = wait_hint
        super().__init__(
            source,
            f"rate limit hit. Please wait {wait_hint} and try again.",
        )


class UnusableContent(ResearchMindError):
    """A paper (or upload) produced no usable text to chunk."""


class EmbeddingFailure(ResearchMindError):
    """The embedding provider failed for at least one chunk in a batch."""


class GenerationFailure(ResearchMindError):
    """The generative model call failed."""


class EmptyCorpus(ResearchMindError):
    def __init__(self, message: str = "No relevant papers found. Please ingest papers first."):
        super().__init__(message)


class NoPapersFound(ResearchMindError):
    def __init__(self, query: str, source: str):
        self.query = query
        self.source = source
        super().__init__(
            f"No papers found on {source} for '{query}'. Try a different search term."
        )


class IngestionFailed(ResearchMindError):
    """Every paper of an ingestion run was skipped."""


class DimensionMismatch(ResearchMindError):
    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(
            f"Embedding dimension mismatch: store holds {expected}-d vectors, got {got}-d. "
            "Clear the store after changing the embedding model."
        )


class DegenerateVector(ResearchMindError):
    """Cosine similarity is undefined for a zero-magnitude vector."""
