from __future__ import annotations

from pathlib import Path

from common.config import yaml_config
from common.logger import get_logger
from vectorstore.base import VectorStore
from vectorstore.json_store import JsonFileVectorStore
from vectorstore.memory_store import InMemoryVectorStore

log = get_logger(__name__)


def open_vector_store(backend: str | None = None, path: Path | str | None = None) -> VectorStore:
    """
    Build and open the configured store. The caller owns it and should
    ``close()`` it (or use it as a context manager).
    """
    cfg = yaml_config.vectorstore
    backend = backend or cfg.backend
    path = Path(path or cfg.path)

    if backend == "json":
        store: VectorStore = JsonFileVectorStore(path)
    elif backend == "memory":
        store = InMemoryVectorStore(snapshot_path=path, snapshot_every=cfg.snapshot_every)
    else:
        raise ValueError(f"Unsupported vector store backend: {backend}")

    log.info("Opened %s vector store at %s", backend, path)
    return store.open()
