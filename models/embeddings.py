from __future__ import annotations

from langchain_core.embeddings import Embeddings

from common.config import EmbeddingsConfig, secrets, yaml_config
from common.logger import get_logger

log = get_logger(__name__)


def load_embeddings(cfg: EmbeddingsConfig | None = None) -> Embeddings:
    """
    Build the embedding provider from config. Local sentence-transformers by
    default; ``huggingface_endpoint`` calls the hosted inference API instead.
    """
    cfg = cfg or yaml_config.embeddings

    if cfg.provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        log.info("Loading local embedding model %s", cfg.model_name)
        return HuggingFaceEmbeddings(model_name=cfg.model_name)

    if cfg.provider == "huggingface_endpoint":
        from langchain_huggingface import HuggingFaceEndpointEmbeddings

        if not secrets.hf_api_token:
            raise RuntimeError("HF_API_TOKEN environment variable is required")
        log.info("Using hosted embedding model %s", cfg.model_name)
        return HuggingFaceEndpointEmbeddings(
            model=cfg.model_name,
            task="feature-extraction",
            huggingfacehub_api_token=secrets.hf_api_token,
        )

    raise ValueError(f"Unsupported embeddings provider: {cfg.provider}")
