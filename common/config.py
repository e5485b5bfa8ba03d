from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "config.yaml"


class AppConfig(BaseModel):
    data_dir: Path = Path("data")
    cache_dir: Path = Path("data/cache")
    user_agent: str = "ResearchMind/1.0 (academic research tool)"


class SourceRetryConfig(BaseModel):
    max_attempts: int = 3
    backoff_seconds: float = 5.0
    courtesy_delay: float = 0.0
    wait_hint: str = "30 seconds"


class SourcesConfig(BaseModel):
    timeout: int = 15
    default_source: str = Field(
        default="arxiv", pattern="^(arxiv|semantic|pubmed|chemrxiv)$"
    )
    arxiv: SourceRetryConfig = SourceRetryConfig()
    semantic: SourceRetryConfig = SourceRetryConfig(
        max_attempts=4, backoff_seconds=10.0, courtesy_delay=2.0, wait_hint="1 minute"
    )
    pubmed: SourceRetryConfig = SourceRetryConfig(
        max_attempts=2, backoff_seconds=5.0, wait_hint="30 seconds"
    )
    chemrxiv: SourceRetryConfig = SourceRetryConfig(
        max_attempts=2, backoff_seconds=10.0, courtesy_delay=2.0, wait_hint="1 minute"
    )


class AcquisitionConfig(BaseModel):
    timeout: int = 15
    max_pdf_bytes: int = 5 * 1024 * 1024
    min_text_chars: int = 100


class ChunkingConfig(BaseModel):
    chunk_size: int = 600
    overlap: int = 60
    max_chunks: int = 15
    min_chunk_chars: int = 50


class EmbeddingsConfig(BaseModel):
    provider: str = Field(
        default="huggingface", pattern="^(huggingface|huggingface_endpoint)$"
    )
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    batch_size: int = 5
    batch_delay: float = 0.3


class VectorStoreConfig(BaseModel):
    backend: str = Field(default="json", pattern="^(json|memory)$")
    path: Path = Path("data/vectorStore.json")
    snapshot_every: int = 1


class RetrievalConfig(BaseModel):
    k: int = 3


class LLMConfig(BaseModel):
    provider: str = Field(default="ollama", pattern="^(ollama|openai)$")
    model_name: str = "llama3.1"
    temperature: float = 0.3
    max_tokens: int = 1024
    base_url: str | None = None
    timeout: int = 60


class GlobalYAMLConfig(BaseModel):
    app: AppConfig = AppConfig()
    sources: SourcesConfig = SourcesConfig()
    acquisition: AcquisitionConfig = AcquisitionConfig()
    chunking: ChunkingConfig = ChunkingConfig()
    embeddings: EmbeddingsConfig = EmbeddingsConfig()
    vectorstore: VectorStoreConfig = VectorStoreConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    llm_qa: LLMConfig = LLMConfig()


def load_yaml_config(path: Path | None = None) -> GlobalYAMLConfig:
    path = Path(path or os.getenv("RESEARCHMIND_CONFIG") or DEFAULT_CONFIG_PATH)
    if not path.exists():
        return GlobalYAMLConfig()
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


class Secrets(BaseSettings):
    hf_api_token: str | None = None
    openai_api_key: str | None = None
    groq_api_key: str | None = None

    class Config:
        env_file = ".env"
        extra = "ignore"


yaml_config = load_yaml_config()
secrets = Secrets()
