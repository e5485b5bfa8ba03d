from __future__ import annotations

from common.config import LLMConfig, secrets, yaml_config
from common.logger import get_logger

log = get_logger(__name__)


class OpenAICompatibleLLM:
    """
    Minimal completion client for OpenAI-compatible chat endpoints (OpenAI,
    Groq, vLLM, ...). Exposes ``invoke(prompt) -> str`` like a LangChain LLM.
    """

    def __init__(
        self,
        model: str,
        *,
        temperature: float,
        max_tokens: int,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: int = 60,
    ):
        from openai import OpenAI

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def invoke(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        content = response.choices[0].message.content
        if not content:
            raise RuntimeError("Model returned an empty response")
        return content


def load_llm(config_section: str = "llm_qa"):
    """
    Load the generative model described by a config section.
    Temperature and output-length limits are fixed at construction.
    """
    cfg: LLMConfig = getattr(yaml_config, config_section)

    if cfg.provider == "ollama":
        from langchain_ollama import OllamaLLM

        kwargs = {"base_url": cfg.base_url} if cfg.base_url else {}
        log.info("Using Ollama model %s", cfg.model_name)
        return OllamaLLM(
            model=cfg.model_name,
            temperature=cfg.temperature,
            num_predict=cfg.max_tokens,
            **kwargs,
        )

    if cfg.provider == "openai":
        api_key = secrets.groq_api_key if "groq" in (cfg.base_url or "") else None
        api_key = api_key or secrets.openai_api_key
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY (or GROQ_API_KEY) environment variable is required")
        log.info("Using OpenAI-compatible model %s at %s", cfg.model_name, cfg.base_url or "api.openai.com")
        return OpenAICompatibleLLM(
            cfg.model_name,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            base_url=cfg.base_url,
            api_key=api_key,
            timeout=cfg.timeout,
        )

    raise ValueError(f"Unsupported provider: {cfg.provider}")
