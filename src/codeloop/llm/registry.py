"""LLM registry: get the right adapter by provider name."""

from __future__ import annotations

import httpx

from codeloop.llm.base import LLMBase
from codeloop.llm.ollama import OllamaLLM
from codeloop.llm.openai import OpenAILLM


def get_llm(
    name: str,
    *,
    endpoint: str,
    model: str,
    api_key: str = "",
    timeout: float = 300.0,
    transport: httpx.BaseTransport | None = None,
) -> LLMBase:
    """Return an adapter for provider *name*."""
    kwargs = {"api_key": api_key, "timeout": timeout, "transport": transport}
    match name:
        case "ollama":
            return OllamaLLM(endpoint, model, **kwargs)
        case "openai":
            return OpenAILLM(endpoint, model, **kwargs)
        case _:
            raise ValueError(f"Unknown provider: {name}")
