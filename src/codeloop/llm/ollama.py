"""Ollama ``/api/chat`` adapter."""

from __future__ import annotations

from typing import Any

from codeloop.llm.base import LLMBase, LLMResult


class OllamaLLM(LLMBase):
    name = "ollama"

    def build_payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
        }

    def parse_response(self, data: dict[str, Any]) -> LLMResult:
        message = data.get("message") or {}
        result = LLMResult(text=str(message.get("content") or ""))
        try:
            result.input_tokens = int(data.get("prompt_eval_count") or 0)
            result.output_tokens = int(data.get("eval_count") or 0)
            # total_duration is reported in nanoseconds
            result.duration_ms = int(data.get("total_duration") or 0) // 1_000_000
        except (TypeError, ValueError):
            pass
        if isinstance(data.get("error"), str) and data["error"].strip():
            result.error = data["error"].strip()
        return result
