"""OpenAI-compatible ``/chat/completions`` adapter."""

from __future__ import annotations

from typing import Any

from codeloop.llm.base import LLMBase, LLMResult


class OpenAILLM(LLMBase):
    name = "openai"

    def build_payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }

    def parse_response(self, data: dict[str, Any]) -> LLMResult:
        result = LLMResult()
        err = data.get("error")
        if isinstance(err, dict):
            result.error = str(err.get("message") or "Unknown error").strip()
            return result

        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            result.text = str(message.get("content") or "")

        usage = data.get("usage") or {}
        try:
            result.input_tokens = int(usage.get("prompt_tokens", 0))
            result.output_tokens = int(usage.get("completion_tokens", 0))
        except (TypeError, ValueError):
            pass
        return result
