"""Base class for chat-completion adapters over HTTP."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from codeloop.errors import looks_like_rate_limit


@dataclass
class LLMResult:
    """Uniform result from any LLM call."""

    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    error: str = ""
    status_code: int = 0

    @property
    def ok(self) -> bool:
        return not self.error


class LLMBase(ABC):
    """Abstract adapter.  Subclasses implement ``build_payload`` and ``parse_response``."""

    name: str = "base"

    def __init__(
        self,
        endpoint: str,
        model: str,
        *,
        api_key: str = "",
        timeout: float = 300.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.model = model
        self.api_key = api_key
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @abstractmethod
    def build_payload(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        """Return the JSON request body for one completion."""
        ...

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> LLMResult:
        """Map the provider's JSON response into an :class:`LLMResult`."""
        ...

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def close(self) -> None:
        self._client.close()

    def complete(self, system_prompt: str, user_prompt: str) -> LLMResult:
        """Run one completion. Transport problems come back in ``LLMResult.error``."""
        start = time.monotonic()
        payload = self.build_payload(system_prompt, user_prompt)
        try:
            resp = self._client.post(self.endpoint, json=payload, headers=self.headers())
        except httpx.ConnectError as e:
            return LLMResult(error=f"Cannot connect to {self.name} at {self.endpoint}: {e}")
        except httpx.TimeoutException:
            return LLMResult(error="timeout")
        except httpx.HTTPError as e:
            return LLMResult(error=f"{self.name} request failed: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if not resp.is_success:
            body = resp.text.strip()
            if resp.status_code == 429 or looks_like_rate_limit(body):
                error = "Rate limit exceeded"
            else:
                error = body.splitlines()[0] if body else f"HTTP {resp.status_code}"
            return LLMResult(error=error, status_code=resp.status_code, duration_ms=elapsed_ms)

        try:
            data = resp.json()
        except ValueError:
            return LLMResult(error="Response is not JSON", status_code=resp.status_code, duration_ms=elapsed_ms)
        if not isinstance(data, dict):
            return LLMResult(error="Unexpected response shape", status_code=resp.status_code, duration_ms=elapsed_ms)

        result = self.parse_response(data)
        result.status_code = resp.status_code
        if not result.duration_ms:
            result.duration_ms = elapsed_ms
        return result
