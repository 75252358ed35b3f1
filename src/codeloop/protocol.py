"""Command protocol client: JSON POST ``{action, parameters}`` to the target's control endpoint."""

from __future__ import annotations

import json
from typing import Any, Iterable

import httpx

from codeloop import log
from codeloop.commands.model import McpCommand
from codeloop.errors import looks_like_protocol_error


class ProtocolClient:
    """Stateless sender of named actions.

    Every call is an independent request. Transport failures (connection
    errors, timeouts, non-2xx) and logical failures (a body containing
    ``"Error:"``) are logged and yield an empty string; nothing is retried.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        token: str = "",
        timeout: float = 300.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ProtocolClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def send(self, action: str, parameters: dict[str, Any] | None = None, *, check_errors: bool = True) -> str:
        """Send one action; return its result text or ``""`` on any failure.

        With ``check_errors=False`` a body containing ``"Error:"`` is returned
        as-is (used when reading target logs, which legitimately hold errors).
        """
        payload = {"action": action, "parameters": parameters or {}}
        log.debug(f"[mcp] -> {action} {parameters or {}}")
        try:
            response = self._client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            log.error(f"[mcp] {action} failed: {e}")
            return ""

        if not response.is_success:
            log.error(f"[mcp] {action} failed: HTTP {response.status_code}")
            return ""

        result = _extract_response(response.text)
        if check_errors and looks_like_protocol_error(result):
            log.error(f"[mcp] {action} returned an error: {result}")
            return ""
        log.debug(f"[mcp] <- {action}: {result}")
        return result

    def send_batch(self, commands: Iterable[McpCommand]) -> str:
        """Send *commands* in order; join the non-empty results with newlines."""
        results: list[str] = []
        for cmd in commands:
            if not cmd.action:
                log.error("[mcp] ERROR: command without action skipped")
                continue
            result = self.send(cmd.action, cmd.parameters)
            if result:
                results.append(result)
        return "\n".join(results)


def _extract_response(body: str) -> str:
    """Return the ``response`` field of a ``{"action", "response"}`` body, else the body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(data, dict) and "response" in data:
        value = data["response"]
        return value if isinstance(value, str) else json.dumps(value)
    return body
