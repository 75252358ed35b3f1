"""Catalogue of target-side command servers, read from JSON descriptions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codeloop import log
from codeloop.io_utils import read_text

NO_COMMANDS = "No MCP commands found."


@dataclass(frozen=True)
class ServerAction:
    action: str
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def parameter_names(self) -> list[str]:
        return list(self.parameters)


@dataclass(frozen=True)
class ServerConfig:
    name: str
    file_name: str
    active: bool = False
    actions: tuple[ServerAction, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any], file_name: str) -> ServerConfig:
        actions: list[ServerAction] = []
        for item in data.get("actions") or []:
            if isinstance(item, dict) and item.get("action"):
                params = item.get("parameters")
                actions.append(ServerAction(
                    action=str(item["action"]),
                    parameters=dict(params) if isinstance(params, dict) else {},
                ))
        return cls(
            name=str(data.get("name") or Path(file_name).stem),
            file_name=file_name,
            active=bool(data.get("active")),
            actions=tuple(actions),
        )


def load_active_servers(directory: Path | str | None) -> list[ServerConfig]:
    """Active server descriptions (``"active": true`` with an ``actions`` list)."""
    if not directory:
        return []
    base = Path(directory)
    if not base.is_dir():
        log.debug(f"MCP servers directory not found: {base}")
        return []

    servers: list[ServerConfig] = []
    for path in sorted(base.glob("*.json")):
        try:
            data = json.loads(read_text(path))
        except (OSError, json.JSONDecodeError) as e:
            log.warn(f"Error parsing MCP server file {path.name}: {e}")
            continue
        if not isinstance(data, dict) or not isinstance(data.get("actions"), list):
            continue
        server = ServerConfig.from_dict(data, path.name)
        if server.active:
            log.debug(f"Active MCP server: {server.name} ({len(server.actions)} actions)")
            servers.append(server)
    return servers


def describe_actions(servers: list[ServerConfig]) -> str:
    """Render ``Action: x, Parameters: a, b`` lines for the developer prompt."""
    lines = [
        f"Action: {action.action}, Parameters: {', '.join(action.parameter_names)}"
        for server in servers
        for action in server.actions
    ]
    if not lines:
        return NO_COMMANDS
    return "\n".join(lines) + "\n"
