"""Mutation command taxonomy: file, method and protocol commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FILE_ACTIONS = ("create", "update")
METHOD_ACTIONS = ("add", "update", "delete")


@dataclass(frozen=True)
class FileCommand:
    action: str
    path: str = ""
    content: str = ""

    kind = "file"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileCommand:
        return cls(
            action=str(data.get("action") or "").lower(),
            path=str(data.get("path") or ""),
            content=data.get("content") if isinstance(data.get("content"), str) else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "path": self.path, "content": self.content}


@dataclass(frozen=True)
class MethodCommand:
    action: str
    class_name: str = ""
    method_signature: str = ""
    method_body: str = ""

    kind = "method"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MethodCommand:
        return cls(
            action=str(data.get("action") or "").lower(),
            class_name=str(data.get("className") or data.get("class_name") or ""),
            method_signature=str(data.get("methodSignature") or data.get("method_signature") or ""),
            method_body=str(data.get("methodBody") or data.get("method_body") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "className": self.class_name,
            "methodSignature": self.method_signature,
            "methodBody": self.method_body,
        }


@dataclass(frozen=True)
class McpCommand:
    action: str
    parameters: dict[str, Any] = field(default_factory=dict)

    kind = "mcp"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> McpCommand:
        params = data.get("parameters")
        return cls(
            action=str(data.get("action") or ""),
            parameters=dict(params) if isinstance(params, dict) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "parameters": dict(self.parameters)}


Command = FileCommand | MethodCommand | McpCommand


def _items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


@dataclass
class CommandsData:
    """Everything the developer stage asked for, for one task."""

    file_commands: list[FileCommand] = field(default_factory=list)
    method_commands: list[MethodCommand] = field(default_factory=list)
    mcp_commands: list[McpCommand] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> CommandsData | None:
        """Parse developer output; ``None`` when *data* is not a command object."""
        if not isinstance(data, dict):
            return None
        keys = ("fileCommands", "methodCommands", "mcpCommands")
        if not any(key in data for key in keys):
            return None
        return cls(
            file_commands=[FileCommand.from_dict(d) for d in _items(data, "fileCommands")],
            method_commands=[MethodCommand.from_dict(d) for d in _items(data, "methodCommands")],
            mcp_commands=[McpCommand.from_dict(d) for d in _items(data, "mcpCommands")],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileCommands": [c.to_dict() for c in self.file_commands],
            "methodCommands": [c.to_dict() for c in self.method_commands],
            "mcpCommands": [c.to_dict() for c in self.mcp_commands],
        }

    def is_empty(self) -> bool:
        return not (self.file_commands or self.method_commands or self.mcp_commands)

    def __len__(self) -> int:
        return len(self.file_commands) + len(self.method_commands) + len(self.mcp_commands)
