"""Tests for the MCP server catalogue."""

from __future__ import annotations

import json
from pathlib import Path

from codeloop.io_utils import write_text
from codeloop.mcp_servers import NO_COMMANDS, describe_actions, load_active_servers


def _server(path: Path, name: str, active: bool, actions: list[dict]) -> None:
    write_text(path / f"{name}.json", json.dumps({"name": name, "active": active, "actions": actions}))


class TestCatalogue:
    def test_only_active_servers_are_loaded(self, tmp_path: Path) -> None:
        _server(tmp_path, "unity", True, [{"action": "start", "parameters": {}}])
        _server(tmp_path, "old", False, [{"action": "stop"}])
        write_text(tmp_path / "broken.json", "{oops")
        write_text(tmp_path / "notes.txt", "ignored")

        servers = load_active_servers(tmp_path)

        assert [s.name for s in servers] == ["unity"]
        assert servers[0].file_name == "unity.json"

    def test_describe_actions(self, tmp_path: Path) -> None:
        _server(tmp_path, "unity", True, [
            {"action": "start", "parameters": {}},
            {"action": "move", "parameters": {"x": 0, "y": 0}},
        ])
        text = describe_actions(load_active_servers(tmp_path))
        assert text == "Action: start, Parameters: \nAction: move, Parameters: x, y\n"

    def test_no_servers(self, tmp_path: Path) -> None:
        assert load_active_servers(tmp_path / "missing") == []
        assert load_active_servers("") == []
        assert describe_actions([]) == NO_COMMANDS
