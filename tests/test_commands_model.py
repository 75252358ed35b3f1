"""Tests for the command taxonomy and developer-output parsing."""

from __future__ import annotations

from codeloop.commands.model import CommandsData, FileCommand, McpCommand, MethodCommand


class TestCommandsData:
    def test_parses_all_three_kinds(self) -> None:
        data = {
            "fileCommands": [{"action": "CREATE", "path": "a.cs", "content": "x"}],
            "methodCommands": [
                {"action": "add", "className": "A", "methodSignature": "void B()", "methodBody": "{}"}
            ],
            "mcpCommands": [{"action": "start", "parameters": {"scene": "Main"}}],
        }
        commands = CommandsData.from_dict(data)
        assert commands is not None
        assert commands.file_commands == [FileCommand("create", "a.cs", "x")]
        assert commands.method_commands == [MethodCommand("add", "A", "void B()", "{}")]
        assert commands.mcp_commands == [McpCommand("start", {"scene": "Main"})]
        assert len(commands) == 3

    def test_partial_object_is_accepted(self) -> None:
        commands = CommandsData.from_dict({"mcpCommands": [{"action": "start"}]})
        assert commands is not None
        assert commands.file_commands == []
        assert commands.mcp_commands[0].parameters == {}

    def test_non_command_values_are_rejected(self) -> None:
        assert CommandsData.from_dict({"tasks": []}) is None
        assert CommandsData.from_dict([1, 2]) is None
        assert CommandsData.from_dict(None) is None

    def test_junk_items_are_dropped(self) -> None:
        commands = CommandsData.from_dict({"fileCommands": ["junk", {"action": "update", "path": "p"}]})
        assert commands is not None
        assert len(commands.file_commands) == 1
        assert commands.file_commands[0].content == ""

    def test_to_dict_is_camel_case(self) -> None:
        data = CommandsData(method_commands=[MethodCommand("delete", "A", "void B()")]).to_dict()
        assert data["methodCommands"][0] == {
            "action": "delete",
            "className": "A",
            "methodSignature": "void B()",
            "methodBody": "",
        }

    def test_is_empty(self) -> None:
        assert CommandsData().is_empty()
        assert not CommandsData(mcp_commands=[McpCommand("x")]).is_empty()

    def test_kind_tags(self) -> None:
        assert (FileCommand.kind, MethodCommand.kind, McpCommand.kind) == ("file", "method", "mcp")
