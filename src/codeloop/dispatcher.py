"""Mutation dispatcher: fan one CommandsData out to file, method and protocol appliers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from codeloop import log
from codeloop.commands.files import FileMutator
from codeloop.commands.methods import MethodMutator
from codeloop.commands.model import CommandsData
from codeloop.protocol import ProtocolClient


class CommandApplier(Protocol):
    kind: str

    def select(self, commands: CommandsData) -> list[Any]: ...

    def apply(self, batch: list[Any], root_dir: Path) -> Any: ...


class FileApplier:
    kind = "file"

    def __init__(self, mutator: FileMutator) -> None:
        self.mutator = mutator

    def select(self, commands: CommandsData) -> list[Any]:
        return list(commands.file_commands)

    def apply(self, batch: list[Any], root_dir: Path) -> int:
        return self.mutator.apply(batch, root_dir)


class MethodApplier:
    kind = "method"

    def __init__(self, mutator: MethodMutator) -> None:
        self.mutator = mutator

    def select(self, commands: CommandsData) -> list[Any]:
        return list(commands.method_commands)

    def apply(self, batch: list[Any], root_dir: Path) -> int:
        return self.mutator.apply(batch, root_dir)


class McpApplier:
    kind = "mcp"

    def __init__(self, client: ProtocolClient) -> None:
        self.client = client

    def select(self, commands: CommandsData) -> list[Any]:
        return list(commands.mcp_commands)

    def apply(self, batch: list[Any], root_dir: Path) -> str:
        return self.client.send_batch(batch)


@dataclass
class DispatchReport:
    """What each applier returned, and which kinds raised."""

    results: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class MutationDispatcher:
    """Runs the three appliers independently, in a fixed order.

    An exception from one kind is logged and recorded; the other kinds
    still run.
    """

    def __init__(
        self,
        protocol: ProtocolClient,
        file_mutator: FileMutator | None = None,
        method_mutator: MethodMutator | None = None,
    ) -> None:
        self.appliers: tuple[CommandApplier, ...] = (
            FileApplier(file_mutator or FileMutator()),
            MethodApplier(method_mutator or MethodMutator()),
            McpApplier(protocol),
        )

    def dispatch(self, commands: CommandsData, root_dir: Path | str) -> DispatchReport:
        root = Path(root_dir)
        report = DispatchReport()
        for applier in self.appliers:
            batch = applier.select(commands)
            if not batch:
                continue
            try:
                report.results[applier.kind] = applier.apply(batch, root)
            except Exception as e:
                report.errors[applier.kind] = str(e)
                log.error(f"[{applier.kind}] commands failed: {e}")
        return report
