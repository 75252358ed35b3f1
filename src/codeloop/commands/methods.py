"""Transactional method mutator: add/update/delete methods inside named classes."""

from __future__ import annotations

from pathlib import Path

from codeloop import log
from codeloop.commands.backup import Transaction
from codeloop.commands.model import METHOD_ACTIONS, MethodCommand
from codeloop.commands.source_editor import BraceSourceEditor, SourceEditor
from codeloop.io_utils import read_source, walk_files, write_text


def find_files_by_class(root: Path, class_name: str) -> list[Path]:
    """Text files under *root* whose content contains ``class <class_name>``."""
    needle = f"class {class_name}"
    matches: list[Path] = []
    for path in walk_files(root):
        content = read_source(path)
        if content is not None and needle in content:
            matches.append(path)
    return matches


class MethodMutator:
    """Applies :class:`MethodCommand` batches through a :class:`SourceEditor`.

    Each command is its own transaction over every file it matched: a
    failure restores those files, is logged, and the next command runs.
    """

    kind = "method"

    def __init__(self, editor: SourceEditor | None = None) -> None:
        self.editor: SourceEditor = editor or BraceSourceEditor()

    def apply(self, commands: list[MethodCommand], root_dir: Path | str) -> int:
        """Apply *commands* under *root_dir*. Returns the number of files changed."""
        root = Path(root_dir).resolve()
        if not root.is_dir():
            log.error(f"Root directory does not exist: {root}")
            return 0

        changed = 0
        for cmd in commands:
            if not cmd.class_name or not cmd.method_signature:
                log.error(f"[method] ERROR {cmd.action}: Missing className or methodSignature")
                continue
            if cmd.action not in METHOD_ACTIONS:
                log.error(f"[method] ERROR unknown action '{cmd.action}' for {cmd.class_name}")
                continue

            files = find_files_by_class(root, cmd.class_name)
            if not files:
                log.warn(f"[method] No file declares class {cmd.class_name}")
                continue

            try:
                changed += self._apply_one(cmd, files)
            except Exception as e:
                log.error(f"[method] ERROR {cmd.action} {cmd.class_name}.{cmd.method_signature}: {e}")
        return changed

    def _apply_one(self, cmd: MethodCommand, files: list[Path]) -> int:
        changed = 0
        with Transaction("method") as txn:
            for path in files:
                content = read_source(path)
                if content is None:
                    continue
                updated = self._mutate(cmd, content)
                if updated == content:
                    log.debug(f"[method] {cmd.action} {cmd.class_name}.{cmd.method_signature}: no change in {path}")
                    continue
                txn.backup(path)
                write_text(path, updated)
                changed += 1
                log.info(f"[method] {cmd.action} {cmd.class_name}.{cmd.method_signature}: {path}")
        return changed

    def _mutate(self, cmd: MethodCommand, content: str) -> str:
        match cmd.action:
            case "add":
                return self.editor.add_method(content, cmd.class_name, cmd.method_signature, cmd.method_body)
            case "update":
                return self.editor.update_method(content, cmd.class_name, cmd.method_signature, cmd.method_body)
            case "delete":
                return self.editor.delete_method(content, cmd.class_name, cmd.method_signature)
            case _:
                return content
