"""Transactional file mutator: create/update whole files, all or nothing."""

from __future__ import annotations

from pathlib import Path

from codeloop import log
from codeloop.commands.backup import Transaction, backup_path_for
from codeloop.commands.model import FILE_ACTIONS, FileCommand
from codeloop.errors import MutationError
from codeloop.io_utils import write_text


def resolve_under(root: Path, rel: str) -> Path:
    """Join *rel* onto *root*, refusing paths that escape it."""
    candidate = (root / rel.lstrip("/\\")).resolve()
    if candidate != root and root not in candidate.parents:
        raise MutationError(f"Path escapes project root: {rel}")
    return candidate


class FileMutator:
    """Applies a batch of :class:`FileCommand`.

    Every touched file is copied to ``<file>.bak`` first. If any command
    raises, every file is restored and the exception propagates; otherwise
    the backups are removed.
    """

    kind = "file"

    def apply(self, commands: list[FileCommand], root_dir: Path | str) -> int:
        """Apply *commands* under *root_dir*. Returns the number applied."""
        root = Path(root_dir).resolve()
        if not root.is_dir():
            log.error(f"Root directory does not exist: {root}")
            return 0

        planned = self._plan(commands, root)
        applied = 0
        with Transaction("file") as txn:
            for cmd, target in planned:
                txn.backup(target)

                if cmd.action == "create":
                    txn.make_parents(target)
                write_text(target, cmd.content)

                applied += 1
                log.info(f"[file] {cmd.action}: {target}")
                log.debug(f"Content: {cmd.content}")
        return applied

    def _plan(self, commands: list[FileCommand], root: Path) -> list[tuple[FileCommand, Path]]:
        """Validate the batch and resolve its targets before anything is written."""
        planned: list[tuple[FileCommand, Path]] = []
        for cmd in commands:
            if not cmd.path or not cmd.content:
                log.error(f"[file] ERROR {cmd.action} {cmd.path}: Missing path or content")
                continue
            if cmd.action not in FILE_ACTIONS:
                log.error(f"[file] ERROR unknown action '{cmd.action}' for {cmd.path}")
                continue
            target = resolve_under(root, cmd.path)
            if target.is_file() and backup_path_for(target).exists():
                raise MutationError(f"Backup path already exists: {backup_path_for(target)}")
            planned.append((cmd, target))
        return planned
