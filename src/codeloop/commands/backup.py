"""Copy-based file backups and the transaction that owns them.

A :class:`Transaction` lives for exactly one mutator ``apply`` call. Leaving
its ``with`` block normally deletes every backup; leaving it through an
exception restores every file it touched and re-raises.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from codeloop import log
from codeloop.errors import MutationError
from codeloop.io_utils import BACKUP_SUFFIX


@dataclass(frozen=True)
class BackupRecord:
    original_path: Path
    backup_path: Path
    existed: bool


def backup_path_for(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def backup_file(path: Path) -> BackupRecord:
    """Copy *path* to its sibling ``.bak`` (if the file exists).

    Raises :class:`MutationError` when that sibling is already taken, so a
    ``.bak`` this transaction did not write is never overwritten or removed.
    """
    backup = backup_path_for(path)
    existed = path.is_file()
    if existed:
        if backup.exists():
            raise MutationError(f"Backup path already exists: {backup}")
        shutil.copy2(path, backup)
    return BackupRecord(original_path=path, backup_path=backup, existed=existed)


def restore_file(record: BackupRecord) -> None:
    """Put the pre-mutation content back and drop the backup."""
    if record.existed:
        shutil.copy2(record.backup_path, record.original_path)
        record.backup_path.unlink()
    else:
        record.original_path.unlink(missing_ok=True)


def cleanup_backup(record: BackupRecord) -> None:
    if record.existed:
        record.backup_path.unlink(missing_ok=True)


class Transaction:
    """Backups (and created directories) for one batch of mutations."""

    def __init__(self, label: str = "file") -> None:
        self.label = label
        self.records: list[BackupRecord] = []
        self.created_dirs: list[Path] = []
        self._seen: set[Path] = set()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None:
            self.commit()
        else:
            self.rollback()
            log.error(f"[{self.label}] TRANSACTION ROLLBACK: {exc}")
        return False

    def backup(self, path: Path) -> BackupRecord | None:
        """Back up *path* once per transaction; later calls keep the first copy."""
        if path in self._seen:
            return None
        self._seen.add(path)
        record = backup_file(path)
        self.records.append(record)
        return record

    def make_parents(self, path: Path) -> None:
        """Create the parent directories of *path*, remembering the new ones."""
        missing: list[Path] = []
        parent = path.parent
        while not parent.exists():
            missing.append(parent)
            parent = parent.parent
        path.parent.mkdir(parents=True, exist_ok=True)
        # deepest last so rollback can walk the list backwards
        self.created_dirs.extend(reversed(missing))

    def commit(self) -> None:
        for record in self.records:
            cleanup_backup(record)
        self.records.clear()
        self.created_dirs.clear()

    def rollback(self) -> None:
        for record in reversed(self.records):
            try:
                restore_file(record)
            except OSError as e:
                log.error(f"[{self.label}] Could not restore {record.original_path}: {e}")
        for directory in reversed(self.created_dirs):
            try:
                directory.rmdir()
            except OSError:
                log.debug(f"[{self.label}] Leaving non-empty directory {directory}")
        self.records.clear()
        self.created_dirs.clear()
