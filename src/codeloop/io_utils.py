"""Wrappers for text file I/O with consistent encoding (UTF-8)."""

from __future__ import annotations

from io import TextIOWrapper
from pathlib import Path
from typing import Any, Iterator

PathLike = Path | str

# Directories never worth reading when walking a project tree.
SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".aiproject",
        ".idea",
        ".vscode",
        "node_modules",
        "__pycache__",
        ".venv",
        "venv",
        "bin",
        "obj",
        "Library",
        "Temp",
        "dist",
        "build",
    }
)

BACKUP_SUFFIX = ".bak"


def read_text(path: PathLike, errors: str = "strict", **kwargs: Any) -> str:
    """Read path as text with UTF-8 encoding. Forwards extra kwargs to Path.read_text."""
    p = path if isinstance(path, Path) else Path(path)
    return p.read_text(encoding="utf-8", errors=errors, **kwargs)


def write_text(path: PathLike, text: str, **kwargs: Any) -> None:
    """Write text to path with UTF-8 encoding. Forwards extra kwargs to Path.write_text."""
    p = path if isinstance(path, Path) else Path(path)
    p.write_text(text, encoding="utf-8", **kwargs)


def open_text(
    path: PathLike,
    mode: str = "r",
    *,
    encoding: str = "utf-8",
    errors: str = "strict",
    **kwargs: Any,
) -> TextIOWrapper:
    """Open path for text I/O with UTF-8 by default. Use for append/write (e.g. log files)."""
    p = path if isinstance(path, (Path, str)) else Path(path)
    return open(p, mode, encoding=encoding, errors=errors, **kwargs)


def read_source(path: PathLike) -> str | None:
    """Read a project file as text, or ``None`` when it is binary/unreadable."""
    p = path if isinstance(path, Path) else Path(path)
    try:
        raw = p.read_bytes()
    except OSError:
        return None
    if b"\x00" in raw[:4096]:
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def walk_files(root: PathLike) -> Iterator[Path]:
    """Yield regular files under *root*, pruning :data:`SKIP_DIRS` and backups."""
    base = root if isinstance(root, Path) else Path(root)
    if not base.is_dir():
        return
    for entry in sorted(base.iterdir()):
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if entry.name in SKIP_DIRS:
                continue
            yield from walk_files(entry)
        elif entry.is_file() and not entry.name.endswith(BACKUP_SUFFIX):
            yield entry
