"""Logging utilities with colored output via Rich and an optional plain log file."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from codeloop.io_utils import open_text

console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)

_verbose = False
_log_file: Path | None = None


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def set_log_file(path: Path | str | None) -> None:
    """Mirror every message (debug included) to *path*. ``None`` disables it."""
    global _log_file
    if path is None:
        _log_file = None
        return
    _log_file = Path(path)
    _log_file.parent.mkdir(parents=True, exist_ok=True)


def _to_file(level: str, msg: str) -> None:
    if _log_file is None:
        return
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    with open_text(_log_file, "a") as f:
        f.write(f"{ts} [{level}] {msg}\n")


def info(msg: str) -> None:
    _to_file("INFO", msg)
    console.print(f"[blue]\\[INFO][/blue] {escape(msg)}")


def success(msg: str) -> None:
    _to_file("OK", msg)
    console.print(f"[green]\\[OK][/green] {escape(msg)}")


def warn(msg: str) -> None:
    _to_file("WARN", msg)
    console.print(f"[yellow]\\[WARN][/yellow] {escape(msg)}")


def error(msg: str) -> None:
    _to_file("ERROR", msg)
    _err_console.print(f"[red]\\[ERROR][/red] {escape(msg)}")


def debug(msg: str) -> None:
    _to_file("DEBUG", msg)
    if _verbose:
        console.print(f"[dim]\\[DEBUG] {escape(msg)}[/dim]")
