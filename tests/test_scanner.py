"""Tests for the project scanner."""

from __future__ import annotations

from pathlib import Path

from codeloop.io_utils import write_text
from codeloop.scanner import extract_classes, extract_methods, scan_project


class TestExtractors:
    def test_classes(self) -> None:
        src = "public class Player {}\ninterface IMove {}\nstruct Vec {}\nclass Player {}"
        assert extract_classes(src) == ["Player", "IMove", "Vec"]

    def test_methods_skip_control_flow(self, player_source: str) -> None:
        methods = extract_methods(player_source + "\nif (x) {\n}\n")
        assert "Score" in methods
        assert "Update" in methods
        assert "if" not in methods

    def test_python_methods(self) -> None:
        assert extract_methods("def run(self) -> None:\n    pass\n") == ["run"]


class TestScanProject:
    def test_snapshot(self, project_dir: Path) -> None:
        write_text(project_dir / "package.json", '{"dependencies": {"react": "18"}}')
        write_text(project_dir / "yarn.lock", "")
        write_text(project_dir / "logo.png", "\x00\x01binary")

        snap = scan_project(project_dir)

        assert "C#" in snap.languages
        assert snap.frameworks == ["React"]
        assert snap.package_manager == "yarn"
        assert "Player" in snap.classes
        assert any(line.startswith("Assets/Scripts/Player.cs: ") for line in snap.files_with_methods)
        assert "logo.png" in snap.files
        assert snap.info()["packageManager"] == "yarn"

    def test_skips_tool_directories(self, project_dir: Path) -> None:
        (project_dir / "node_modules" / "lib").mkdir(parents=True)
        write_text(project_dir / "node_modules" / "lib" / "x.js", "class Hidden {}")
        (project_dir / ".aiproject").mkdir()
        write_text(project_dir / ".aiproject" / "note.cs", "class Hidden2 {}")
        snap = scan_project(project_dir)
        assert "Hidden" not in snap.classes
        assert "Hidden2" not in snap.classes

    def test_missing_root(self, tmp_path: Path) -> None:
        snap = scan_project(tmp_path / "missing")
        assert snap.files == []
        assert snap.languages == []
