"""Best-effort project snapshot: languages, frameworks, classes and methods.

Regex based and intentionally shallow; the result only feeds prompts.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codeloop import log
from codeloop.io_utils import read_source, walk_files

EXT_LANGUAGES: dict[str, str] = {
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".php": "PHP",
    ".cs": "C#",
    ".java": "Java",
    ".rb": "Ruby",
    ".go": "Go",
    ".rs": "Rust",
    ".cpp": "C++",
    ".hpp": "C++",
    ".c": "C",
    ".h": "C",
    ".swift": "Swift",
    ".dart": "Dart",
    ".scala": "Scala",
    ".kt": "Kotlin",
    ".lua": "Lua",
    ".mojo": "Mojo",
}

PACKAGE_MANAGERS: tuple[tuple[str, str], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("package.json", "npm"),
    ("poetry.lock", "poetry"),
    ("pyproject.toml", "pip"),
    ("requirements.txt", "pip"),
    ("Cargo.toml", "cargo"),
    ("go.mod", "go"),
    ("composer.json", "composer"),
    ("Gemfile", "bundler"),
    ("pom.xml", "maven"),
    ("build.gradle", "gradle"),
    ("packages.config", "nuget"),
)

# (framework, marker file name, substring that must appear in it)
FRAMEWORK_MARKERS: tuple[tuple[str, str, str], ...] = (
    ("React", "package.json", '"react"'),
    ("Vue.js", "package.json", '"vue"'),
    ("Angular", "package.json", '"@angular/core"'),
    ("Express", "package.json", '"express"'),
    ("Django", "requirements.txt", "django"),
    ("Flask", "requirements.txt", "flask"),
    ("FastAPI", "requirements.txt", "fastapi"),
    ("Django", "pyproject.toml", "django"),
    ("Flask", "pyproject.toml", "flask"),
    ("FastAPI", "pyproject.toml", "fastapi"),
    ("Laravel", "composer.json", "laravel/framework"),
    ("Symfony", "composer.json", "symfony/"),
    ("Ruby on Rails", "Gemfile", "rails"),
    ("Spring Boot", "pom.xml", "spring-boot"),
    ("Unity", "ProjectVersion.txt", "m_EditorVersion"),
)

_CLASS_RE = re.compile(r"\b(?:class|struct|interface)\s+([A-Za-z_]\w*)")
_METHOD_RE = re.compile(
    r"^\s*(?:(?:public|private|protected|internal|static|override|virtual|sealed|abstract|"
    r"async|export|final|def|func|fn|function)\s+)*"
    r"(?:[\w<>\[\],?.]+\s+)?([A-Za-z_]\w*)\s*\([^)]*\)\s*(?:->\s*[^:{]+)?\s*(?:\{|=>|:|$)",
    re.MULTILINE,
)
_NOT_METHODS = frozenset({
    "if", "for", "foreach", "while", "switch", "catch", "return", "using", "lock",
    "new", "else", "do", "try", "sizeof", "typeof", "nameof", "class", "print",
})


@dataclass
class ProjectSnapshot:
    root: Path
    languages: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    package_manager: str = ""
    files: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)
    files_with_methods: list[str] = field(default_factory=list)

    def info(self) -> dict[str, Any]:
        return {
            "languages": self.languages,
            "frameworks": self.frameworks,
            "packageManager": self.package_manager,
        }

    def info_text(self) -> str:
        return json.dumps(self.info(), ensure_ascii=False)


def extract_classes(content: str) -> list[str]:
    return list(dict.fromkeys(_CLASS_RE.findall(content)))


def extract_methods(content: str) -> list[str]:
    names = [name for name in _METHOD_RE.findall(content) if name not in _NOT_METHODS]
    return list(dict.fromkeys(names))


def _detect_frameworks(root: Path, by_name: dict[str, list[Path]]) -> list[str]:
    found: list[str] = []
    for framework, marker, needle in FRAMEWORK_MARKERS:
        if framework in found:
            continue
        for path in by_name.get(marker, []):
            content = read_source(path) or ""
            if needle.lower() in content.lower():
                found.append(framework)
                break
    return found


def _detect_package_manager(root: Path, by_name: dict[str, list[Path]]) -> str:
    for marker, manager in PACKAGE_MANAGERS:
        if (root / marker).is_file():
            return manager
    if any(name.endswith(".csproj") for name in by_name):
        return "nuget"
    return ""


def scan_project(root: Path | str, *, max_files: int = 5000) -> ProjectSnapshot:
    """Walk *root* and summarise it. A missing root yields an empty snapshot."""
    root = Path(root)
    snapshot = ProjectSnapshot(root=root)
    if not root.is_dir():
        log.warn(f"Project directory does not exist: {root}")
        return snapshot

    by_name: dict[str, list[Path]] = {}
    languages: dict[str, None] = {}
    classes: dict[str, None] = {}
    methods: dict[str, None] = {}

    for count, path in enumerate(walk_files(root)):
        if count >= max_files:
            log.warn(f"Scan stopped after {max_files} files")
            break
        rel = path.relative_to(root).as_posix()
        snapshot.files.append(rel)
        by_name.setdefault(path.name, []).append(path)

        language = EXT_LANGUAGES.get(path.suffix.lower())
        if not language:
            continue
        languages[language] = None
        content = read_source(path)
        if content is None:
            continue
        for name in extract_classes(content):
            classes[name] = None
        file_methods = extract_methods(content)
        for name in file_methods:
            methods[name] = None
        if file_methods:
            snapshot.files_with_methods.append(f"{rel}: {'; '.join(file_methods)}")

    snapshot.languages = list(languages)
    snapshot.classes = list(classes)
    snapshot.methods = list(methods)
    snapshot.frameworks = _detect_frameworks(root, by_name)
    snapshot.package_manager = _detect_package_manager(root, by_name)

    log.debug(
        f"Project scanned: {len(snapshot.files)} files, languages={snapshot.languages}, "
        f"classes={len(snapshot.classes)}, methods={len(snapshot.methods)}"
    )
    return snapshot
