"""Class/method text surgery for brace-delimited languages (C#, Java, TS, C++ …).

This is a structural text search, not a parser: a class body is the block
opened by the ``{`` that ends a ``class <Name>`` header and closed by its
matching ``}``; declarations without such a block (forward declarations,
indentation-based classes) are ignored. A method is its signature followed
by a balanced ``{ … }`` block. String literals and comments are skipped
while balancing braces.
"""

from __future__ import annotations

import re
import textwrap
from typing import Protocol

from codeloop import log


class SourceEditor(Protocol):
    """What the method mutator needs from a source editor."""

    def add_method(self, content: str, class_name: str, signature: str, body: str) -> str: ...

    def update_method(self, content: str, class_name: str, signature: str, body: str) -> str: ...

    def delete_method(self, content: str, class_name: str, signature: str) -> str: ...


_MODIFIER_PREFIX = re.compile(r"^[\s\w\[\]()<>,.=\"]*$")


def matching_brace(content: str, open_idx: int) -> int | None:
    """Index of the ``}`` closing the ``{`` at *open_idx*, or ``None``."""
    depth = 0
    i = open_idx
    n = len(content)
    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue
        if ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        if ch in ("\"", "'"):
            i += 1
            while i < n and content[i] != ch:
                if content[i] == "\\":
                    i += 1
                elif content[i] == "\n":
                    break
                i += 1
            i += 1
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _header_open_brace(content: str, start: int) -> int | None:
    """Index of the ``{`` that opens a class header beginning at *start*.

    Only the header (base list, generics, constraints) may sit in between;
    a ``;`` or a line ending in ``:`` means this declaration has no body.
    """
    line_start = start
    angle = 0
    for i in range(start, len(content)):
        ch = content[i]
        if ch == "{":
            return i
        if ch == "<":
            angle += 1
        elif ch == ">":
            angle = max(0, angle - 1)
        elif ch in ";}" or (ch == "=" and not angle):
            return None
        elif ch == "\n":
            if content[line_start:i].rstrip().endswith(":"):
                return None
            line_start = i + 1
    return None


def find_class_body(content: str, class_name: str) -> tuple[int, int] | None:
    """Return ``(open_brace, close_brace)`` of the first ``class <class_name>`` with a body."""
    for match in re.finditer(rf"\bclass\s+{re.escape(class_name)}\b", content):
        open_idx = _header_open_brace(content, match.end())
        if open_idx is None:
            continue
        close_idx = matching_brace(content, open_idx)
        if close_idx is not None:
            return open_idx, close_idx
    return None


def find_method(content: str, start: int, end: int, signature: str) -> tuple[int, int, int] | None:
    """Locate *signature* + block inside ``content[start:end]``.

    Returns ``(signature_start, open_brace, close_brace)``.
    """
    pattern = re.compile(rf"{re.escape(signature.strip())}\s*\{{")
    match = pattern.search(content, start, end)
    if not match:
        return None
    open_idx = match.end() - 1
    close_idx = matching_brace(content, open_idx)
    if close_idx is None or close_idx > end:
        return None
    return match.start(), open_idx, close_idx


def strip_outer_braces(body: str) -> str:
    """``"{ x; }"`` -> ``"x;"``; bodies without an enclosing block are only stripped."""
    text = body.strip()
    if text.startswith("{") and matching_brace(text, 0) == len(text) - 1:
        return text[1:-1].strip()
    return text


def _line_indent(content: str, idx: int) -> str:
    line_start = content.rfind("\n", 0, idx) + 1
    line = content[line_start:idx]
    return line[: len(line) - len(line.lstrip())]


def render_method(signature: str, body: str, indent: str) -> str:
    """Format a method block. A body that already carries braces is kept verbatim."""
    text = body.strip()
    if text.startswith("{") and matching_brace(text, 0) == len(text) - 1:
        return f"{signature.strip()} {text}"
    inner = textwrap.dedent(text).strip("\n")
    lines = [f"{indent}    {line}" if line.strip() else "" for line in inner.splitlines()]
    block = "\n".join(lines)
    return f"{signature.strip()}\n{indent}{{\n{block}\n{indent}}}"


class BraceSourceEditor:
    """Default :class:`SourceEditor` based on balanced-brace scanning."""

    def add_method(self, content: str, class_name: str, signature: str, body: str) -> str:
        if not body or not body.strip():
            log.error(f"[method] ERROR add {class_name}.{signature}: Missing method body")
            return content
        bounds = find_class_body(content, class_name)
        if bounds is None:
            return content
        open_idx, close_idx = bounds

        existing = find_method(content, open_idx + 1, close_idx, signature)
        if existing is not None:
            _, m_open, m_close = existing
            current = content[m_open + 1 : m_close].strip()
            requested = strip_outer_braces(body)
            if requested != current and len(requested) > len(current):
                return self.update_method(content, class_name, signature, body)
            log.debug(f"[method] {class_name}.{signature} kept (requested body is not longer)")
            return content

        indent = _line_indent(content, open_idx) + "    "
        method = render_method(signature, body, indent)
        line_start = content.rfind("\n", 0, close_idx) + 1
        if content[line_start:close_idx].strip() == "":
            return content[:line_start] + f"{indent}{method}\n" + content[line_start:]
        return content[:close_idx] + f"\n{indent}{method}\n" + content[close_idx:]

    def update_method(self, content: str, class_name: str, signature: str, body: str) -> str:
        located = self._locate(content, class_name, signature)
        if located is None:
            return content
        sig_start, _, close_idx = located
        indent = _line_indent(content, sig_start)
        method = render_method(signature, body, indent)
        return content[:sig_start] + method + content[close_idx + 1 :]

    def delete_method(self, content: str, class_name: str, signature: str) -> str:
        located = self._locate(content, class_name, signature)
        if located is None:
            return content
        sig_start, _, close_idx = located

        start = sig_start
        line_start = content.rfind("\n", 0, sig_start) + 1
        if _MODIFIER_PREFIX.match(content[line_start:sig_start]):
            start = line_start
        end = close_idx + 1
        line_end = content.find("\n", end)
        if line_end != -1 and content[end:line_end].strip() == "":
            end = line_end + 1
        return content[:start] + content[end:]

    @staticmethod
    def _locate(content: str, class_name: str, signature: str) -> tuple[int, int, int] | None:
        bounds = find_class_body(content, class_name)
        if bounds is None:
            return None
        open_idx, close_idx = bounds
        return find_method(content, open_idx + 1, close_idx, signature)
