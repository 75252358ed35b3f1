"""Tests for failure classification and the plain-text log file."""

from __future__ import annotations

from pathlib import Path

import pytest

from codeloop import log
from codeloop.errors import (
    CodeloopError,
    ConfigError,
    MutationError,
    failure_lines,
    looks_like_protocol_error,
    looks_like_rate_limit,
)
from codeloop.io_utils import read_text


class TestFailureLines:
    def test_picks_error_and_exception_lines(self):
        text = "Loaded scene\nNullReferenceException: x\nok\nAssets/P.cs(3,4): error CS0103\nError CS1002"
        assert failure_lines(text) == ["NullReferenceException: x", "Error CS1002"]

    def test_markers_are_case_sensitive(self):
        assert failure_lines("errors: 0\nexception count 0") == []

    def test_empty(self):
        assert failure_lines("") == []


class TestProtocolError:
    def test_marker(self):
        assert looks_like_protocol_error("Error: unknown action")
        assert not looks_like_protocol_error("Error without colon")
        assert not looks_like_protocol_error("")


class TestRateLimit:
    @pytest.mark.parametrize("text", ["Rate limit exceeded", "HTTP 429", "quota exhausted", "Too Many Requests"])
    def test_detected(self, text: str):
        assert looks_like_rate_limit(text)

    def test_not_detected(self):
        assert not looks_like_rate_limit("model not found")
        assert not looks_like_rate_limit("")


def test_hierarchy():
    assert issubclass(ConfigError, CodeloopError)
    assert issubclass(MutationError, CodeloopError)


class TestLogFile:
    def test_messages_are_mirrored(self, tmp_path: Path):
        path = tmp_path / "logs" / "run.log"
        log.set_log_file(path)
        try:
            log.info("hello")
            log.debug("quiet")
            log.error("boom")
        finally:
            log.set_log_file(None)

        lines = read_text(path).splitlines()
        assert len(lines) == 3
        assert lines[0].endswith("[INFO] hello")
        assert lines[1].endswith("[DEBUG] quiet")
        assert lines[2].endswith("[ERROR] boom")
