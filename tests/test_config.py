"""Tests for codeloop.config.Config defaults, env fallbacks and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from codeloop.config import (
    DEFAULT_LLM_ENDPOINTS,
    DEFAULT_MCP_ENDPOINT,
    MAX_ATTEMPTS,
    Config,
    resolve_repo_root,
)
from codeloop.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "CODELOOP_LLM_ENDPOINT",
        "CODELOOP_LLM_MODEL",
        "CODELOOP_LLM_API_KEY",
        "CODELOOP_MCP_ENDPOINT",
        "CODELOOP_MCP_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_provider_endpoint_defaults(self):
        assert Config().llm_endpoint == DEFAULT_LLM_ENDPOINTS["ollama"]
        assert Config(provider="openai").llm_endpoint == DEFAULT_LLM_ENDPOINTS["openai"]

    def test_pipeline_defaults(self):
        cfg = Config()
        assert cfg.max_attempts == MAX_ATTEMPTS == 10
        assert cfg.split_threshold == 21
        assert cfg.mcp_endpoint == DEFAULT_MCP_ENDPOINT
        assert cfg.git_repo_path == ""
        assert cfg.git_branch == ""

    def test_env_fallbacks(self, monkeypatch):
        monkeypatch.setenv("CODELOOP_LLM_MODEL", "qwen")
        monkeypatch.setenv("CODELOOP_MCP_ENDPOINT", "http://unity:9000/")
        monkeypatch.setenv("CODELOOP_MCP_TOKEN", "secret")
        cfg = Config()
        assert cfg.llm_model == "qwen"
        assert cfg.mcp_endpoint == "http://unity:9000/"
        assert cfg.mcp_token == "secret"

    def test_explicit_values_win_over_env(self, monkeypatch):
        monkeypatch.setenv("CODELOOP_LLM_ENDPOINT", "http://env")
        assert Config(llm_endpoint="http://flag").llm_endpoint == "http://flag"

    def test_db_path(self, tmp_path: Path):
        assert Config(project_path=str(tmp_path)).resolved_db_path == tmp_path.resolve() / ".aiproject" / "audit.db"
        assert Config(db_path="x.db").resolved_db_path == Path("x.db")


class TestValidate:
    def test_valid(self, tmp_path: Path):
        Config(project_path=str(tmp_path)).validate()

    def test_unknown_provider(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Unknown provider"):
            Config(provider="gemini", project_path=str(tmp_path)).validate()

    def test_attempts_must_be_positive(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            Config(max_attempts=0, project_path=str(tmp_path)).validate()

    def test_missing_project_dir(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="does not exist"):
            Config(project_path=str(tmp_path / "nope")).validate()


def test_resolve_repo_root(git_repo: Path, tmp_path_factory):
    sub = git_repo / "sub"
    sub.mkdir()
    assert resolve_repo_root(sub).resolve() == git_repo.resolve()
    assert resolve_repo_root(tmp_path_factory.mktemp("plain")) is None
