"""Configuration defaults, env vars, and runtime options for codeloop."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from codeloop.errors import ConfigError


DEFAULT_LLM_ENDPOINTS: dict[str, str] = {
    "ollama": "http://localhost:11434/api/chat",
    "openai": "https://api.openai.com/v1/chat/completions",
}
DEFAULT_MCP_ENDPOINT = "http://localhost:8090/"

MAX_ATTEMPTS = 10
SPLIT_THRESHOLD = 21


@dataclass
class Config:
    """Runtime configuration: CLI flags layered over env vars over defaults."""

    # LLM
    provider: str = "ollama"
    llm_endpoint: str = ""
    llm_model: str = ""
    llm_api_key: str = ""
    llm_timeout: float = 300.0
    language: str = "en"
    prompts_dir: str = ""

    # Target control endpoint
    mcp_endpoint: str = ""
    mcp_token: str = ""
    mcp_timeout: float = 300.0
    mcp_servers_dir: str = ""

    # Project
    project_path: str = "."

    # Git
    git_repo_path: str = ""
    git_remote: str = "origin"
    git_branch: str = ""

    # Pipeline
    max_attempts: int = MAX_ATTEMPTS
    split_threshold: int = SPLIT_THRESHOLD
    max_split_depth: int = 2

    # Persistence
    db_path: str = ""

    # Misc
    verbose: bool = False

    def __post_init__(self) -> None:
        if not self.llm_endpoint:
            self.llm_endpoint = (
                os.environ.get("CODELOOP_LLM_ENDPOINT")
                or DEFAULT_LLM_ENDPOINTS.get(self.provider, "")
            )
        if not self.llm_model:
            self.llm_model = os.environ.get("CODELOOP_LLM_MODEL") or "llama3"
        if not self.llm_api_key:
            self.llm_api_key = os.environ.get("CODELOOP_LLM_API_KEY", "")
        if not self.mcp_endpoint:
            self.mcp_endpoint = os.environ.get("CODELOOP_MCP_ENDPOINT") or DEFAULT_MCP_ENDPOINT
        if not self.mcp_token:
            self.mcp_token = os.environ.get("CODELOOP_MCP_TOKEN", "")

    @property
    def project_dir(self) -> Path:
        return Path(self.project_path).resolve()

    @property
    def resolved_db_path(self) -> Path:
        if self.db_path:
            return Path(self.db_path)
        return self.project_dir / ".aiproject" / "audit.db"

    def validate(self) -> None:
        """Raise :class:`ConfigError` for settings the pipeline cannot run with."""
        if self.provider not in DEFAULT_LLM_ENDPOINTS:
            allowed = ", ".join(DEFAULT_LLM_ENDPOINTS)
            raise ConfigError(f"Unknown provider: {self.provider}. Valid providers: {allowed}.")
        if not self.llm_endpoint:
            raise ConfigError("LLM endpoint is not configured")
        if self.max_attempts < 1:
            raise ConfigError("max_attempts must be at least 1")
        if self.split_threshold < 1:
            raise ConfigError("split_threshold must be at least 1")
        if not self.project_dir.is_dir():
            raise ConfigError(f"Project directory does not exist: {self.project_dir}")


def resolve_repo_root(cwd: Path | None = None) -> Path | None:
    """Return the git repository root containing *cwd*, or ``None``."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=True,
            cwd=cwd,
        )
        return Path(result.stdout.strip())
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
