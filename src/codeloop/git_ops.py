"""Git operations: commit-and-push on success, hard reset on exhaustion."""

from __future__ import annotations

import subprocess
from pathlib import Path

from codeloop import log


def _git(*args: str, cwd: Path | None = None, check: bool = False) -> subprocess.CompletedProcess[str]:
    """Run a git command, suppressing stderr noise."""
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
        check=check,
    )


def is_repo(cwd: Path | None = None) -> bool:
    r = _git("rev-parse", "--is-inside-work-tree", cwd=cwd)
    return r.returncode == 0 and r.stdout.strip() == "true"


def init_repo(cwd: Path | None = None) -> bool:
    r = _git("init", cwd=cwd)
    return r.returncode == 0


def ensure_repo(cwd: Path | None = None) -> bool:
    """Initialise a repository at *cwd* unless one already exists."""
    if is_repo(cwd=cwd):
        return True
    log.info(f"Initializing git repository in {cwd or Path.cwd()}")
    return init_repo(cwd=cwd)


def current_branch(cwd: Path | None = None) -> str:
    r = _git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)
    return r.stdout.strip() if r.returncode == 0 else "main"


def has_remote(remote: str, cwd: Path | None = None) -> bool:
    r = _git("remote", "get-url", remote, cwd=cwd)
    return r.returncode == 0


def has_dirty_worktree(cwd: Path | None = None) -> bool:
    r = _git("status", "--porcelain", cwd=cwd)
    return bool(r.stdout.strip())


def pull_rebase(remote: str, branch: str, cwd: Path | None = None) -> bool:
    r = _git("pull", "--rebase", "--autostash", remote, branch, cwd=cwd)
    return r.returncode == 0


def push(remote: str, branch: str, cwd: Path | None = None) -> bool:
    r = _git("push", "-u", remote, branch, cwd=cwd)
    return r.returncode == 0


def add_and_commit(message: str, cwd: Path | None = None) -> bool:
    _git("add", ".", cwd=cwd)
    r = _git("commit", "-m", message, cwd=cwd)
    return r.returncode == 0


# ── Success / exhaustion ─────────────────────────────────────────────

def commit_and_push(repo_path: Path, message: str, remote: str = "origin", branch: str = "") -> bool:
    """Stage everything, commit with *message* and push when a remote exists.

    Returns ``True`` when a commit was created. Push problems are logged
    but do not undo the local commit.
    """
    if not ensure_repo(cwd=repo_path):
        log.error(f"Could not initialize git repository at {repo_path}")
        return False

    if not has_dirty_worktree(cwd=repo_path):
        log.warn(f"Nothing to commit for: {message}")
        return False

    branch = branch or current_branch(cwd=repo_path)
    remote_ok = has_remote(remote, cwd=repo_path)
    if remote_ok and not pull_rebase(remote, branch, cwd=repo_path):
        log.warn(f"git pull --rebase {remote} {branch} failed; committing on top of local state")

    if not add_and_commit(message, cwd=repo_path):
        log.error(f"git commit failed for: {message}")
        return False
    log.success(f"Committed: {message}")

    if remote_ok:
        if push(remote, branch, cwd=repo_path):
            log.success(f"Pushed to {remote}/{branch}")
        else:
            log.warn(f"git push {remote} {branch} failed")
    else:
        log.debug(f"No remote '{remote}' configured; skipping push")
    return True


def reset_hard(repo_path: Path) -> bool:
    """Discard tracked changes with ``git reset --hard HEAD``."""
    if not ensure_repo(cwd=repo_path):
        log.error(f"Could not initialize git repository at {repo_path}")
        return False
    r = _git("reset", "--hard", "HEAD", cwd=repo_path)
    if r.returncode != 0:
        log.error(f"git reset --hard failed: {r.stderr.strip()}")
        return False
    log.warn(f"Working tree reset to HEAD in {repo_path}")
    return True


class GitRepo:
    """A repository path bundled with its remote/branch settings."""

    def __init__(self, path: Path, remote: str = "origin", branch: str = "") -> None:
        self.path = Path(path)
        self.remote = remote
        self.branch = branch

    def commit_and_push(self, message: str) -> bool:
        return commit_and_push(self.path, message, self.remote, self.branch)

    def reset_hard(self) -> bool:
        return reset_hard(self.path)
