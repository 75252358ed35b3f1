"""codeloop CLI.

Installed as the ``codeloop`` console_script.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.table import Table

from codeloop import __version__
from codeloop.config import DEFAULT_LLM_ENDPOINTS, Config, resolve_repo_root
from codeloop.errors import ConfigError
from codeloop.io_utils import read_text

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def _parse_params(values: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected key=value, got '{raw}'", param_hint="--param")
        params[key.strip()] = value
    return params


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-C", "--project", "project_path", default=".", help="Project directory to work on")
@click.option("--log-file", default="", help="Also append log lines to this file")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="codeloop")
@click.pass_context
def main(ctx: click.Context, project_path: str, log_file: str, verbose: bool) -> None:
    """codeloop: LLM-driven code mutation with run-and-verify.

    \b
    EXAMPLES:
      codeloop run "Add a jump action to the player"
      codeloop send get-log
      codeloop send set-scene -p name=Main
      codeloop apply commands.json
      codeloop history
    """
    from codeloop import log as clog

    clog.set_verbose(verbose)
    if log_file:
        clog.set_log_file(Path(log_file))
    ctx.ensure_object(dict)
    ctx.obj["project_path"] = project_path
    ctx.obj["verbose"] = verbose


# ── Subcommand: run ──────────────────────────────────────────────────


@main.command()
@click.argument("prompt")
@click.option("--provider", type=click.Choice(list(DEFAULT_LLM_ENDPOINTS)), default="ollama", help="LLM provider")
@click.option("--endpoint", default="", help="LLM endpoint URL")
@click.option("--model", default="", help="LLM model name")
@click.option("--api-key", default="", help="LLM API key")
@click.option("--mcp-endpoint", default="", help="Target control endpoint URL")
@click.option("--mcp-token", default="", help="Bearer token for the control endpoint")
@click.option("--mcp-servers", "mcp_servers_dir", default="", help="Directory of MCP server JSON descriptions")
@click.option("--prompts", "prompts_dir", default="", help="Directory with <role>.json prompt overrides")
@click.option("--language", default="en", help="Prompt language suffix")
@click.option("--git-repo", default="", help="Repository to commit to / reset (default: none)")
@click.option("--git", "use_git", is_flag=True, help="Use the repository containing the project")
@click.option("--remote", default="origin", help="Git remote to push to")
@click.option("--branch", default="", help="Git branch to push (default: current)")
@click.option("--max-attempts", type=int, default=10, help="Corrections per task before reverting")
@click.option("--split-threshold", type=int, default=21, help="Split tasks above this many story points")
@click.option("--db", "db_path", default="", help="Audit database path")
@click.pass_context
def run(
    ctx: click.Context,
    prompt: str,
    provider: str,
    endpoint: str,
    model: str,
    api_key: str,
    mcp_endpoint: str,
    mcp_token: str,
    mcp_servers_dir: str,
    prompts_dir: str,
    language: str,
    git_repo: str,
    use_git: bool,
    remote: str,
    branch: str,
    max_attempts: int,
    split_threshold: int,
    db_path: str,
) -> None:
    """Run the full pipeline for PROMPT."""
    from codeloop import log as clog

    project_path = ctx.obj["project_path"]
    if use_git and not git_repo:
        root = resolve_repo_root(Path(project_path))
        git_repo = str(root) if root else project_path

    cfg = Config(
        provider=provider,
        llm_endpoint=endpoint,
        llm_model=model,
        llm_api_key=api_key,
        language=language,
        prompts_dir=prompts_dir,
        mcp_endpoint=mcp_endpoint,
        mcp_token=mcp_token,
        mcp_servers_dir=mcp_servers_dir,
        project_path=project_path,
        git_repo_path=git_repo,
        git_remote=remote,
        git_branch=branch,
        max_attempts=max_attempts,
        split_threshold=split_threshold,
        db_path=db_path,
        verbose=ctx.obj["verbose"],
    )
    try:
        cfg.validate()
    except ConfigError as e:
        clog.error(str(e))
        sys.exit(1)

    _print_banner(cfg)
    report = _run_pipeline(cfg, prompt)
    sys.exit(0 if report.ok else 1)


def _run_pipeline(cfg: Config, prompt: str):
    from codeloop.llm.registry import get_llm
    from codeloop.orchestrator import Pipeline
    from codeloop.protocol import ProtocolClient
    from codeloop.store import AuditStore

    llm = get_llm(
        cfg.provider,
        endpoint=cfg.llm_endpoint,
        model=cfg.llm_model,
        api_key=cfg.llm_api_key,
        timeout=cfg.llm_timeout,
    )
    with ProtocolClient(cfg.mcp_endpoint, token=cfg.mcp_token, timeout=cfg.mcp_timeout) as protocol, \
            AuditStore(cfg.resolved_db_path) as store:
        try:
            return Pipeline(cfg, llm, protocol, store=store).run(prompt)
        finally:
            llm.close()


def _print_banner(cfg: Config) -> None:
    from codeloop import log as clog

    clog.console.print("[bold]============================================[/bold]")
    clog.console.print(f"[bold]codeloop[/bold] v{__version__}")
    clog.console.print(f"LLM: {cfg.provider} ({cfg.llm_model}) at {cfg.llm_endpoint}")
    clog.console.print(f"Target: {cfg.mcp_endpoint}")
    clog.console.print(f"Project: [cyan]{cfg.project_dir}[/cyan]")
    if cfg.git_repo_path:
        clog.console.print(f"Git: {cfg.git_repo_path} ({cfg.git_remote})")
    clog.console.print("[bold]============================================[/bold]")


# ── Subcommand: send ─────────────────────────────────────────────────


@main.command()
@click.argument("action")
@click.option("-p", "--param", "params", multiple=True, help="Parameter as key=value (repeatable)")
@click.option("--mcp-endpoint", default="", help="Target control endpoint URL")
@click.option("--mcp-token", default="", help="Bearer token for the control endpoint")
def send(action: str, params: tuple[str, ...], mcp_endpoint: str, mcp_token: str) -> None:
    """Send one ACTION to the target and print the result."""
    from codeloop import log as clog
    from codeloop.protocol import ProtocolClient

    parameters = _parse_params(params)
    cfg = Config(mcp_endpoint=mcp_endpoint, mcp_token=mcp_token)
    with ProtocolClient(cfg.mcp_endpoint, token=cfg.mcp_token, timeout=cfg.mcp_timeout) as client:
        result = client.send(action, parameters, check_errors=False)
    if not result:
        clog.error(f"No result for action: {action}")
        sys.exit(1)
    click.echo(result)


# ── Subcommand: apply ────────────────────────────────────────────────


@main.command()
@click.argument("commands_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--mcp-endpoint", default="", help="Target control endpoint URL")
@click.option("--mcp-token", default="", help="Bearer token for the control endpoint")
@click.pass_context
def apply(ctx: click.Context, commands_file: str, mcp_endpoint: str, mcp_token: str) -> None:
    """Dispatch a commands JSON file against the project (no verification)."""
    from codeloop import log as clog
    from codeloop.commands.model import CommandsData
    from codeloop.dispatcher import MutationDispatcher
    from codeloop.llm.parsing import parse_json_response
    from codeloop.protocol import ProtocolClient

    commands = CommandsData.from_dict(parse_json_response(read_text(Path(commands_file))))
    if commands is None:
        clog.error(f"{commands_file} does not hold fileCommands/methodCommands/mcpCommands")
        sys.exit(1)

    cfg = Config(project_path=ctx.obj["project_path"], mcp_endpoint=mcp_endpoint, mcp_token=mcp_token)
    with ProtocolClient(cfg.mcp_endpoint, token=cfg.mcp_token, timeout=cfg.mcp_timeout) as client:
        report = MutationDispatcher(client).dispatch(commands, cfg.project_dir)

    for kind, result in report.results.items():
        clog.info(f"{kind}: {result}")
    if not report.ok:
        for kind, err in report.errors.items():
            clog.error(f"{kind}: {err}")
        sys.exit(1)
    clog.success(f"Applied {len(commands)} command(s)")


# ── Subcommand: history ──────────────────────────────────────────────


@main.command()
@click.option("--db", "db_path", default="", help="Audit database path")
@click.option("--limit", type=int, default=20, help="Number of prompts to show")
@click.pass_context
def history(ctx: click.Context, db_path: str, limit: int) -> None:
    """List stored user prompts, newest first."""
    from codeloop import log as clog
    from codeloop.store import AuditStore

    cfg = Config(project_path=ctx.obj["project_path"], db_path=db_path)
    path = cfg.resolved_db_path
    if not path.is_file():
        clog.warn(f"No audit database at {path}")
        return

    with AuditStore(path) as store:
        rows = store.list_user_prompts(limit)

    table = Table(title="User prompts")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("Prompt")
    for row in rows:
        table.add_row(str(row["id"]), str(row["created_at"]), row["prompt"])
    clog.console.print(table)


if __name__ == "__main__":
    main()
