"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging

import click

from ..config import CONFIG_ENV, ConfigStore, SyncConfig
from ..exceptions import ConfigError, InvalidRepositoryReference, friendly_message
from ..log import LogEntry, LogLevel, setup_logging
from ..paths import RepoRef, clean_token, parse_repo_ref
from ..remote import GitHubClient

_LEVEL_STYLES = {
    LogLevel.INFO: {},
    LogLevel.SUCCESS: {"fg": "green", "bold": True},
    LogLevel.WARNING: {"fg": "yellow", "bold": True},
    LogLevel.ERROR: {"fg": "red", "bold": True},
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _echo_entry(entry: LogEntry) -> None:
    """Print a run-log entry to stderr, colored by level."""
    click.echo(click.style(entry.format(), **_LEVEL_STYLES[entry.level]), err=True)


def _store(ctx) -> ConfigStore:
    return ctx.obj["store"]


def _load_config(ctx) -> SyncConfig:
    try:
        return _store(ctx).load()
    except ConfigError as exc:
        raise click.ClickException(str(exc))


def _require_credentials(config: SyncConfig, token: str | None, repo: str | None) -> tuple[str, RepoRef]:
    """Merge --token/--repo over the stored values and validate them."""
    token = clean_token(token or config.token)
    repo = repo or config.repo
    if not token or not repo:
        raise click.ClickException(
            "Please enter a Token and Repository Link (use 'gitsync login', "
            "--token/--repo, or GITSYNC_TOKEN/GITSYNC_REPO)."
        )
    try:
        ref = parse_repo_ref(repo)
    except InvalidRepositoryReference as exc:
        raise click.ClickException(friendly_message(exc))
    return token, ref


def _open_client(ctx, token: str, ref: RepoRef) -> GitHubClient:
    return GitHubClient(token, ref, timeout=ctx.obj["timeout"])


def _token_option(f):
    """Shared --token option decorator."""
    return click.option(
        "--token", "-t", envvar="GITSYNC_TOKEN", default=None,
        help="Personal access token (or set GITSYNC_TOKEN).",
    )(f)


def _repo_option(f):
    """Shared --repo/-r option decorator."""
    return click.option(
        "--repo", "-r", envvar="GITSYNC_REPO", default=None,
        help="owner/repo or https://github.com/owner/repo (or set GITSYNC_REPO).",
    )(f)


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              envvar=CONFIG_ENV, default=None,
              help="Settings file (default ~/.config/gitsync/config.json).")
@click.option("--timeout", type=float, default=30.0, show_default=True,
              help="HTTP timeout in seconds.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None,
              help="Also write debug logging to this file.")
@click.pass_context
def main(ctx, config_path, timeout, verbose, log_file):
    """gitsync — push a local folder to a GitHub branch.

    Files are compared by git blob hash, so only new and changed files
    are uploaded.  The branch moves in one step at the very end.

    \b
    Quick start:
      gitsync login --token ghp_... --repo owner/repo
      gitsync push ./site --path docs --delete-missing
      gitsync push ./site --dry-run
      gitsync logout
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["timeout"] = timeout
    ctx.obj["store"] = ConfigStore(config_path)
    setup_logging(
        logging.DEBUG if verbose else logging.WARNING,
        log_file=log_file,
        console=verbose,
        console_run_log=False,
    )
