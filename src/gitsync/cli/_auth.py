"""The login and logout commands."""

from __future__ import annotations

import click

from ..exceptions import SyncError, friendly_message
from ._helpers import (
    main,
    _load_config,
    _open_client,
    _repo_option,
    _require_credentials,
    _store,
    _token_option,
)


@main.command()
@_token_option
@_repo_option
@click.option("--branch", "-b", default=None, help="Default target branch to remember.")
@click.option("--path", "target_path", default=None, help="Default repo subdirectory to remember.")
@click.pass_context
def login(ctx, token, repo, branch, target_path):
    """Check a token and repository, then remember them.

    \b
        gitsync login --token ghp_... --repo https://github.com/owner/repo
    """
    config = _load_config(ctx)
    token, ref = _require_credentials(config, token, repo)

    try:
        with _open_client(ctx, token, ref) as client:
            username = client.validate_token()
            click.echo(click.style(f"Authenticated as: {username}", fg="green"), err=True)
            info = client.get_repository()
            click.echo(click.style(f"Repository found: {info.full_name}", fg="green"), err=True)
    except SyncError as exc:
        raise click.ClickException(f"Connection failed: {friendly_message(exc)}")

    config.token = token
    config.repo = str(ref)
    if branch is not None:
        config.branch = branch
    if target_path is not None:
        config.target_path = target_path
    _store(ctx).save(config)


@main.command()
@click.pass_context
def logout(ctx):
    """Forget the stored token and repository."""
    _load_config(ctx)
    _store(ctx).clear_credentials()
    click.echo("Credentials cleared successfully.", err=True)
