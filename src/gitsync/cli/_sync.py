"""The push command."""

from __future__ import annotations

import warnings
from pathlib import Path

import click

from .._exclude import ExcludeFilter
from ..engine import DEFAULT_BATCH_SIZE, SyncEngine
from ..exceptions import SyncError, TreeTruncated, friendly_message
from ..local import scan_directory
from ..log import RunLog
from ..message import AnthropicMessageGenerator
from ._helpers import (
    main,
    _echo_entry,
    _load_config,
    _open_client,
    _repo_option,
    _require_credentials,
    _status,
    _token_option,
)


@main.command()
@_token_option
@_repo_option
@click.argument("local_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--branch", "-b", default=None,
              help="Target branch (default: stored setting, else main).")
@click.option("--path", "target_path", default=None,
              help="Repo subdirectory to sync into (default: repo root).")
@click.option("--delete-missing/--keep-missing", default=None,
              help="Delete remote files under --path that are not present locally.")
@click.option("--auto-message/--no-auto-message", default=None,
              help="Let an AI model write the commit message.")
@click.option("-m", "--message", default=None,
              help="Commit message; supports {default}, {add_count}, {update_count}, "
                   "{delete_count}, {total_count}.")
@click.option("--batch-size", type=click.IntRange(1, 50), default=DEFAULT_BATCH_SIZE,
              show_default=True, help="Uploads in flight at once.")
@click.option("-n", "--dry-run", is_flag=True, default=False,
              help="Show what would change without uploading.")
@click.option("--exclude", multiple=True,
              help="Exclude files matching pattern (gitignore syntax, repeatable).")
@click.option("--exclude-from", "exclude_from", type=click.Path(exists=True),
              help="Read exclude patterns from file.")
@click.option("--gitignore", "use_gitignore", is_flag=True, default=False,
              help="Honor .gitignore files found in LOCAL_DIR.")
@click.option("--export-log", type=click.Path(dir_okay=False), default=None,
              help="Write the run log as plain text to this file.")
@click.pass_context
def push(ctx, token, repo, local_dir, branch, target_path, delete_missing, auto_message,
         message, batch_size, dry_run, exclude, exclude_from, use_gitignore, export_log):
    """Make a GitHub branch match LOCAL_DIR.

    New and changed files are uploaded, unchanged ones skipped.  With
    --delete-missing, remote files under --path without a local
    counterpart are removed.

    \b
        gitsync push ./site
        gitsync push ./site --repo owner/repo --branch gh-pages --path docs
    """
    config = _load_config(ctx)
    token, ref = _require_credentials(config, token, repo)
    if branch is not None:
        config.branch = branch
    if target_path is not None:
        config.target_path = target_path
    if delete_missing is not None:
        config.delete_missing = delete_missing
    if auto_message is not None:
        config.auto_commit_message = auto_message
    options = config.options(message=message)

    excl = None
    if exclude or exclude_from or use_gitignore:
        excl = ExcludeFilter(patterns=exclude, exclude_from=exclude_from,
                             gitignore=use_gitignore)

    run_log = RunLog(on_entry=_echo_entry)
    files = scan_directory(local_dir, exclude=excl)
    run_log.info(
        f"Selected {len(files)} files from '{Path(local_dir).resolve().name}'. "
        "Syncing folder contents..."
    )
    if not files and not options.delete_missing:
        run_log.warning("No files selected.")
        return

    generator = AnthropicMessageGenerator() if options.auto_commit_message else None

    try:
        with warnings.catch_warnings(), _open_client(ctx, token, ref) as client:
            # the run log already reports a truncated listing
            warnings.simplefilter("ignore", TreeTruncated)
            engine = SyncEngine(client, batch_size=batch_size,
                                message_generator=generator, run_log=run_log)
            if dry_run:
                plan = engine.plan(files, options)
                for action in plan.actions():
                    prefix = {"add": "+", "update": "~", "delete": "-"}[action.action]
                    click.echo(f"{prefix} :{action.path}")
                _status(ctx, f"{plan.total} change(s), {len(plan.unchanged)} unchanged")
                return

            try:
                outcome = engine.run(files, options)
            except SyncError as exc:
                hint = friendly_message(exc)
                if hint != str(exc):
                    click.echo(hint, err=True)
                ctx.exit(1)
    except SyncError as exc:
        raise click.ClickException(friendly_message(exc))
    finally:
        if export_log:
            Path(export_log).write_text(run_log.export_text() + "\n", encoding="utf-8")

    if outcome.changed:
        click.echo(
            f"{outcome.commit_sha[:7]} {outcome.branch_ref}: "
            f"{outcome.uploaded_count} uploaded, {outcome.deleted_count} deleted, "
            f"{outcome.skipped_count} unchanged"
        )
    else:
        click.echo(f"{outcome.branch_ref}: up to date ({outcome.skipped_count} unchanged)")
