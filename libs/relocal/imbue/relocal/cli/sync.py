import click
from loguru import logger

from imbue.relocal.api.sync import sync_pull
from imbue.relocal.api.sync import sync_push
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import resolve_session
from imbue.relocal.cli.common_opts import setup_command_context


class SyncCliOptions(CommonCliOptions):
    """Options passed from the CLI to the sync push/pull commands."""

    session: str | None


@click.group()
def sync() -> None:
    """One-shot sync between this repo and a session's remote copy."""


@sync.command()
@click.argument("session", required=False)
@add_common_options
@click.pass_context
def push(ctx: click.Context, **kwargs) -> None:
    """Mirror the local repo onto the remote (local wins).

    \b
    Examples:
      relocal sync push
      relocal sync push feature-x
    """
    opts = setup_command_context(ctx, SyncCliOptions)
    repo_context = load_repo_context(ctx)
    session_name = resolve_session(opts.session, repo_context)
    logger.info("Pushing to remote...")
    sync_push(
        repo_context.remote_host, repo_context.config, session_name, repo_context.repo_root, opts.verbose > 0
    )
    logger.info("Push complete.")


@sync.command()
@click.argument("session", required=False)
@add_common_options
@click.pass_context
def pull(ctx: click.Context, **kwargs) -> None:
    """Mirror the remote copy onto the local repo (remote wins).

    Refuses to run when the remote repository fails `git fsck`. The local
    .claude/settings.json is never overwritten.

    \b
    Examples:
      relocal sync pull
      relocal sync pull feature-x
    """
    opts = setup_command_context(ctx, SyncCliOptions)
    repo_context = load_repo_context(ctx)
    session_name = resolve_session(opts.session, repo_context)
    logger.info("Pulling from remote...")
    sync_pull(
        repo_context.remote_host, repo_context.config, session_name, repo_context.repo_root, opts.verbose > 0
    )
    logger.info("Pull complete.")
