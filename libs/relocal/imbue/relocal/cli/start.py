import click
from loguru import logger

from imbue.relocal.api.lifecycle import SessionLifecycle
from imbue.relocal.api.request_channel import SshFifoRequestChannel
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import resolve_session
from imbue.relocal.cli.common_opts import setup_command_context
from imbue.relocal.primitives import SessionOutcome


class StartCliOptions(CommonCliOptions):
    """Options passed from the CLI to the start command."""

    session: str | None


@click.command()
@click.argument("session", required=False)
@add_common_options
@click.pass_context
def start(ctx: click.Context, **kwargs) -> None:
    """Start an interactive Claude session on the remote, synced with this repo.

    SESSION defaults to the name of the repo directory. Every prompt pushes local
    changes to the remote, and every completed turn pulls the remote's changes
    back. Exits with status 1 if the session ended abnormally.

    \b
    Examples:
      relocal start
      relocal start feature-x
    """
    opts = setup_command_context(ctx, StartCliOptions)
    repo_context = load_repo_context(ctx)
    session_name = resolve_session(opts.session, repo_context)

    lifecycle = SessionLifecycle(
        remote_host=repo_context.remote_host,
        config=repo_context.config,
        raw_session_name=session_name,
        local_root=repo_context.repo_root,
        request_channel=SshFifoRequestChannel(remote=repo_context.config.remote, session_name=session_name),
        is_verbose=opts.verbose > 0,
    )
    outcome = lifecycle.run()
    logger.debug("Session {} finished: {}", session_name, outcome)
    if outcome == SessionOutcome.DIRTY:
        ctx.exit(1)
