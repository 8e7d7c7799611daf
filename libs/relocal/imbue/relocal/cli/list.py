import click
from loguru import logger

from imbue.relocal.api.list_sessions import list_sessions
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import setup_command_context


class ListCliOptions(CommonCliOptions):
    """Options passed from the CLI to the list command."""


@click.command(name="list")
@add_common_options
@click.pass_context
def list_command(ctx: click.Context, **kwargs) -> None:
    """List sessions on the remote with their disk usage."""
    setup_command_context(ctx, ListCliOptions)
    repo_context = load_repo_context(ctx)

    sessions = list_sessions(repo_context.remote_host)
    if not sessions:
        logger.info("No sessions found on {}.", repo_context.config.remote)
        return
    for session in sessions:
        logger.info("{}\t{}", session.name, session.size)
