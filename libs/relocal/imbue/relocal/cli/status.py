import click
from loguru import logger

from imbue.relocal.api.status import get_session_status
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import resolve_session
from imbue.relocal.cli.common_opts import setup_command_context


class StatusCliOptions(CommonCliOptions):
    """Options passed from the CLI to the status command."""

    session: str | None


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


@click.command()
@click.argument("session", required=False)
@add_common_options
@click.pass_context
def status(ctx: click.Context, **kwargs) -> None:
    """Show what exists on the remote for a session. Changes nothing."""
    opts = setup_command_context(ctx, StatusCliOptions)
    repo_context = load_repo_context(ctx)
    session_name = resolve_session(opts.session, repo_context)

    session_status = get_session_status(repo_context.remote_host, session_name)
    logger.info("Session:     {}", session_status.session_name)
    logger.info("Remote:      {}", session_status.remote)
    logger.info("Remote dir:  {}", session_status.remote_dir)
    logger.info("Dir exists:  {}", _yes_no(session_status.is_work_dir_present))
    logger.info("Claude:      {}", "installed" if session_status.is_claude_installed else "not installed")
    logger.info(
        "FIFOs:       {}",
        "present (session running or crashed)" if session_status.is_fifo_present else "absent",
    )
