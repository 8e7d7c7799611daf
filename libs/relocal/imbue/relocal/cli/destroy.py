import click
from loguru import logger

from imbue.relocal.api.destroy import destroy_session
from imbue.relocal.api.remote_commands import remote_work_dir
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import resolve_session
from imbue.relocal.cli.common_opts import setup_command_context


class DestroyCliOptions(CommonCliOptions):
    """Options passed from the CLI to the destroy command."""

    session: str | None
    yes: bool


@click.command()
@click.argument("session", required=False)
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt")
@add_common_options
@click.pass_context
def destroy(ctx: click.Context, **kwargs) -> None:
    """Delete a session's remote working copy and FIFOs.

    Also clears a stale session left behind by a crash.
    """
    opts = setup_command_context(ctx, DestroyCliOptions)
    repo_context = load_repo_context(ctx)
    session_name = resolve_session(opts.session, repo_context)

    if not opts.yes and not click.confirm(
        f"Delete {remote_work_dir(session_name)} on {repo_context.config.remote}?", default=False
    ):
        logger.info("Aborted.")
        return
    destroy_session(repo_context.remote_host, session_name)
