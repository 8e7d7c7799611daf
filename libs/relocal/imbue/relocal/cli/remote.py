import click
from loguru import logger

from imbue.relocal.api.destroy import nuke_remote
from imbue.relocal.api.install import install_remote
from imbue.relocal.api.remote_commands import RELOCAL_DIR
from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import load_repo_context
from imbue.relocal.cli.common_opts import setup_command_context


class InstallCliOptions(CommonCliOptions):
    """Options passed from the CLI to the remote install command."""


class NukeCliOptions(CommonCliOptions):
    """Options passed from the CLI to the remote nuke command."""

    yes: bool


@click.group()
def remote() -> None:
    """Set up or tear down relocal on the remote host."""


@remote.command()
@add_common_options
@click.pass_context
def install(ctx: click.Context, **kwargs) -> None:
    """Install packages, Claude Code and the relocal hook script on the remote.

    Safe to re-run; steps that are already done are skipped.
    """
    setup_command_context(ctx, InstallCliOptions)
    repo_context = load_repo_context(ctx)
    install_remote(repo_context.remote_host, repo_context.config)


@remote.command()
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt")
@add_common_options
@click.pass_context
def nuke(ctx: click.Context, **kwargs) -> None:
    """Delete everything relocal has put on the remote, including all sessions."""
    opts = setup_command_context(ctx, NukeCliOptions)
    repo_context = load_repo_context(ctx)

    if not opts.yes and not click.confirm(
        f"Delete {RELOCAL_DIR}/ and ALL sessions on {repo_context.config.remote}?", default=False
    ):
        logger.info("Aborted.")
        return
    nuke_remote(repo_context.remote_host)
