from pathlib import Path

import click
from loguru import logger

from imbue.relocal.cli.common_opts import CommonCliOptions
from imbue.relocal.cli.common_opts import add_common_options
from imbue.relocal.cli.common_opts import setup_command_context
from imbue.relocal.config.loader import CONFIG_FILENAME
from imbue.relocal.config.loader import generate_config_toml
from imbue.relocal.errors import UserInputError
from imbue.relocal.utils.pure import pure


class InitCliOptions(CommonCliOptions):
    """Options passed from the CLI to the init command."""

    remote: str
    exclude: str
    apt_packages: str


@pure
def split_comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@click.command()
@click.option("--remote", prompt="Remote host (user@host)", help="ssh destination of the remote host")
@click.option(
    "--exclude",
    prompt="Extra exclude patterns (comma-separated, blank for none)",
    default="",
    show_default=False,
    help="Comma-separated rsync exclude patterns",
)
@click.option(
    "--apt-packages",
    prompt="Extra APT packages for the remote (comma-separated, blank for none)",
    default="",
    show_default=False,
    help="Comma-separated APT packages installed by `relocal remote install`",
)
@add_common_options
@click.pass_context
def init(ctx: click.Context, **kwargs) -> None:
    """Create relocal.toml in the current directory.

    \b
    Examples:
      relocal init
      relocal init --remote user@devbox --exclude target,node_modules --apt-packages libssl-dev
    """
    opts = setup_command_context(ctx, InitCliOptions)

    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists():
        raise UserInputError(f"{config_path} already exists")
    remote = opts.remote.strip()
    if not remote:
        raise UserInputError("A remote host is required")

    config_path.write_text(
        generate_config_toml(remote, split_comma_list(opts.exclude), split_comma_list(opts.apt_packages))
    )
    logger.info("Created {}", config_path)
