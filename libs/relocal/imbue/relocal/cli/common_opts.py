from collections.abc import Callable
from pathlib import Path
from typing import Any
from typing import TypeVar

import click
from click_option_group import optgroup
from loguru import logger

from imbue.relocal.api.lifecycle import resolve_session_name
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.config.loader import find_repo_root
from imbue.relocal.config.loader import load_config
from imbue.relocal.interfaces.runner import CommandRunnerInterface
from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.deps import RSYNC
from imbue.relocal.utils.deps import SSH
from imbue.relocal.utils.logging import setup_logging
from imbue.relocal.utils.logging import verbosity_to_log_level
from imbue.relocal.utils.models import FrozenModel
from imbue.relocal.utils.process_runner import ProcessCommandRunner

# Constant for the "Common" option group name used across all commands
COMMON_OPTIONS_GROUP_NAME = "Common"

TCommandOptions = TypeVar("TCommandOptions", bound="CommonCliOptions")
TDecorated = TypeVar("TDecorated", bound=Callable[..., Any])


class CommonCliOptions(FrozenModel):
    """Base class for common CLI options shared across all commands.

    This captures the options added by the @add_common_options decorator.
    Command-specific option classes inherit from this class and add their own
    parameters. Defaults and help text live on the click options, not here.
    """

    quiet: bool
    verbose: int
    log_file: str | None


class RepoContext(FrozenModel):
    """Everything a command that talks to the remote needs."""

    repo_root: Path
    config: RelocalConfig
    remote_host: RemoteHost


def add_common_options(command: TDecorated) -> TDecorated:
    """Decorator to add common options to a command.

    Adds the following options in the "Common" option group:
    - -q, --quiet: Only show errors
    - -v, --verbose: Increase verbosity
    - --log-file: Also write a full diagnostic log to a file
    """
    # Apply decorators in reverse order (bottom to top)
    command = optgroup.option(
        "--log-file",
        type=click.Path(dir_okay=False),
        default=None,
        help="Also write a detailed log (TRACE level) to this file",
    )(command)
    command = optgroup.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase verbosity (default: INFO); -v for DEBUG and rsync progress, -vv for TRACE",
    )(command)
    command = optgroup.option("-q", "--quiet", is_flag=True, help="Only show errors")(command)
    # Start the "Common" option group - applied last since decorators run in reverse order
    command = optgroup.group(COMMON_OPTIONS_GROUP_NAME)(command)
    return command


def setup_command_context(ctx: click.Context, command_class: type[TCommandOptions]) -> TCommandOptions:
    """Parse the command's options and configure logging for this invocation."""
    opts = command_class(**ctx.params)
    setup_logging(
        verbosity_to_log_level(opts.verbose, opts.quiet),
        Path(opts.log_file) if opts.log_file else None,
    )
    logger.trace("Running {} with {}", ctx.command_path, opts)
    return opts


def get_command_runner(ctx: click.Context) -> CommandRunnerInterface:
    """Return the runner for this invocation.

    Tests inject a runner through the click context object; otherwise real
    processes are used, which requires ssh and rsync on PATH.
    """
    root_obj = ctx.find_root().obj
    if isinstance(root_obj, CommandRunnerInterface):
        return root_obj
    SSH.require()
    RSYNC.require()
    return ProcessCommandRunner()


def load_repo_context(ctx: click.Context, start_dir: Path | None = None) -> RepoContext:
    """Find the repo root, load relocal.toml and connect the remote host."""
    repo_root = find_repo_root((start_dir or Path.cwd()).resolve())
    config = load_config(repo_root)
    logger.debug("Loaded config from {}: remote={}", repo_root, config.remote)
    return RepoContext(
        repo_root=repo_root,
        config=config,
        remote_host=RemoteHost(runner=get_command_runner(ctx), address=config.remote),
    )


def resolve_session(raw_name: str | None, repo_context: RepoContext) -> SessionName:
    return resolve_session_name(raw_name, repo_context.repo_root)
