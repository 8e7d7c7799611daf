from pathlib import Path
from typing import Final
from typing import assert_never

from loguru import logger
from pydantic import Field

from imbue.relocal.api.remote_commands import git_fsck
from imbue.relocal.api.remote_commands import remote_work_dir
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.config.loader import CONFIG_FILENAME
from imbue.relocal.errors import SafetyGateError
from imbue.relocal.errors import TransferError
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.logging import log_span
from imbue.relocal.utils.models import FrozenModel
from imbue.relocal.utils.pure import pure

CLAUDE_DIR_NAME: Final[str] = ".claude"
SETTINGS_FILE_NAME: Final[str] = "settings.json"

# Flags present on every transfer: archive mode, compression, propagate
# deletions, and honor .gitignore files at every directory level.
BASE_RSYNC_FLAGS: Final[tuple[str, ...]] = ("-az", "--delete", "--filter=:- .gitignore")


class TransferPlan(FrozenModel):
    """A fully-built rsync invocation for one direction."""

    args: tuple[str, ...] = Field(description="rsync arguments, without the program name")
    direction: TransferDirection = Field(description="Which way the transfer runs")
    local_root: Path = Field(description="Local repo root (source for push, destination for pull)")


@pure
def build_claude_filter_rules(claude_sync_dirs: tuple[str, ...], direction: TransferDirection) -> list[str]:
    """Filter rules for the .claude/ directory.

    rsync uses the first rule that matches a path, so the re-inclusions must come
    before the blanket exclusion. Excluded paths are also protected from --delete,
    which is what keeps a pull from removing the local settings file.
    """
    rules = [f"--include=/{CLAUDE_DIR_NAME}/{name}/***" for name in claude_sync_dirs]
    # Local settings (including our hooks) are authoritative. The remote copy is
    # rewritten by hook reinjection and must never come back.
    if direction == TransferDirection.PUSH:
        rules.append(f"--include=/{CLAUDE_DIR_NAME}/{SETTINGS_FILE_NAME}")
    rules.append(f"--exclude=/{CLAUDE_DIR_NAME}/*")
    return rules


@pure
def build_transfer_args(
    config: RelocalConfig,
    direction: TransferDirection,
    session_name: SessionName,
    local_root: Path,
    is_verbose: bool,
) -> TransferPlan:
    """Build the rsync arguments for mirroring local_root to or from the session's remote directory."""
    args = list(BASE_RSYNC_FLAGS)
    args.extend(f"--exclude={pattern}" for pattern in config.exclude if pattern)
    args.extend(build_claude_filter_rules(config.claude_sync_dirs, direction))
    if is_verbose:
        args.append("--progress")

    # Trailing slashes so that rsync mirrors directory contents, not the directory itself
    local_path = str(local_root).rstrip("/") + "/"
    remote_path = f"{config.remote}:{remote_work_dir(session_name)}/"

    match direction:
        case TransferDirection.PUSH:
            args.extend((local_path, remote_path))
        case TransferDirection.PULL:
            args.extend((remote_path, local_path))
        case _ as unreachable:
            assert_never(unreachable)

    return TransferPlan(args=tuple(args), direction=direction, local_root=local_root)


def check_local_destination(local_root: Path, session_name: SessionName) -> None:
    """Refuse to pull into a directory that is not a relocal repo root.

    A pull runs with --delete, so a wrong destination would be emptied.
    """
    if not (local_root / CONFIG_FILENAME).is_file():
        raise SafetyGateError(session_name, f"{local_root} does not contain {CONFIG_FILENAME}")


def check_remote_integrity(remote_host: RemoteHost, session_name: SessionName) -> None:
    """Run git fsck against the remote working copy, raising SafetyGateError on failure."""
    with log_span("Checking remote repository integrity for session {}", session_name):
        result = remote_host.execute(git_fsck(session_name))
    if not result.is_success:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise SafetyGateError(session_name, f"git fsck failed on the remote copy ({detail})")


def run_transfer(
    remote_host: RemoteHost,
    plan: TransferPlan,
    session_name: SessionName,
    is_verbose: bool = False,
) -> None:
    """Execute a transfer plan. Pulls pass both safety gates first."""
    if plan.direction == TransferDirection.PULL:
        check_local_destination(plan.local_root, session_name)
        check_remote_integrity(remote_host, session_name)

    with log_span("Running rsync {} for session {}", plan.direction, session_name):
        logger.trace("rsync arguments: {}", plan.args)
        result = remote_host.rsync(plan.args, is_output_streamed=is_verbose)

    if not result.is_success:
        raise TransferError(plan.direction, result.stderr)
