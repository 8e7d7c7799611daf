from pathlib import Path

from loguru import logger

from imbue.relocal.api.hooks import reinject_hooks
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.api.transfer import build_transfer_args
from imbue.relocal.api.transfer import run_transfer
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import TransferDirection


def sync_push(
    remote_host: RemoteHost,
    config: RelocalConfig,
    session_name: SessionName,
    local_root: Path,
    is_verbose: bool,
) -> None:
    """Mirror the local repo onto the session's remote directory, then restore the hooks.

    Shared by the initial sync, hook-triggered pushes and `relocal sync push`.
    """
    plan = build_transfer_args(config, TransferDirection.PUSH, session_name, local_root, is_verbose)
    run_transfer(remote_host, plan, session_name, is_verbose=is_verbose)
    reinject_hooks(remote_host, session_name)
    logger.debug("Push complete for session {}", session_name)


def sync_pull(
    remote_host: RemoteHost,
    config: RelocalConfig,
    session_name: SessionName,
    local_root: Path,
    is_verbose: bool,
) -> None:
    """Mirror the session's remote directory back onto the local repo.

    Shared by hook-triggered pulls and `relocal sync pull`. The safety gates run
    inside run_transfer.
    """
    plan = build_transfer_args(config, TransferDirection.PULL, session_name, local_root, is_verbose)
    run_transfer(remote_host, plan, session_name, is_verbose=is_verbose)
    logger.debug("Pull complete for session {}", session_name)
