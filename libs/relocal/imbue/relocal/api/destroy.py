from loguru import logger

from imbue.relocal.api.remote_commands import RELOCAL_DIR
from imbue.relocal.api.remote_commands import remove_fifos
from imbue.relocal.api.remote_commands import rm_relocal_dir
from imbue.relocal.api.remote_commands import rm_work_dir
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.primitives import SessionName


def destroy_session(remote_host: RemoteHost, session_name: SessionName) -> None:
    """Remove a session's remote working directory and its FIFOs."""
    logger.info("Removing remote working directory...")
    remote_host.execute_checked(rm_work_dir(session_name), "remove working directory")
    logger.info("Removing FIFOs...")
    remote_host.execute_checked(remove_fifos(session_name), "remove FIFOs")
    logger.info("Session '{}' destroyed.", session_name)


def nuke_remote(remote_host: RemoteHost) -> None:
    """Remove everything relocal has put on the remote: all sessions, FIFOs, logs and the hook script."""
    logger.info("Removing {}/ on {}...", RELOCAL_DIR, remote_host.address)
    remote_host.execute_checked(rm_relocal_dir(), f"remove {RELOCAL_DIR}")
    logger.info("Done. Run `relocal remote install` to set up again.")
