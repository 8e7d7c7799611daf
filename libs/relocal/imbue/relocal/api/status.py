from pydantic import Field

from imbue.relocal.api.remote_commands import check_claude_installed
from imbue.relocal.api.remote_commands import check_fifos_exist
from imbue.relocal.api.remote_commands import check_work_dir_exists
from imbue.relocal.api.remote_commands import remote_work_dir
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.models import FrozenModel


class SessionStatus(FrozenModel):
    """What exists on the remote for one session."""

    session_name: SessionName = Field(description="Session that was inspected")
    remote: str = Field(description="ssh destination")
    remote_dir: str = Field(description="Remote working directory path")
    is_work_dir_present: bool = Field(description="Whether the remote working directory exists")
    is_claude_installed: bool = Field(description="Whether the claude CLI is on the remote PATH")
    is_fifo_present: bool = Field(description="Whether either FIFO exists (a session is running, or crashed)")


def get_session_status(remote_host: RemoteHost, session_name: SessionName) -> SessionStatus:
    """Inspect the remote without changing anything."""
    return SessionStatus(
        session_name=session_name,
        remote=remote_host.address,
        remote_dir=remote_work_dir(session_name),
        is_work_dir_present=remote_host.execute(check_work_dir_exists(session_name)).is_success,
        is_claude_installed=remote_host.execute(check_claude_installed()).is_success,
        is_fifo_present=remote_host.execute(check_fifos_exist(session_name)).is_success,
    )
