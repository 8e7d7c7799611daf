from pydantic import Field

from imbue.relocal.api.remote_commands import list_sessions as list_sessions_command
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.utils.models import FrozenModel
from imbue.relocal.utils.pure import pure


class RemoteSessionInfo(FrozenModel):
    """One session directory found on the remote."""

    name: str = Field(description="Directory name under ~/relocal")
    size: str = Field(description="Human-readable disk usage as reported by du -sh")


@pure
def parse_session_listing(output: str) -> list[RemoteSessionInfo]:
    sessions: list[RemoteSessionInfo] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        name, _, size = line.partition("\t")
        sessions.append(RemoteSessionInfo(name=name.strip(), size=size.strip()))
    return sessions


def list_sessions(remote_host: RemoteHost) -> list[RemoteSessionInfo]:
    result = remote_host.execute_checked(list_sessions_command(), "list sessions")
    return parse_session_listing(result.stdout)
