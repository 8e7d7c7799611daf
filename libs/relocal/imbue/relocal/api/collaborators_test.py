import pytest

from imbue.relocal.api.destroy import destroy_session
from imbue.relocal.api.destroy import nuke_remote
from imbue.relocal.api.list_sessions import RemoteSessionInfo
from imbue.relocal.api.list_sessions import list_sessions
from imbue.relocal.api.list_sessions import parse_session_listing
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.api.status import get_session_status
from imbue.relocal.errors import RemoteCommandError
from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.testing import RecordingCommandRunner

S1 = SessionName("s1")

# =============================================================================
# destroy / nuke
# =============================================================================


def test_destroy_removes_work_dir_then_fifos(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    runner.queue_result(0)
    runner.queue_result(0)

    destroy_session(remote_host, S1)

    assert runner.remote_commands() == [
        "rm -rf ~/relocal/s1",
        "rm -f ~/relocal/.fifos/s1-request ~/relocal/.fifos/s1-ack",
    ]


def test_destroy_surfaces_remote_failure(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    runner.queue_result(1, stderr="Permission denied")

    with pytest.raises(RemoteCommandError):
        destroy_session(remote_host, S1)


def test_nuke_removes_relocal_dir(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    runner.queue_result(0)

    nuke_remote(remote_host)

    assert runner.remote_commands() == ["rm -rf ~/relocal"]


# =============================================================================
# status
# =============================================================================


def test_status_reports_each_check(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    runner.queue_result(0)  # work dir
    runner.queue_result(1)  # claude
    runner.queue_result(0)  # fifos

    status = get_session_status(remote_host, S1)

    assert status.is_work_dir_present
    assert not status.is_claude_installed
    assert status.is_fifo_present
    assert status.remote_dir == "~/relocal/s1"
    assert runner.remote_commands() == [
        "test -d ~/relocal/s1",
        "command -v claude",
        "test -e ~/relocal/.fifos/s1-request -o -e ~/relocal/.fifos/s1-ack",
    ]


def test_status_never_mutates_remote(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    for _ in range(3):
        runner.queue_result(1)

    get_session_status(remote_host, S1)

    for command in runner.remote_commands():
        assert not command.startswith(("rm ", "mkdir ", "mkfifo "))


# =============================================================================
# list
# =============================================================================


def test_parse_session_listing() -> None:
    assert parse_session_listing("proj-a\t1.2M\nproj-b\t48K\n\n") == [
        RemoteSessionInfo(name="proj-a", size="1.2M"),
        RemoteSessionInfo(name="proj-b", size="48K"),
    ]


def test_list_sessions_with_no_sessions(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    runner.queue_result(0, stdout="")

    assert list_sessions(remote_host) == []
