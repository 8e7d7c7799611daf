"""Tests that run the mediator's serving thread against an in-memory request channel."""

import threading
import time
from collections.abc import Callable
from collections.abc import Iterator
from pathlib import Path

from imbue.relocal.api.mediator import Mediator
from imbue.relocal.api.protocol import Ack
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import CommandStartError
from imbue.relocal.interfaces.runner import RequestChannelInterface
from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.testing import InMemoryRequestChannel
from imbue.relocal.utils.testing import RecordingCommandRunner


def _wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline, "condition not met in time"
        time.sleep(0.01)


def _make_mediator(
    remote_host: RemoteHost,
    request_channel: InMemoryRequestChannel,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> Mediator:
    return Mediator(
        remote_host=remote_host,
        request_channel=request_channel,
        config=config,
        session_name=session_name,
        local_root=repo_root,
        reopen_delay_seconds=0.01,
    )


def _respond_to_everything(runner: RecordingCommandRunner) -> None:
    runner.add_rule("git fsck", 0)
    runner.add_rule("cat ~/relocal", 1)
    runner.add_rule("RELOCAL_EOF", 0)
    runner.add_rule("-ack", 0)
    runner.add_rule("rsync", 0)


def test_requests_are_acked_in_arrival_order(
    runner: RecordingCommandRunner,
    remote_host: RemoteHost,
    request_channel: InMemoryRequestChannel,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> None:
    _respond_to_everything(runner)
    mediator = _make_mediator(remote_host, request_channel, config, session_name, repo_root)
    mediator.start()
    try:
        request_channel.send("push\n")
        request_channel.send("pull\n")
        request_channel.send("nonsense\n")
        _wait_until(lambda: len(mediator.handled_acks) == 3)
    finally:
        mediator.stop()

    assert [ack.is_ok for ack in mediator.handled_acks] == [True, True, False]
    # Each request's transfer happens before its ack, and before the next request's transfer
    programs_and_acks = [
        "ack" if inv.program == "ssh" and "-ack" in inv.command[-1] else inv.program
        for inv in runner.invocations
        if inv.program == "rsync" or "-ack" in inv.command[-1]
    ]
    assert programs_and_acks == ["rsync", "ack", "rsync", "ack", "ack"]


def test_channel_is_reopened_after_end_of_stream(
    runner: RecordingCommandRunner,
    remote_host: RemoteHost,
    request_channel: InMemoryRequestChannel,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> None:
    _respond_to_everything(runner)
    mediator = _make_mediator(remote_host, request_channel, config, session_name, repo_root)
    mediator.start()
    try:
        request_channel.send("push\n")
        request_channel.end_stream()
        request_channel.send("push\n")
        request_channel.end_stream()
        _wait_until(lambda: len(mediator.handled_acks) == 2)
        _wait_until(lambda: request_channel.open_count >= 3)
    finally:
        mediator.stop()

    assert mediator.handled_acks == (Ack.success(), Ack.success())
    assert mediator.error is None


def test_stop_unblocks_idle_reader(
    remote_host: RemoteHost,
    request_channel: InMemoryRequestChannel,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> None:
    mediator = _make_mediator(remote_host, request_channel, config, session_name, repo_root)
    mediator.start()
    _wait_until(lambda: request_channel.open_count == 1)

    stopper = threading.Thread(target=mediator.stop)
    stopper.start()
    stopper.join(timeout=5.0)

    assert not stopper.is_alive()
    assert not mediator.is_running


def test_unexpected_error_acks_failure_and_keeps_serving(
    runner: RecordingCommandRunner,
    remote_host: RemoteHost,
    request_channel: InMemoryRequestChannel,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> None:
    runner.add_rule("cat ~/relocal", 1)
    runner.add_rule("RELOCAL_EOF", 0)
    runner.add_rule("-ack", 0)
    # First rsync blows up while decoding its output; the second succeeds
    runner.queue_error(UnicodeDecodeError("utf-8", b"caf\xe9", 3, 4, "invalid continuation byte"))
    runner.queue_result(0)
    mediator = _make_mediator(remote_host, request_channel, config, session_name, repo_root)
    mediator.start()
    try:
        request_channel.send("push\n")
        request_channel.send("push\n")
        _wait_until(lambda: len(mediator.handled_acks) == 2)
    finally:
        mediator.stop()

    first, second = mediator.handled_acks
    assert not first.is_ok
    assert "unexpected error" in first.message
    assert second == Ack.success()
    ack_writes = [command for command in runner.remote_commands() if "-ack" in command]
    assert len(ack_writes) == 2
    assert "error:unexpected error" in ack_writes[0]
    assert mediator.error is None


class _UnreachableRequestChannel(RequestChannelInterface):
    def open(self) -> Iterator[str]:
        raise CommandStartError(("ssh", "user@host"), "No such file or directory")

    def close(self) -> None:
        pass


def test_channel_failure_is_recorded(
    remote_host: RemoteHost,
    config: RelocalConfig,
    session_name: SessionName,
    repo_root: Path,
) -> None:
    mediator = Mediator(
        remote_host=remote_host,
        request_channel=_UnreachableRequestChannel(),
        config=config,
        session_name=session_name,
        local_root=repo_root,
        reopen_delay_seconds=0.01,
    )
    mediator.start()
    _wait_until(lambda: not mediator.is_running)
    mediator.stop()

    assert isinstance(mediator.error, CommandStartError)
