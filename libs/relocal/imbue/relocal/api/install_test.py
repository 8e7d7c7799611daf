import pytest

from imbue.relocal.api.install import install_remote
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import RemoteCommandError
from imbue.relocal.utils.testing import RecordingCommandRunner


def _queue_fresh_host(runner: RecordingCommandRunner, login_exit: int = 0) -> None:
    runner.queue_result(0)  # apt-get
    runner.queue_result(1)  # command -v rustup
    runner.queue_result(0)  # rustup install
    runner.queue_result(1)  # command -v claude
    runner.queue_result(0)  # npm install
    runner.queue_result(1)  # claude auth status
    runner.queue_attached_exit(login_exit)  # claude login
    runner.queue_result(0)  # hook script
    runner.queue_result(0)  # mkdir fifos + logs


def test_fresh_host_installs_everything(runner: RecordingCommandRunner, remote_host: RemoteHost) -> None:
    config = RelocalConfig(remote="user@host", apt_packages=("libssl-dev", "nodejs"))
    _queue_fresh_host(runner)

    install_remote(remote_host, config)

    commands = [inv.command[-1] for inv in runner.invocations]
    assert commands[0] == "sudo apt-get update && sudo apt-get install -y build-essential nodejs npm libssl-dev"
    assert "sh.rustup.rs" in commands[2]
    assert commands[4] == "npm install -g @anthropic-ai/claude-code"
    assert runner.invocations[6].is_attached
    assert commands[6] == "claude login"
    assert "cat > ~/relocal/.bin/relocal-hook.sh" in commands[7]
    assert "#!/bin/bash" in commands[7]
    assert commands[8] == "mkdir -p ~/relocal/.fifos ~/relocal/.logs"


def test_installed_tools_are_skipped(
    runner: RecordingCommandRunner, remote_host: RemoteHost, config: RelocalConfig
) -> None:
    runner.queue_result(0)  # apt-get
    runner.queue_result(0)  # rustup present
    runner.queue_result(0)  # claude present
    runner.queue_result(0)  # authenticated
    runner.queue_result(0)  # hook script
    runner.queue_result(0)  # mkdir

    install_remote(remote_host, config)

    commands = [inv.command[-1] for inv in runner.invocations]
    assert not any("npm install" in command or "sh.rustup.rs" in command for command in commands)
    assert not any(inv.is_attached for inv in runner.invocations)


def test_apt_failure_stops_installation(
    runner: RecordingCommandRunner, remote_host: RemoteHost, config: RelocalConfig
) -> None:
    runner.queue_result(100, stderr="E: Unable to locate package")

    with pytest.raises(RemoteCommandError, match="Unable to locate package"):
        install_remote(remote_host, config)

    assert len(runner.invocations) == 1


def test_failed_login_is_an_error(
    runner: RecordingCommandRunner, remote_host: RemoteHost, config: RelocalConfig
) -> None:
    _queue_fresh_host(runner, login_exit=1)

    with pytest.raises(RemoteCommandError, match="claude login"):
        install_remote(remote_host, config)
