import tomllib
from pathlib import Path

import pytest
from click.testing import CliRunner

from imbue.relocal.config.loader import CONFIG_FILENAME
from imbue.relocal.main import cli
from imbue.relocal.utils.testing import RecordingCommandRunner


@pytest.fixture
def in_repo(repo_root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(repo_root)
    return repo_root


# =============================================================================
# Help
# =============================================================================


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["init"],
        ["start"],
        ["sync"],
        ["sync", "push"],
        ["sync", "pull"],
        ["status"],
        ["list"],
        ["destroy"],
        ["remote"],
        ["remote", "install"],
        ["remote", "nuke"],
    ],
)
def test_help_succeeds(cli_runner: CliRunner, args: list[str]) -> None:
    result = cli_runner.invoke(cli, [*args, "--help"])

    assert result.exit_code == 0, result.output


def test_common_options_are_grouped(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["status", "--help"])

    assert "Common" in result.output
    assert "--verbose" in result.output
    assert "--log-file" in result.output


# =============================================================================
# init
# =============================================================================


def test_init_writes_config_from_prompts(
    cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["init"], input="dev@box\ntarget/, .env\n\n")

    assert result.exit_code == 0, result.output
    written = tomllib.loads((tmp_path / CONFIG_FILENAME).read_text())
    assert written == {"remote": "dev@box", "exclude": ["target/", ".env"]}


def test_init_refuses_to_overwrite(cli_runner: CliRunner, in_repo: Path) -> None:
    before = (in_repo / CONFIG_FILENAME).read_text()

    result = cli_runner.invoke(cli, ["init", "--remote", "x@y", "--exclude", "", "--apt-packages", ""])

    assert result.exit_code == 1
    assert "already exists" in result.output
    assert (in_repo / CONFIG_FILENAME).read_text() == before


# =============================================================================
# Commands against the remote
# =============================================================================


def test_command_outside_repo_fails_with_hint(
    cli_runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    result = cli_runner.invoke(cli, ["status"], obj=RecordingCommandRunner())

    assert result.exit_code == 1
    assert "relocal init" in result.output


def test_status_uses_directory_name_as_default_session(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    for returncode in (0, 0, 1):
        runner.queue_result(returncode)

    result = cli_runner.invoke(cli, ["status"], obj=runner)

    assert result.exit_code == 0, result.output
    assert "~/relocal/my-proj" in result.output
    assert "absent" in result.output
    assert runner.remote_commands()[0] == "test -d ~/relocal/my-proj"


def test_invalid_session_argument_is_rejected_before_remote_contact(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()

    result = cli_runner.invoke(cli, ["sync", "push", "bad/name"], obj=runner)

    assert result.exit_code == 1
    assert "Invalid session name" in result.output
    assert runner.invocations == []


def test_sync_pull_runs_safety_gate_then_rsync(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    runner.queue_result(0)
    runner.queue_result(0)

    result = cli_runner.invoke(cli, ["sync", "pull", "-v"], obj=runner)

    assert result.exit_code == 0, result.output
    fsck, rsync = runner.invocations
    assert "git fsck" in fsck.remote_command
    assert "--progress" in rsync.command
    assert "Pull complete." in result.output


def test_start_refuses_stale_session(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    runner.queue_result(0)

    result = cli_runner.invoke(cli, ["start"], obj=runner)

    assert result.exit_code == 1
    assert "Stale session my-proj" in result.output
    assert "relocal destroy my-proj" in result.output
    assert len(runner.invocations) == 1


def test_list_prints_sessions(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    runner.queue_result(0, stdout="alpha\t12K\nbeta\t3.4M\n")

    result = cli_runner.invoke(cli, ["list"], obj=runner)

    assert result.exit_code == 0, result.output
    assert "alpha\t12K" in result.output
    assert "beta\t3.4M" in result.output


def test_destroy_aborts_without_confirmation(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()

    result = cli_runner.invoke(cli, ["destroy"], input="n\n", obj=runner)

    assert result.exit_code == 0
    assert "Aborted." in result.output
    assert runner.invocations == []


def test_destroy_with_yes_skips_prompt(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    runner.queue_result(0)
    runner.queue_result(0)

    result = cli_runner.invoke(cli, ["destroy", "--yes", "other"], obj=runner)

    assert result.exit_code == 0, result.output
    assert runner.remote_commands()[0] == "rm -rf ~/relocal/other"


def test_remote_nuke_requires_confirmation(cli_runner: CliRunner, in_repo: Path) -> None:
    runner = RecordingCommandRunner()
    runner.queue_result(0)

    result = cli_runner.invoke(cli, ["remote", "nuke"], input="y\n", obj=runner)

    assert result.exit_code == 0, result.output
    assert runner.remote_commands() == ["rm -rf ~/relocal"]
