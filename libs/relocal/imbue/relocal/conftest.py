from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.config.loader import CONFIG_FILENAME
from imbue.relocal.config.loader import REMOTE_ENV_VAR
from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.testing import InMemoryRequestChannel
from imbue.relocal.utils.testing import RecordingCommandRunner

TEST_REMOTE = "user@host"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the caller's environment and loguru sinks from leaking into tests."""
    monkeypatch.delenv(REMOTE_ENV_VAR, raising=False)
    yield
    # CLI tests call setup_logging, which replaces all sinks
    logger.remove()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing CLI commands."""
    return CliRunner()


@pytest.fixture
def runner() -> RecordingCommandRunner:
    return RecordingCommandRunner()


@pytest.fixture
def remote_host(runner: RecordingCommandRunner) -> RemoteHost:
    return RemoteHost(runner=runner, address=TEST_REMOTE)


@pytest.fixture
def config() -> RelocalConfig:
    return RelocalConfig(remote=TEST_REMOTE)


@pytest.fixture
def session_name() -> SessionName:
    return SessionName("my-proj")


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A local repo root named like the default session, containing relocal.toml."""
    root = tmp_path / "my-proj"
    root.mkdir()
    (root / CONFIG_FILENAME).write_text(f'remote = "{TEST_REMOTE}"\n')
    return root


@pytest.fixture
def request_channel() -> InMemoryRequestChannel:
    return InMemoryRequestChannel()
