from pathlib import Path

from loguru import logger
from pydantic import Field

from imbue.relocal.api.hooks import reinject_hooks
from imbue.relocal.api.mediator import Mediator
from imbue.relocal.api.remote_commands import check_claude_installed
from imbue.relocal.api.remote_commands import check_fifos_exist
from imbue.relocal.api.remote_commands import create_fifos
from imbue.relocal.api.remote_commands import mkdir_session_dirs
from imbue.relocal.api.remote_commands import remote_work_dir
from imbue.relocal.api.remote_commands import remove_fifos
from imbue.relocal.api.remote_commands import start_claude_session
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.api.transfer import build_transfer_args
from imbue.relocal.api.transfer import run_transfer
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import InvalidSessionNameError
from imbue.relocal.errors import ProvisioningError
from imbue.relocal.errors import RelocalError
from imbue.relocal.errors import RemoteCommandError
from imbue.relocal.errors import StaleSessionError
from imbue.relocal.interfaces.runner import RequestChannelInterface
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import SessionOutcome
from imbue.relocal.primitives import SessionState
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.logging import log_span
from imbue.relocal.utils.models import MutableModel
from imbue.relocal.utils.pure import pure


def default_session_name(repo_root: Path) -> SessionName:
    """Derive a session name from the repo directory's name."""
    if not repo_root.name:
        raise InvalidSessionNameError(str(repo_root), "cannot derive a session name from this directory")
    return SessionName(repo_root.name)


def resolve_session_name(raw_name: str | None, repo_root: Path) -> SessionName:
    if raw_name is None:
        return default_session_name(repo_root)
    return SessionName(raw_name)


@pure
def format_session_summary(session_name: SessionName, remote: str) -> str:
    return "\n".join(
        (
            "",
            f"Session ended: {session_name}",
            f"Remote dir:    {remote_work_dir(session_name)}",
            f"Remote host:   {remote}",
            "",
            f"To pull latest changes: relocal sync pull {session_name}",
            f"To push local changes:  relocal sync push {session_name}",
        )
    )


@pure
def format_dirty_shutdown_message(session_name: SessionName, remote: str) -> str:
    return "\n".join(
        (
            f"Session interrupted: {session_name} (remote dir {remote_work_dir(session_name)} on {remote})",
            "There may be unsynchronized work on the remote, and the local copy may be behind.",
            f"Use `relocal sync pull {session_name}` to fetch remote changes,",
            f"or `relocal sync push {session_name}` to overwrite them with local state.",
        )
    )


class SessionLifecycle(MutableModel):
    """Drives one `relocal start` from validation to teardown.

    Every state entered is appended to `history`. Failures before RUNNING move
    the machine to FAILED and re-raise; the interactive session ending (cleanly
    or not) always returns to IDLE.
    """

    remote_host: RemoteHost = Field(frozen=True, description="Remote the session runs on")
    config: RelocalConfig = Field(frozen=True, description="Loaded relocal.toml")
    raw_session_name: str = Field(frozen=True, description="Session name as given, validated on start")
    local_root: Path = Field(frozen=True, description="Local repo root")
    request_channel: RequestChannelInterface = Field(frozen=True, description="Where hook requests arrive")
    is_verbose: bool = Field(frozen=True, default=False, description="Pass --progress to rsync")
    state: SessionState = Field(default=SessionState.IDLE, description="Current state")
    history: list[SessionState] = Field(default_factory=list, description="Every state entered, in order")

    def _enter(self, state: SessionState) -> None:
        logger.trace("Session lifecycle: {} -> {}", self.state, state)
        self.state = state
        self.history.append(state)

    def run(self) -> SessionOutcome:
        """Run the whole session and report how it ended."""
        try:
            session_name = self._validate()
            self._check_stale(session_name)
            self._provision(session_name)
            try:
                self._initial_sync(session_name)
                self._install_hooks(session_name)
            except RelocalError:
                # The FIFOs exist now and would make the next start look stale
                self._remove_fifos_best_effort(session_name)
                raise
        except RelocalError:
            self._enter(SessionState.FAILED)
            raise

        return self._run_session(session_name)

    def _validate(self) -> SessionName:
        self._enter(SessionState.VALIDATING)
        return SessionName(self.raw_session_name)

    def _check_stale(self, session_name: SessionName) -> None:
        self._enter(SessionState.STALE_CHECK)
        logger.info("Checking for stale session...")
        result = self.remote_host.execute(check_fifos_exist(session_name))
        if result.returncode == 0:
            raise StaleSessionError(session_name)
        if result.returncode != 1:
            raise RemoteCommandError(self.remote_host.address, "check for existing FIFOs", result.stderr)

    def _provision(self, session_name: SessionName) -> None:
        self._enter(SessionState.PROVISIONING)
        logger.info("Checking Claude installation...")
        if not self.remote_host.execute(check_claude_installed()).is_success:
            error = ProvisioningError(f"Claude Code is not installed on {self.remote_host.address}")
            error.user_help_text = "Run `relocal remote install` first."
            raise error

        logger.info("Creating remote working directory...")
        result = self.remote_host.execute(mkdir_session_dirs(session_name))
        if not result.is_success:
            raise ProvisioningError(f"Failed to create remote directories: {result.stderr.strip()}")

        logger.info("Creating FIFOs...")
        result = self.remote_host.execute(create_fifos(session_name))
        if not result.is_success:
            # mkfifo may have created one of the two before failing
            self._remove_fifos_best_effort(session_name)
            raise ProvisioningError(f"Failed to create FIFOs: {result.stderr.strip()}")

    def _initial_sync(self, session_name: SessionName) -> None:
        self._enter(SessionState.INITIAL_SYNC)
        logger.info("Pushing {} to {}...", self.local_root, self.remote_host.address)
        plan = build_transfer_args(self.config, TransferDirection.PUSH, session_name, self.local_root, self.is_verbose)
        run_transfer(self.remote_host, plan, session_name, is_verbose=self.is_verbose)

    def _install_hooks(self, session_name: SessionName) -> None:
        self._enter(SessionState.HOOKS_INSTALLED)
        reinject_hooks(self.remote_host, session_name)

    def _run_session(self, session_name: SessionName) -> SessionOutcome:
        self._enter(SessionState.RUNNING)
        mediator = Mediator(
            remote_host=self.remote_host,
            request_channel=self.request_channel,
            config=self.config,
            session_name=session_name,
            local_root=self.local_root,
            is_verbose=self.is_verbose,
        )
        mediator.start()
        exit_code: int | None = None
        try:
            with log_span("Running interactive session {}", session_name):
                exit_code = self.remote_host.execute_attached(start_claude_session(session_name))
        except (OSError, RelocalError) as e:
            logger.error("Interactive session failed: {}", e)
        finally:
            mediator.stop()

        if exit_code == 0 and mediator.error is None:
            self._teardown(session_name)
            return SessionOutcome.CLEAN

        if exit_code is not None:
            logger.debug("Interactive session exited with status {}", exit_code)
        self._dirty_teardown(session_name)
        return SessionOutcome.DIRTY

    def _teardown(self, session_name: SessionName) -> None:
        self._enter(SessionState.TEARDOWN)
        logger.info("Cleaning up FIFOs...")
        result = self.remote_host.execute(remove_fifos(session_name))
        if not result.is_success:
            logger.warning(
                "FIFO cleanup failed: {}. You may need to run: relocal destroy {}",
                result.stderr.strip() or f"exit status {result.returncode}",
                session_name,
            )
        logger.info(format_session_summary(session_name, self.remote_host.address))
        self._enter(SessionState.IDLE)

    def _dirty_teardown(self, session_name: SessionName) -> None:
        self._enter(SessionState.DIRTY_TEARDOWN)
        self._remove_fifos_best_effort(session_name)
        logger.warning(format_dirty_shutdown_message(session_name, self.remote_host.address))
        self._enter(SessionState.IDLE)

    def _remove_fifos_best_effort(self, session_name: SessionName) -> None:
        try:
            result = self.remote_host.execute(remove_fifos(session_name))
        except RelocalError as e:
            logger.debug("Ignoring FIFO cleanup error: {}", e)
            return
        if not result.is_success:
            logger.debug("Ignoring FIFO cleanup failure: {}", result.stderr.strip())
