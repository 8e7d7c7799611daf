from collections.abc import Sequence

from loguru import logger
from pydantic import Field

from imbue.relocal.errors import RemoteCommandError
from imbue.relocal.interfaces.runner import CommandResult
from imbue.relocal.interfaces.runner import CommandRunnerInterface
from imbue.relocal.utils.models import FrozenModel


class RemoteHost(FrozenModel):
    """The configured ssh destination, reached through a command runner."""

    runner: CommandRunnerInterface = Field(description="Runner used for every ssh and rsync invocation")
    address: str = Field(description="ssh destination, e.g. user@host")

    def execute(self, shell_command: str) -> CommandResult:
        """Run a shell command on the remote and return its result, whatever the exit status."""
        logger.trace("[{}] {}", self.address, shell_command)
        return self.runner.run_captured(["ssh", self.address, shell_command])

    def execute_checked(self, shell_command: str, purpose: str) -> CommandResult:
        """Run a shell command on the remote, raising RemoteCommandError on a non-zero exit."""
        result = self.execute(shell_command)
        if not result.is_success:
            raise RemoteCommandError(self.address, purpose, result.stderr)
        return result

    def execute_attached(self, shell_command: str) -> int:
        """Run a shell command on the remote with a pseudo-terminal attached to ours."""
        logger.trace("[{}] (attached) {}", self.address, shell_command)
        return self.runner.run_attached(["ssh", "-t", self.address, shell_command])

    def rsync(self, args: Sequence[str], is_output_streamed: bool = False) -> CommandResult:
        """Run rsync locally; the remote side is addressed inside args."""
        return self.runner.run_captured(["rsync", *args], is_output_streamed=is_output_streamed)
