import shlex
import subprocess
from collections.abc import Sequence

from loguru import logger

from imbue.relocal.errors import CommandStartError
from imbue.relocal.interfaces.runner import CommandResult
from imbue.relocal.interfaces.runner import CommandRunnerInterface


class ProcessCommandRunner(CommandRunnerInterface):
    """Runs programs as real local child processes."""

    def run_captured(self, command: Sequence[str], is_output_streamed: bool = False) -> CommandResult:
        command_tuple = tuple(command)
        logger.trace("Running: {}", shlex.join(command_tuple))
        try:
            completed = subprocess.run(
                command_tuple,
                stdin=subprocess.DEVNULL,
                stdout=None if is_output_streamed else subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise CommandStartError(command_tuple, str(e)) from e

        return CommandResult(
            command=command_tuple,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def run_attached(self, command: Sequence[str]) -> int:
        # Bypasses output capture entirely: the child needs direct terminal
        # control (stdin/stdout/stderr passthrough to the user's terminal).
        command_tuple = tuple(command)
        logger.trace("Running attached: {}", shlex.join(command_tuple))
        try:
            completed = subprocess.run(command_tuple)
        except OSError as e:
            raise CommandStartError(command_tuple, str(e)) from e
        return completed.returncode
