from abc import ABC
from abc import abstractmethod
from collections.abc import Iterator
from collections.abc import Sequence

from pydantic import Field

from imbue.relocal.utils.models import FrozenModel
from imbue.relocal.utils.models import MutableModel


class CommandResult(FrozenModel):
    """Outcome of a program that ran to completion with captured output."""

    command: tuple[str, ...] = Field(description="The argv that was executed")
    returncode: int = Field(description="Exit status of the program")
    stdout: str = Field(default="", description="Captured standard output")
    stderr: str = Field(default="", description="Captured standard error")

    @property
    def is_success(self) -> bool:
        return self.returncode == 0


class CommandRunnerInterface(MutableModel, ABC):
    """Runs local programs (ssh, rsync) on behalf of every other component.

    A non-zero exit status is a normal result, not an exception. Implementations
    raise CommandStartError only when the program cannot be started at all.
    Implementations must be safe to call from the mediator thread and the main
    thread at the same time.
    """

    @abstractmethod
    def run_captured(self, command: Sequence[str], is_output_streamed: bool = False) -> CommandResult:
        """Run a program to completion and capture its output.

        When is_output_streamed is set, stdout goes straight to the terminal (and
        is not captured) so that progress output stays visible; stderr is still
        captured for error reporting.
        """

    @abstractmethod
    def run_attached(self, command: Sequence[str]) -> int:
        """Run a program attached to the user's terminal and return its exit status."""


class RequestChannelInterface(MutableModel, ABC):
    """Source of raw sync request lines for one session."""

    @abstractmethod
    def open(self) -> Iterator[str]:
        """Yield request lines until the underlying stream reaches end-of-stream.

        Callers re-open the channel to wait for further requests.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the stream, unblocking any reader currently waiting in open()."""
