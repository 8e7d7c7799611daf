import queue
import threading
from collections import deque
from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Sequence
from typing import Final

from pydantic import Field
from pydantic import PrivateAttr

from imbue.relocal.interfaces.runner import CommandResult
from imbue.relocal.interfaces.runner import CommandRunnerInterface
from imbue.relocal.interfaces.runner import RequestChannelInterface
from imbue.relocal.utils.models import FrozenModel


class RecordedInvocation(FrozenModel):
    """One call made through a RecordingCommandRunner."""

    command: tuple[str, ...] = Field(description="The argv that was requested")
    is_attached: bool = Field(description="Whether run_attached (rather than run_captured) was used")
    is_output_streamed: bool = Field(default=False, description="Whether stdout streaming was requested")

    @property
    def program(self) -> str:
        return self.command[0]

    @property
    def remote_command(self) -> str:
        """The shell command of an ssh invocation (its final argument)."""
        assert self.program == "ssh", f"not an ssh invocation: {self.command}"
        return self.command[-1]


class _Rule(FrozenModel):
    substring: str
    returncode: int
    stdout: str
    stderr: str


class RecordingCommandRunner(CommandRunnerInterface):
    """Command runner that records every invocation and replays canned results.

    Results for run_captured come from rules first (the first rule whose substring
    appears anywhere in the command), then from the queue in order. An exhausted
    queue is a test bug and raises AssertionError.
    """

    _invocations: list[RecordedInvocation] = PrivateAttr(default_factory=list)
    _results: deque[tuple[int, str, str] | Exception] = PrivateAttr(default_factory=deque)
    _rules: list[_Rule] = PrivateAttr(default_factory=list)
    _attached_exit_codes: deque[int | BaseException] = PrivateAttr(default_factory=deque)
    _on_attached: Callable[[], None] | None = PrivateAttr(default=None)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def queue_result(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        with self._lock:
            self._results.append((returncode, stdout, stderr))

    def queue_error(self, error: Exception) -> None:
        """Make the next queued run_captured call raise error instead of returning."""
        with self._lock:
            self._results.append(error)

    def add_rule(self, substring: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        with self._lock:
            self._rules.append(_Rule(substring=substring, returncode=returncode, stdout=stdout, stderr=stderr))

    def queue_attached_exit(self, exit_code_or_error: int | BaseException) -> None:
        with self._lock:
            self._attached_exit_codes.append(exit_code_or_error)

    def set_on_attached(self, callback: Callable[[], None]) -> None:
        """Run callback while an attached command is "running", before it returns."""
        self._on_attached = callback

    @property
    def invocations(self) -> list[RecordedInvocation]:
        with self._lock:
            return list(self._invocations)

    def remote_commands(self) -> list[str]:
        """Shell commands of all captured ssh invocations, in call order."""
        return [inv.remote_command for inv in self.invocations if inv.program == "ssh" and not inv.is_attached]

    def run_captured(self, command: Sequence[str], is_output_streamed: bool = False) -> CommandResult:
        command_tuple = tuple(command)
        with self._lock:
            self._invocations.append(
                RecordedInvocation(command=command_tuple, is_attached=False, is_output_streamed=is_output_streamed)
            )
            joined = " ".join(command_tuple)
            for rule in self._rules:
                if rule.substring in joined:
                    return CommandResult(
                        command=command_tuple, returncode=rule.returncode, stdout=rule.stdout, stderr=rule.stderr
                    )
            if not self._results:
                raise AssertionError(f"No result queued for command: {command_tuple}")
            queued = self._results.popleft()
        if isinstance(queued, Exception):
            raise queued
        returncode, stdout, stderr = queued
        return CommandResult(command=command_tuple, returncode=returncode, stdout=stdout, stderr=stderr)

    def run_attached(self, command: Sequence[str]) -> int:
        command_tuple = tuple(command)
        with self._lock:
            self._invocations.append(RecordedInvocation(command=command_tuple, is_attached=True))
            if not self._attached_exit_codes:
                raise AssertionError(f"No exit code queued for attached command: {command_tuple}")
            outcome = self._attached_exit_codes.popleft()
        if self._on_attached is not None:
            self._on_attached()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


_END_OF_STREAM: Final = object()


class InMemoryRequestChannel(RequestChannelInterface):
    """Request channel fed by the test instead of a remote FIFO.

    Lines pushed with send() are yielded by open(); end_stream() makes the current
    open() call finish, as a FIFO does when its last writer closes it.
    """

    _items: queue.Queue[object] = PrivateAttr(default_factory=queue.Queue)
    _open_count: int = PrivateAttr(default=0)
    _is_closed: bool = PrivateAttr(default=False)

    @property
    def open_count(self) -> int:
        return self._open_count

    def send(self, line: str) -> None:
        self._items.put(line)

    def end_stream(self) -> None:
        self._items.put(_END_OF_STREAM)

    def open(self) -> Iterator[str]:
        self._open_count += 1
        while not self._is_closed:
            item = self._items.get()
            if item is _END_OF_STREAM:
                return
            assert isinstance(item, str)
            yield item

    def close(self) -> None:
        self._is_closed = True
        self._items.put(_END_OF_STREAM)
