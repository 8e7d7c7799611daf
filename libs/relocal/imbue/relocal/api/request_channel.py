import subprocess
import threading
from collections.abc import Iterator

from loguru import logger
from pydantic import Field
from pydantic import PrivateAttr

from imbue.relocal.api.remote_commands import read_request_fifo
from imbue.relocal.errors import CommandStartError
from imbue.relocal.interfaces.runner import RequestChannelInterface
from imbue.relocal.primitives import SessionName

_TERMINATE_TIMEOUT_SECONDS = 5.0


def _terminate(process: subprocess.Popen[str]) -> None:
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=_TERMINATE_TIMEOUT_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning("Request reader did not terminate gracefully, killing")
        process.kill()
        process.wait()


class SshFifoRequestChannel(RequestChannelInterface):
    """Reads a session's request FIFO through a long-lived ssh child process.

    The remote side re-opens the FIFO after every writer, so one open() normally
    lasts for the whole session; it ends early only if the ssh connection drops
    or the FIFO is removed. Terminating the ssh child is what unblocks a reader.
    """

    remote: str = Field(frozen=True, description="ssh destination")
    session_name: SessionName = Field(frozen=True, description="Session whose request FIFO is read")
    _process: subprocess.Popen[str] | None = PrivateAttr(default=None)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)
    _is_closed: bool = PrivateAttr(default=False)

    def open(self) -> Iterator[str]:
        command = ("ssh", self.remote, read_request_fifo(self.session_name))
        logger.trace("Opening request channel: {}", command)
        try:
            process = subprocess.Popen(
                command,
                # Never written to; the remote reader exits when this reaches EOF
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise CommandStartError(command, str(e)) from e

        with self._lock:
            self._process = process
            is_closed = self._is_closed
        if is_closed:
            # close() ran before the child existed, so nothing else will stop it
            _terminate(process)

        assert process.stdout is not None
        try:
            for line in iter(process.stdout.readline, ""):
                yield line
        except (OSError, ValueError):
            # OSError: I/O error when the process is terminated
            # ValueError: I/O operation on closed file
            logger.debug("Request reader for session {} stopped", self.session_name)
        finally:
            _terminate(process)
            assert process.stdin is not None
            process.stdin.close()
            process.stdout.close()
            with self._lock:
                if self._process is process:
                    self._process = None

    def close(self) -> None:
        with self._lock:
            self._is_closed = True
            process = self._process
        if process is not None:
            logger.debug("Stopping request reader for session {}", self.session_name)
            _terminate(process)
