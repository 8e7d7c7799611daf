import threading
from pathlib import Path
from typing import Final
from typing import assert_never

from loguru import logger
from pydantic import Field
from pydantic import PrivateAttr

from imbue.relocal.api.protocol import Ack
from imbue.relocal.api.protocol import format_ack
from imbue.relocal.api.protocol import parse_request
from imbue.relocal.api.remote_commands import write_ack
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.api.sync import sync_pull
from imbue.relocal.api.sync import sync_push
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import ProtocolError
from imbue.relocal.errors import RelocalError
from imbue.relocal.interfaces.runner import RequestChannelInterface
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.models import MutableModel

DEFAULT_REOPEN_DELAY_SECONDS: Final[float] = 1.0


def handle_request(
    line: str,
    remote_host: RemoteHost,
    config: RelocalConfig,
    session_name: SessionName,
    local_root: Path,
    is_verbose: bool,
) -> Ack:
    """Execute one request line and return the ack to send back.

    Never raises for relocal failures: a malformed line or a failed sync becomes
    a failure ack, so that the hook blocked on the ack FIFO is always released.
    """
    try:
        direction = parse_request(line)
    except ProtocolError as e:
        logger.warning("Dropping malformed sync request for session {}: {}", session_name, e)
        return Ack.failure(str(e))

    logger.info("Hook requested {} for session {}", direction, session_name)
    try:
        match direction:
            case TransferDirection.PUSH:
                sync_push(remote_host, config, session_name, local_root, is_verbose)
            case TransferDirection.PULL:
                sync_pull(remote_host, config, session_name, local_root, is_verbose)
            case _ as unreachable:
                assert_never(unreachable)
    except RelocalError as e:
        logger.error("Hook-triggered {} failed: {}", direction, e.format_message())
        return Ack.failure(str(e))

    return Ack.success()


class Mediator(MutableModel):
    """Serves sync requests from the remote hooks of one session.

    Requests are handled strictly one at a time on a dedicated thread. Each
    request is fully executed and acknowledged before the next line is read.
    """

    remote_host: RemoteHost = Field(frozen=True, description="Remote the session lives on")
    request_channel: RequestChannelInterface = Field(frozen=True, description="Source of request lines")
    config: RelocalConfig = Field(frozen=True, description="Configuration used for every transfer")
    session_name: SessionName = Field(frozen=True, description="Session being served")
    local_root: Path = Field(frozen=True, description="Local repo root")
    is_verbose: bool = Field(frozen=True, default=False, description="Pass --progress to rsync")
    reopen_delay_seconds: float = Field(
        frozen=True,
        default=DEFAULT_REOPEN_DELAY_SECONDS,
        description="Pause before re-opening the request channel after end-of-stream",
    )
    _stop_event: threading.Event = PrivateAttr(default_factory=threading.Event)
    _thread: threading.Thread | None = PrivateAttr(default=None)
    _thread_error: Exception | None = PrivateAttr(default=None)
    _handled_acks: list[Ack] = PrivateAttr(default_factory=list)

    @property
    def error(self) -> Exception | None:
        """The exception that ended the serving thread early, if any."""
        return self._thread_error

    @property
    def handled_acks(self) -> tuple[Ack, ...]:
        return tuple(self._handled_acks)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def serve_line(self, line: str) -> Ack | None:
        """Handle one raw line from the request FIFO and write its ack.

        Blank lines (a writer that opened and closed without writing) are ignored.
        Every other line gets exactly one ack, even when handling it fails in an
        unexpected way, because the hook that sent it is blocked until then.
        """
        if not line.strip():
            return None
        try:
            ack = handle_request(
                line, self.remote_host, self.config, self.session_name, self.local_root, self.is_verbose
            )
        except Exception as e:
            logger.opt(exception=e).error("Unexpected error handling sync request for session {}", self.session_name)
            ack = Ack.failure(f"unexpected error: {e}")
        self._write_ack(ack)
        self._handled_acks.append(ack)
        return ack

    def _write_ack(self, ack: Ack) -> None:
        try:
            result = self.remote_host.execute(write_ack(self.session_name, format_ack(ack)))
        except RelocalError as e:
            logger.warning("Failed to write ack for session {} (the hook may hang): {}", self.session_name, e)
            return
        if not result.is_success:
            logger.warning(
                "Failed to write ack for session {} (the hook may hang): {}",
                self.session_name,
                result.stderr.strip() or f"exit status {result.returncode}",
            )

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                for line in self.request_channel.open():
                    if self._stop_event.is_set():
                        break
                    self.serve_line(line)
                if not self._stop_event.is_set():
                    logger.trace("Request stream for session {} ended, re-opening", self.session_name)
                    self._stop_event.wait(self.reopen_delay_seconds)
        except Exception as e:
            self._thread_error = e
            logger.opt(exception=e).error("Sync mediator for session {} stopped unexpectedly", self.session_name)

    def start(self) -> None:
        """Start serving requests on a background thread."""
        assert self._thread is None, "Mediator already started"
        self._thread = threading.Thread(
            target=self._run,
            name=f"relocal-mediator-{self.session_name}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Started sync mediator for session {}", self.session_name)

    def stop(self) -> None:
        """Stop serving and wait for the thread to finish.

        A request that is already being handled runs to completion (including its
        ack) first.
        """
        self._stop_event.set()
        self.request_channel.close()
        if self._thread is not None:
            self._thread.join()
        logger.debug("Stopped sync mediator for session {}", self.session_name)
