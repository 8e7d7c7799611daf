"""Wire format of the FIFO protocol.

Requests are single lines, `push` or `pull`. Acknowledgements are single lines,
`ok` or `error:<message>`.
"""

from typing import Final
from typing import Self

from pydantic import Field

from imbue.relocal.errors import ProtocolError
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.models import FrozenModel
from imbue.relocal.utils.pure import pure

OK_TOKEN: Final[str] = "ok"
ERROR_PREFIX: Final[str] = "error:"
UNKNOWN_ERROR_MESSAGE: Final[str] = "unknown error"


class Ack(FrozenModel):
    """Result reported to the remote hook for one request."""

    is_ok: bool = Field(description="Whether the requested sync succeeded")
    message: str | None = Field(default=None, description="Diagnostic for a failed sync")

    @classmethod
    def success(cls) -> Self:
        return cls(is_ok=True)

    @classmethod
    def failure(cls, message: str) -> Self:
        return cls(is_ok=False, message=message)


@pure
def parse_request(line: str) -> TransferDirection:
    token = line.strip()
    try:
        return TransferDirection(token)
    except ValueError:
        raise ProtocolError(line, f"{TransferDirection.PUSH!s} or {TransferDirection.PULL!s}") from None


@pure
def format_ack(ack: Ack) -> str:
    """Render an ack as exactly one line (without the terminator)."""
    if ack.is_ok:
        return OK_TOKEN
    message = " ".join((ack.message or "").split())
    return ERROR_PREFIX + (message or UNKNOWN_ERROR_MESSAGE)


@pure
def parse_ack(line: str) -> Ack:
    stripped = line.rstrip("\r\n")
    if stripped == OK_TOKEN:
        return Ack.success()
    if stripped.startswith(ERROR_PREFIX):
        return Ack.failure(stripped.removeprefix(ERROR_PREFIX))
    raise ProtocolError(line, f"{OK_TOKEN} or {ERROR_PREFIX}<message>")
