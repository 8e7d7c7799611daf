import re
from enum import StrEnum
from enum import auto
from typing import Any
from typing import Final
from typing import Self

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema
from pydantic_core import core_schema

from imbue.relocal.errors import InvalidSessionNameError

_SESSION_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_-]+")


class UpperCaseStrEnum(StrEnum):
    """A StrEnum that automatically converts enum member names to uppercase values."""

    @staticmethod
    def _generate_next_value_(
        name: str,
        start: int,
        count: int,
        last_values: list[str],
    ) -> str:
        return name.upper()


# === Enums ===


class TransferDirection(StrEnum):
    """Direction of a mirroring operation.

    PUSH: local -> remote
    PULL: remote -> local

    The values are also the request tokens written into the request FIFO.
    """

    PUSH = "push"
    PULL = "pull"


class SessionState(UpperCaseStrEnum):
    """States of the session lifecycle, in the order a clean session visits them."""

    IDLE = auto()
    VALIDATING = auto()
    STALE_CHECK = auto()
    PROVISIONING = auto()
    INITIAL_SYNC = auto()
    HOOKS_INSTALLED = auto()
    RUNNING = auto()
    TEARDOWN = auto()
    DIRTY_TEARDOWN = auto()
    FAILED = auto()


class SessionOutcome(UpperCaseStrEnum):
    """How an interactive session ended."""

    CLEAN = auto()
    DIRTY = auto()


class LogLevel(UpperCaseStrEnum):
    """Log verbosity level."""

    TRACE = auto()
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


# === Validated strings ===


class SessionName(str):
    """Name of one remote working copy.

    The name is embedded in remote paths and shell commands, so it is restricted
    to ASCII letters, digits, hyphens and underscores.
    """

    def __new__(cls, value: str) -> Self:
        if not value:
            raise InvalidSessionNameError(value, "must not be empty")
        if _SESSION_NAME_PATTERN.fullmatch(value) is None:
            raise InvalidSessionNameError(value, "must contain only letters, digits, hyphens, and underscores")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(),
            serialization=core_schema.to_string_ser_schema(),
        )
