import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from typing import Final

from loguru import logger

from imbue.relocal.primitives import LogLevel
from imbue.relocal.utils.pure import pure

# 256-color codes that read well on both light and dark backgrounds.
WARNING_COLOR = "\x1b[1;38;5;178m"
ERROR_COLOR = "\x1b[1;38;5;196m"
DEBUG_COLOR = "\x1b[38;5;33m"
TRACE_COLOR = "\x1b[38;5;99m"
RESET_COLOR = "\x1b[0m"

_FILE_LOG_FORMAT: Final[str] = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}"
)


def _dynamic_stderr_sink(message: Any) -> None:
    """Loguru sink that always writes to the current sys.stderr."""
    sys.stderr.write(str(message))
    sys.stderr.flush()


def _format_user_message(record: Any) -> str:
    """Format user-facing log messages, adding colored prefixes for warnings and errors.

    The record parameter is a loguru Record TypedDict, but the type is only available
    in type stubs so we use Any here.
    """
    level_name = record["level"].name
    if level_name == "WARNING":
        return f"{WARNING_COLOR}WARNING: {{message}}{RESET_COLOR}\n"
    if level_name == "ERROR":
        return f"{ERROR_COLOR}ERROR: {{message}}{RESET_COLOR}\n"
    if level_name == "DEBUG":
        return f"{DEBUG_COLOR}{{message}}{RESET_COLOR}\n"
    if level_name == "TRACE":
        return f"{TRACE_COLOR}{{message}}{RESET_COLOR}\n"
    return "{message}\n"


@pure
def verbosity_to_log_level(verbose: int, quiet: bool) -> LogLevel:
    """Map the -v count and -q flag onto a console log level."""
    if quiet:
        return LogLevel.ERROR
    if verbose >= 2:
        return LogLevel.TRACE
    if verbose == 1:
        return LogLevel.DEBUG
    return LogLevel.INFO


def setup_logging(level: LogLevel, log_file: Path | None = None) -> None:
    """Configure loguru for one CLI invocation.

    Sets up:
    - stderr logging for user-facing messages (clean format) at the given level
    - file logging with the full diagnostic format at TRACE, if log_file is given
    """
    logger.remove()
    logger.add(_dynamic_stderr_sink, level=level.value, format=_format_user_message)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level=LogLevel.TRACE.value, format=_FILE_LOG_FORMAT, enqueue=True)


@contextmanager
def log_span(message: str, *args: Any, **context: Any) -> Iterator[None]:
    """Context manager that logs a debug message on entry and a trace message with timing on exit.

    Keyword arguments are passed to logger.contextualize so that all log messages
    within the span include the extra context fields.
    """
    with logger.contextualize(**context):
        logger.debug(message, *args)
        start_time = time.monotonic()
        try:
            yield
        except BaseException:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [failed after {:.5f} sec]", *args, elapsed)
            raise
        else:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [done in {:.5f} sec]", *args, elapsed)
