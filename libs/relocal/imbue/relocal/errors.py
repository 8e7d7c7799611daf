from pathlib import Path

from click import ClickException


class BaseRelocalError(Exception):
    """Base exception for all relocal errors."""


class RelocalError(ClickException, BaseRelocalError):
    """Base exception for all user-facing relocal errors.

    All RelocalError subclasses can provide a user_help_text attribute that contains
    additional context to help the user understand and resolve the error.
    This help text is displayed by the CLI when the error is raised.
    """

    user_help_text: str | None = None

    def format_message(self) -> str:
        if self.user_help_text:
            return str(self) + "  [" + self.user_help_text + "]"
        return str(self)


class UserInputError(RelocalError):
    """Raised when user input is invalid."""

    user_help_text = "Check the command syntax with 'relocal --help' or 'relocal <command> --help'."


class InvalidSessionNameError(RelocalError, ValueError):
    """Raised when a session name would be unsafe to embed in remote paths and shell commands."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid session name {name!r}: {reason}")


class ConfigError(RelocalError):
    """Base class for config errors."""


class ConfigNotFoundError(ConfigError):
    """No relocal.toml in the start directory or any of its parents."""

    user_help_text = "Run relocal from the project root, or run `relocal init` to create one."

    def __init__(self, start_dir: Path) -> None:
        self.start_dir = start_dir
        super().__init__(f"relocal.toml not found in {start_dir} or any parent directory")


class ConfigParseError(ConfigError):
    """Failed to parse relocal.toml."""


class CommandStartError(RelocalError):
    """A local program could not be started at all (as opposed to exiting non-zero)."""

    def __init__(self, command: tuple[str, ...], reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to start {command[0] if command else '<empty command>'}: {reason}")


class BinaryNotInstalledError(RelocalError):
    """Raised when a required system binary is not installed."""

    def __init__(self, binary: str, purpose: str, install_hint: str) -> None:
        self.user_help_text = install_hint
        super().__init__(f"{binary} is required for {purpose} but was not found on PATH")


class RemoteCommandError(RelocalError):
    """A shell command run on the remote over ssh exited non-zero."""

    def __init__(self, remote: str, purpose: str, stderr: str) -> None:
        self.remote = remote
        self.purpose = purpose
        self.stderr = stderr
        detail = stderr.strip() or "no error output"
        super().__init__(f"Remote command failed on {remote} ({purpose}): {detail}")


class StaleSessionError(RelocalError):
    """The session's FIFOs already exist on the remote.

    This is a refusal rather than something relocal cleans up by itself: the
    FIFOs might belong to a session that is still running in another terminal.
    """

    def __init__(self, session_name: str) -> None:
        self.session_name = session_name
        super().__init__(f"Stale session {session_name}: FIFOs already exist. Another session may be running.")
        self.user_help_text = f"If the previous session crashed, run `relocal destroy {session_name}`."


class ProvisioningError(RelocalError):
    """Creating the remote working directory or FIFOs failed."""


class TransferError(RelocalError):
    """rsync exited non-zero."""

    def __init__(self, direction: str, stderr: str) -> None:
        self.direction = direction
        self.stderr = stderr
        detail = stderr.strip() or "no error output"
        super().__init__(f"rsync {direction} failed: {detail}")


class SafetyGateError(RelocalError):
    """A pull was refused because the remote (or local) copy failed its integrity check."""

    def __init__(self, session_name: str, reason: str) -> None:
        self.session_name = session_name
        self.reason = reason
        super().__init__(f"Refusing to pull session {session_name}: {reason}")


class ProtocolError(RelocalError):
    """A request or acknowledgement line did not match the wire format."""

    def __init__(self, line: str, expected: str) -> None:
        self.line = line
        super().__init__(f"Malformed protocol line {line!r}: expected {expected}")
