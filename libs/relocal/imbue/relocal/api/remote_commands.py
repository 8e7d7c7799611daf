"""Shell snippets executed on the remote host over ssh.

Every function here is pure and returns a single shell command string. Paths
are written relative to `~` so that the remote login shell expands them; the
session name is embedded unquoted, which is safe only because SessionName is
restricted to letters, digits, hyphens and underscores.
"""

import shlex
from collections.abc import Sequence
from typing import Final

from imbue.relocal.primitives import SessionName
from imbue.relocal.utils.pure import pure

RELOCAL_DIR: Final[str] = "~/relocal"
FIFO_DIR: Final[str] = f"{RELOCAL_DIR}/.fifos"
BIN_DIR: Final[str] = f"{RELOCAL_DIR}/.bin"
LOGS_DIR: Final[str] = f"{RELOCAL_DIR}/.logs"
HOOK_SCRIPT_PATH: Final[str] = f"{BIN_DIR}/relocal-hook.sh"

# Entries of RELOCAL_DIR that belong to relocal itself rather than to a session.
RESERVED_DIR_NAMES: Final[tuple[str, ...]] = (".bin", ".fifos", ".logs")

_HEREDOC_DELIMITER: Final[str] = "RELOCAL_EOF"

# Opening a FIFO for writing blocks until a reader appears.
ACK_WRITE_TIMEOUT_SECONDS: Final[int] = 30


@pure
def remote_work_dir(session_name: SessionName) -> str:
    return f"{RELOCAL_DIR}/{session_name}"


@pure
def fifo_request_path(session_name: SessionName) -> str:
    return f"{FIFO_DIR}/{session_name}-request"


@pure
def fifo_ack_path(session_name: SessionName) -> str:
    return f"{FIFO_DIR}/{session_name}-ack"


@pure
def settings_json_path(session_name: SessionName) -> str:
    return f"{remote_work_dir(session_name)}/.claude/settings.json"


# === Session resources ===


@pure
def mkdir_session_dirs(session_name: SessionName) -> str:
    return f"mkdir -p {remote_work_dir(session_name)} {FIFO_DIR}"


@pure
def create_fifos(session_name: SessionName) -> str:
    return f"mkfifo {fifo_request_path(session_name)} {fifo_ack_path(session_name)}"


@pure
def check_fifos_exist(session_name: SessionName) -> str:
    """Exits 0 when either FIFO exists, 1 when neither does."""
    return f"test -e {fifo_request_path(session_name)} -o -e {fifo_ack_path(session_name)}"


@pure
def remove_fifos(session_name: SessionName) -> str:
    return f"rm -f {fifo_request_path(session_name)} {fifo_ack_path(session_name)}"


@pure
def check_work_dir_exists(session_name: SessionName) -> str:
    return f"test -d {remote_work_dir(session_name)}"


@pure
def rm_work_dir(session_name: SessionName) -> str:
    return f"rm -rf {remote_work_dir(session_name)}"


@pure
def rm_relocal_dir() -> str:
    return f"rm -rf {RELOCAL_DIR}"


@pure
def list_sessions() -> str:
    """Print one `<name>\\t<size>` line per session directory.

    Prints nothing (and exits 0) when the relocal directory does not exist yet.
    """
    skipped = " ".join(f"-e {shlex.quote(name)}" for name in RESERVED_DIR_NAMES)
    return (
        f"cd {RELOCAL_DIR} 2>/dev/null || exit 0; "
        f"for d in $(ls -1A | grep -vxF {skipped}); do "
        'size=$(du -sh "$d" 2>/dev/null | cut -f1); '
        "printf '%s\\t%s\\n' \"$d\" \"$size\"; "
        "done"
    )


# === Protocol ===


@pure
def read_request_fifo(session_name: SessionName) -> str:
    """Stream request lines, re-opening the FIFO after each writer closes it.

    The FIFO loop runs in the background while the foreground waits for stdin to
    reach EOF, which happens when the ssh connection goes away. Either side
    finishing kills the whole process group, so a `cat` blocked opening the FIFO
    never outlives its connection.
    """
    request_path = fifo_request_path(session_name)
    return (
        f"{{ while [ -p {request_path} ]; do cat {request_path}; done; kill 0; }} & "
        "cat > /dev/null; kill 0"
    )


@pure
def write_ack(session_name: SessionName, line: str) -> str:
    """Write one ack line, giving up if no hook opens the ack FIFO for reading in time."""
    write_command = f"printf '%s\\n' {shlex.quote(line)} > {fifo_ack_path(session_name)}"
    return f"timeout {ACK_WRITE_TIMEOUT_SECONDS} sh -c {shlex.quote(write_command)}"


# === Settings document ===


@pure
def read_settings_json(session_name: SessionName) -> str:
    return f"cat {settings_json_path(session_name)}"


@pure
def write_settings_json(session_name: SessionName, content: str) -> str:
    work_dir = remote_work_dir(session_name)
    return (
        f"mkdir -p {work_dir}/.claude && cat > {settings_json_path(session_name)} << '{_HEREDOC_DELIMITER}'\n"
        f"{content}\n"
        f"{_HEREDOC_DELIMITER}"
    )


# === Agent ===


@pure
def git_fsck(session_name: SessionName) -> str:
    return f"cd {remote_work_dir(session_name)} && git fsck --strict --full --no-dangling"


@pure
def check_claude_installed() -> str:
    return "command -v claude"


@pure
def start_claude_session(session_name: SessionName) -> str:
    return f"cd {remote_work_dir(session_name)} && claude --dangerously-skip-permissions"


# === Installation ===


@pure
def install_apt_packages(packages: Sequence[str]) -> str:
    package_list = " ".join(shlex.quote(package) for package in packages)
    return f"sudo apt-get update && sudo apt-get install -y {package_list}"


@pure
def install_hook_script(content: str) -> str:
    return (
        f"mkdir -p {BIN_DIR} && cat > {HOOK_SCRIPT_PATH} << '{_HEREDOC_DELIMITER}'\n"
        f"{content}\n"
        f"{_HEREDOC_DELIMITER}\n"
        f"chmod +x {HOOK_SCRIPT_PATH}"
    )


@pure
def mkdir_support_dirs() -> str:
    return f"mkdir -p {FIFO_DIR} {LOGS_DIR}"
