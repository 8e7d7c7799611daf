import copy
import json
from typing import Any
from typing import Final

from loguru import logger

from imbue.relocal.api.remote_commands import HOOK_SCRIPT_PATH
from imbue.relocal.api.remote_commands import read_settings_json
from imbue.relocal.api.remote_commands import write_settings_json
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.logging import log_span
from imbue.relocal.utils.pure import pure

# Any hook whose command contains this substring is owned by relocal.
RELOCAL_HOOK_MARKER: Final[str] = "relocal-hook.sh"

SESSION_ENV_VAR: Final[str] = "RELOCAL_SESSION"

# Claude Code events that trigger a sync, and the direction each requests.
MANAGED_HOOK_EVENTS: Final[tuple[tuple[str, TransferDirection], ...]] = (
    ("UserPromptSubmit", TransferDirection.PUSH),
    ("Stop", TransferDirection.PULL),
)


@pure
def build_hook_command(session_name: SessionName, direction: TransferDirection) -> str:
    return f"{SESSION_ENV_VAR}={session_name} {HOOK_SCRIPT_PATH} {direction}"


@pure
def build_relocal_hook_entry(session_name: SessionName, direction: TransferDirection) -> dict[str, Any]:
    """Build one matcher group in Claude's nested hooks format."""
    return {
        "hooks": [
            {
                "type": "command",
                "command": build_hook_command(session_name, direction),
            }
        ]
    }


@pure
def is_relocal_entry(entry: Any) -> bool:
    """Check whether a matcher group contains a relocal-managed hook."""
    if not isinstance(entry, dict):
        return False
    inner_hooks = entry.get("hooks")
    if not isinstance(inner_hooks, list):
        return False
    return any(
        isinstance(hook, dict) and isinstance(hook.get("command"), str) and RELOCAL_HOOK_MARKER in hook["command"]
        for hook in inner_hooks
    )


def _upsert_relocal_entry(entries: list[Any], new_entry: dict[str, Any]) -> None:
    # Replacing in place (rather than remove + append) keeps repeated merges idempotent
    for index, entry in enumerate(entries):
        if is_relocal_entry(entry):
            entries[index] = new_entry
            return
    entries.append(new_entry)


@pure
def merge_hooks(existing_settings: Any, session_name: SessionName) -> dict[str, Any]:
    """Install or update relocal's hooks in a Claude settings document.

    Anything that is not a JSON object is treated as an absent document. Every
    top-level key other than "hooks" is preserved, as is every non-relocal entry
    under the managed events (same position, same content). Does not mutate the
    input.
    """
    merged: dict[str, Any] = copy.deepcopy(existing_settings) if isinstance(existing_settings, dict) else {}

    hooks = merged.get("hooks")
    if not isinstance(hooks, dict):
        hooks = {}
        merged["hooks"] = hooks

    for event_name, direction in MANAGED_HOOK_EVENTS:
        entries = hooks.get(event_name)
        if not isinstance(entries, list):
            entries = []
            hooks[event_name] = entries
        _upsert_relocal_entry(entries, build_relocal_hook_entry(session_name, direction))

    return merged


def parse_settings_document(text: str) -> Any | None:
    """Parse settings.json text, returning None when it is not valid JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Remote .claude/settings.json is not valid JSON ({}); rewriting it with relocal hooks only", e)
        return None


def reinject_hooks(remote_host: RemoteHost, session_name: SessionName) -> None:
    """Re-apply relocal's hooks to the remote settings document.

    A push overwrites the remote settings.json with the local copy, which does
    not contain the hooks, so this runs after every push.
    """
    with log_span("Installing relocal hooks for session {}", session_name):
        read_result = remote_host.execute(read_settings_json(session_name))
        existing = parse_settings_document(read_result.stdout) if read_result.is_success else None
        merged = merge_hooks(existing, session_name)
        remote_host.execute_checked(
            write_settings_json(session_name, json.dumps(merged, indent=2)),
            "write .claude/settings.json",
        )


@pure
def hook_script_content() -> str:
    """The helper script installed on the remote and invoked by the hooks.

    It writes its direction into the session's request FIFO, then blocks until
    the local mediator writes an acknowledgement into the ack FIFO. A failed sync
    makes the hook exit 1 with the mediator's message on stderr.
    """
    return r"""#!/bin/bash
set -euo pipefail

DIRECTION="${1:?Usage: relocal-hook.sh <push|pull>}"
: "${RELOCAL_SESSION:?RELOCAL_SESSION must be set}"
FIFO_DIR="$HOME/relocal/.fifos"
LOG_DIR="$HOME/relocal/.logs"
REQUEST_FIFO="$FIFO_DIR/${RELOCAL_SESSION}-request"
ACK_FIFO="$FIFO_DIR/${RELOCAL_SESSION}-ack"

# One log per session and direction, replaced on every run
mkdir -p "$LOG_DIR"
exec 3>"$LOG_DIR/${RELOCAL_SESSION}-${DIRECTION}.log"

log() {
    echo "$(date '+%Y-%m-%d %H:%M:%S') $*" >&3
}

log "hook start: session=${RELOCAL_SESSION} direction=${DIRECTION}"

if [ ! -p "$REQUEST_FIFO" ] || [ ! -p "$ACK_FIFO" ]; then
    log "no FIFOs for session ${RELOCAL_SESSION}"
    echo "relocal: no active session ${RELOCAL_SESSION} (FIFOs missing)" >&2
    exit 1
fi

echo "$DIRECTION" > "$REQUEST_FIFO"
log "request sent"

ACK=$(head -n 1 "$ACK_FIFO")
log "ack received: ${ACK}"
exec 3>&-

if [ "$ACK" = "ok" ]; then
    exit 0
fi

echo "relocal ${DIRECTION} failed: ${ACK#error:}" >&2
exit 1
"""
