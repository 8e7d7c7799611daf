from typing import Final

from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from imbue.relocal.utils.models import FrozenModel

DEFAULT_CLAUDE_SYNC_DIRS: Final[tuple[str, ...]] = ("skills", "commands", "plugins")


class RelocalConfig(FrozenModel):
    """Parsed contents of a repo's relocal.toml.

    Only `remote` is required. Unknown keys are ignored so that older versions
    can read files written for newer ones.
    """

    model_config = ConfigDict(extra="ignore")

    remote: str = Field(
        min_length=1,
        description="ssh destination of the remote host, e.g. user@host",
    )
    exclude: tuple[str, ...] = Field(
        default=(),
        description="Extra rsync exclude patterns, applied in order",
    )
    apt_packages: tuple[str, ...] = Field(
        default=(),
        description="Extra APT packages installed by `relocal remote install`",
    )
    claude_sync_dirs: tuple[str, ...] = Field(
        default=DEFAULT_CLAUDE_SYNC_DIRS,
        description="Subdirectories of .claude/ that are mirrored in both directions",
    )

    @field_validator("claude_sync_dirs")
    @classmethod
    def _validate_claude_sync_dirs(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for name in value:
            if not name or "/" in name:
                raise ValueError(f"claude_sync_dirs entries must be plain directory names, got {name!r}")
        # Duplicates would only produce duplicate rsync rules; keep the first occurrence.
        return tuple(dict.fromkeys(value))
