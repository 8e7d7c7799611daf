import os
import tomllib
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from typing import Final

import tomlkit
from pydantic import ValidationError

from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import ConfigNotFoundError
from imbue.relocal.errors import ConfigParseError
from imbue.relocal.utils.pure import pure

CONFIG_FILENAME: Final[str] = "relocal.toml"

# Overrides the `remote` key of relocal.toml when set to a non-empty value.
REMOTE_ENV_VAR: Final[str] = "RELOCAL_REMOTE"


def find_repo_root(start: Path) -> Path:
    """Walk up from start to the nearest directory containing relocal.toml."""
    for candidate in (start, *start.parents):
        if (candidate / CONFIG_FILENAME).is_file():
            return candidate
    raise ConfigNotFoundError(start)


def _load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file."""
    if not path.exists():
        raise ConfigNotFoundError(path.parent)

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse {path}: {e}") from e


def parse_config(raw_config: Mapping[str, Any]) -> RelocalConfig:
    """Validate raw TOML data into a RelocalConfig."""
    try:
        return RelocalConfig.model_validate(dict(raw_config))
    except ValidationError as e:
        raise ConfigParseError(f"Invalid {CONFIG_FILENAME}: {e}") from e


def parse_config_text(text: str) -> RelocalConfig:
    """Parse the text of a relocal.toml file."""
    try:
        raw_config = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse {CONFIG_FILENAME}: {e}") from e
    return parse_config(raw_config)


def load_config(repo_root: Path, environ: Mapping[str, str] | None = None) -> RelocalConfig:
    """Load relocal.toml from repo_root, applying environment variable overrides.

    Precedence (lowest to highest):
    1. relocal.toml at the repo root
    2. Environment variables (RELOCAL_REMOTE)
    """
    raw_config = _load_toml(repo_root / CONFIG_FILENAME)

    env = os.environ if environ is None else environ
    remote_override = env.get(REMOTE_ENV_VAR)
    if remote_override:
        raw_config = {**raw_config, "remote": remote_override}

    return parse_config(raw_config)


@pure
def generate_config_toml(remote: str, exclude: Sequence[str], apt_packages: Sequence[str]) -> str:
    """Render the contents of a new relocal.toml, omitting empty lists."""
    document = tomlkit.document()
    document["remote"] = remote
    if exclude:
        document["exclude"] = list(exclude)
    if apt_packages:
        document["apt_packages"] = list(apt_packages)
    return tomlkit.dumps(document)
