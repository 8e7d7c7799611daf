from typing import Final

from loguru import logger

from imbue.relocal.api.hooks import hook_script_content
from imbue.relocal.api.remote_commands import check_claude_installed
from imbue.relocal.api.remote_commands import install_apt_packages
from imbue.relocal.api.remote_commands import install_hook_script
from imbue.relocal.api.remote_commands import mkdir_support_dirs
from imbue.relocal.api.remote_host import RemoteHost
from imbue.relocal.config.data_types import RelocalConfig
from imbue.relocal.errors import RemoteCommandError
from imbue.relocal.utils.logging import log_span

# Needed by Claude Code (nodejs, npm) and by most projects that get built on the remote.
BASELINE_APT_PACKAGES: Final[tuple[str, ...]] = ("build-essential", "nodejs", "npm")

_RUSTUP_INSTALL_COMMAND: Final[str] = "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh -s -- -y"
_CLAUDE_INSTALL_COMMAND: Final[str] = "npm install -g @anthropic-ai/claude-code"


def install_remote(remote_host: RemoteHost, config: RelocalConfig) -> None:
    """Prepare the remote host for relocal sessions.

    Every step is safe to re-run: tools that are already present are skipped and
    files are overwritten in place.
    """
    with log_span("Installing relocal on {}", remote_host.address):
        _install_apt_packages(remote_host, config)
        _install_rust(remote_host)
        _install_claude_code(remote_host)
        _authenticate_claude(remote_host)
        _install_hook_script(remote_host)
        logger.info("Creating FIFO and log directories...")
        remote_host.execute_checked(mkdir_support_dirs(), "create FIFO and log directories")
    logger.info("Remote installation complete.")


def _install_apt_packages(remote_host: RemoteHost, config: RelocalConfig) -> None:
    packages = list(dict.fromkeys((*BASELINE_APT_PACKAGES, *config.apt_packages)))
    logger.info("Installing APT packages: {}", " ".join(packages))
    remote_host.execute_checked(install_apt_packages(packages), "install APT packages")


def _install_rust(remote_host: RemoteHost) -> None:
    logger.info("Checking for Rust...")
    if remote_host.execute("command -v rustup").is_success:
        logger.info("rustup already installed, skipping.")
        return
    logger.info("Installing Rust via rustup...")
    remote_host.execute_checked(_RUSTUP_INSTALL_COMMAND, "install rustup")


def _install_claude_code(remote_host: RemoteHost) -> None:
    logger.info("Checking for Claude Code...")
    if remote_host.execute(check_claude_installed()).is_success:
        logger.info("Claude Code already installed, skipping.")
        return
    logger.info("Installing Claude Code via npm...")
    remote_host.execute_checked(_CLAUDE_INSTALL_COMMAND, "install Claude Code")


def _authenticate_claude(remote_host: RemoteHost) -> None:
    logger.info("Checking Claude authentication...")
    if remote_host.execute("claude auth status").is_success:
        logger.info("Claude already authenticated, skipping.")
        return
    logger.info("Running claude login (interactive)...")
    exit_code = remote_host.execute_attached("claude login")
    if exit_code != 0:
        raise RemoteCommandError(remote_host.address, "claude login", f"exit status {exit_code}")


def _install_hook_script(remote_host: RemoteHost) -> None:
    logger.info("Installing hook script...")
    remote_host.execute_checked(install_hook_script(hook_script_content()), "install hook script")
