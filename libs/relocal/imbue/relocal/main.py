import click

from imbue.relocal.cli.destroy import destroy
from imbue.relocal.cli.init import init
from imbue.relocal.cli.list import list_command
from imbue.relocal.cli.remote import remote
from imbue.relocal.cli.start import start
from imbue.relocal.cli.status import status
from imbue.relocal.cli.sync import sync


@click.group()
@click.version_option(package_name="relocal", prog_name="relocal")
def cli() -> None:
    """Run Claude Code on a remote host against a synced copy of your local repo.

    The local repo stays the source of truth: hooks push it to the remote before
    each prompt and pull the remote's changes back after each turn.
    """


cli.add_command(init)
cli.add_command(start)
cli.add_command(sync)
cli.add_command(status)
cli.add_command(list_command)
cli.add_command(destroy)
cli.add_command(remote)


if __name__ == "__main__":
    cli()
