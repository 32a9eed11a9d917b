"""Entry point for the envdeck command-line interface."""

import click

from envdeck import __version__
from envdeck.cli.commands.provision import provision


@click.group(name="envdeck")
@click.version_option(__version__, prog_name="envdeck")
def main() -> None:
    """envdeck - Provision Azure Deployment Environments.

    Run ``envdeck provision --help`` for the available commands.
    """


main.add_command(provision)


if __name__ == "__main__":  # pragma: no cover
    main()
