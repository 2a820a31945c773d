"""
glasspaper

Keep your desktop wallpaper fresh with the picture of the day from a web page.

This module defines the entry point to the glasspaper CLI. It defines a 'cli' command group which
loads the configuration and sets up console output; the subcommands found in the subcommands
directory are attached to it by main().
"""

import click

from glasspaper.config import init
from glasspaper.cli_utils.console import configure_logging
from glasspaper.cli_utils.console import set_quiet
from glasspaper.cli_utils.decorators import catch_errors
from glasspaper.cli_utils.utils import import_commands
from glasspaper.cli_utils.utils import attach_commands


@click.group()
@click.option(
    "--verbose",
    "verbosity",
    flag_value="verbose",
    help="Print debug output about every step of a wallpaper change.",
)
@click.option(
    "--quiet",
    "verbosity",
    flag_value="quiet",
    help="Silence all output printed to stdout or the terminal.",
)
@click.version_option(package_name="glasspaper")
@click.pass_context
@catch_errors
def cli(ctx: click.Context, verbosity):
    """
    glasspaper

    Set the picture of the day from a web page as your desktop wallpaper, cropped to fit your screen.


    ====================
    Quickstart
    ====================

    Change the wallpaper right now:

        $ glasspaper change

    Change the wallpaper now and then every two hours (Ctrl-C to stop):

        $ glasspaper start

    See when the next change is due:

        $ glasspaper status


    The page to scrape, the interval and the fallback screen size live in
    ~/.config/glasspaper/config.json (or $GLASSPAPER_CONFIG_DIR/config.json).
    """

    set_quiet(verbosity == "quiet")
    configure_logging(verbose=verbosity == "verbose")

    # the configuration is shared with the subcommands through the click context object
    ctx.obj = init()


def main():

    commands = import_commands()
    attach_commands(cli, commands)
    cli()


if __name__ == "__main__":
    main()
