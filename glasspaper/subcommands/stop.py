"""
glasspaper stop

This module defines the 'stop' subcommand. It switches periodic wallpaper changes off; a running
'glasspaper start' loop notices within a few seconds and exits.
"""

import click

from glasspaper.config import GlasspaperConfig
from glasspaper.schedule import WORKER_ACTIVE_KEY
from glasspaper.cli_utils.console import confirm_success
from glasspaper.cli_utils.decorators import catch_errors
from glasspaper.cli_utils.utils import open_state


@click.command(name="stop")
@click.pass_obj
@catch_errors
def cli(config: GlasspaperConfig):
    """Switch periodic wallpaper changes off."""

    open_state(config).put_bool(WORKER_ACTIVE_KEY, False)
    confirm_success(":stop_sign-emoji: 'stop' switched periodic wallpaper changes off")
