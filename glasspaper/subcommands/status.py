"""
glasspaper status

This module defines the 'status' subcommand, which tells whether periodic wallpaper changes are
on, when the wallpaper last changed and when the next change is expected.
"""

import click

from glasspaper.config import GlasspaperConfig
from glasspaper.schedule import WORKER_ACTIVE_KEY
from glasspaper.schedule import utc_now
from glasspaper.cli_utils.console import describe
from glasspaper.cli_utils.decorators import catch_errors
from glasspaper.cli_utils.utils import build_tracker
from glasspaper.cli_utils.utils import open_state


@click.command(name="status")
@click.pass_obj
@catch_errors
def cli(config: GlasspaperConfig):
    """Show when the wallpaper last changed and when it changes next."""

    store = open_state(config)
    tracker = build_tracker(config, store)

    last_run = tracker.last_successful_run
    if last_run is None:
        describe("Last change: never")
    else:
        describe(f"Last change: {last_run.astimezone():%Y-%m-%d %H:%M}")

    if not store.get_bool(WORKER_ACTIVE_KEY):
        describe("Periodic wallpaper changes are off. Run 'glasspaper start' to switch them on.")
        return

    describe("Periodic wallpaper changes are on.")
    describe(tracker.describe_next_run(utc_now()))
