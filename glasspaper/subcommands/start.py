"""
glasspaper start

This module defines the 'start' subcommand, which switches on periodic wallpaper changes and
keeps changing the wallpaper on an interval until it is stopped with 'glasspaper stop' or Ctrl-C.
A stop is noticed within POLL_SECONDS.

The first change happens right away. A failed change is not retried early; the loop simply
tries again at the next interval.
"""

from time import sleep

import click

from glasspaper.config import GlasspaperConfig
from glasspaper.schedule import INTERVAL_KEY
from glasspaper.schedule import WORKER_ACTIVE_KEY
from glasspaper.schedule import utc_now
from glasspaper.cli_utils.console import describe
from glasspaper.cli_utils.console import confirm_success
from glasspaper.cli_utils.console import warn
from glasspaper.cli_utils.decorators import catch_errors
from glasspaper.cli_utils.decorators import viewport_option
from glasspaper.cli_utils.utils import build_pipeline
from glasspaper.cli_utils.utils import build_tracker
from glasspaper.cli_utils.utils import open_state
from glasspaper.cli_utils.utils import resolve_viewport

# how often a waiting loop checks whether it was switched off
POLL_SECONDS = 5


def wait_while_active(store, seconds: float):
    """
    Sleep for seconds, in slices of POLL_SECONDS, returning early once 'glasspaper stop' has
    cleared the active flag.
    """

    remaining = seconds
    while remaining > 0 and store.get_bool(WORKER_ACTIVE_KEY):
        step = min(POLL_SECONDS, remaining)
        sleep(step)
        remaining -= step


@click.command(name="start")
@click.option(
    "--interval",
    "-i",
    type=click.IntRange(min=1),
    default=None,
    help="Minutes between wallpaper changes. Defaults to INTERVAL_MINUTES from the config (120).",
)
@viewport_option
@click.pass_obj
@catch_errors
def cli(config: GlasspaperConfig, interval, viewport_size):
    """Change the wallpaper now and then again on every interval."""

    minutes = interval or config.INTERVAL_MINUTES

    store = open_state(config)
    tracker = build_tracker(config, store, interval_minutes=minutes)
    pipeline = build_pipeline(config, tracker)

    tracker.record_activation(utc_now())
    store.put_long(INTERVAL_KEY, minutes)
    store.put_bool(WORKER_ACTIVE_KEY, True)

    confirm_success(
        f":repeat-emoji: 'start' will change the wallpaper every {minutes} minutes"
    )

    try:
        while store.get_bool(WORKER_ACTIVE_KEY):

            # the screen may have been rotated or swapped since the last run
            viewport = resolve_viewport(config, viewport_size)
            outcome = pipeline.run(viewport)

            if outcome.succeeded:
                confirm_success(
                    ":white_check_mark-emoji: 'start' updated the desktop wallpaper"
                )
            else:
                warn(f"'start' failed: {outcome.reason.value}, will retry next cycle")

            describe(tracker.describe_next_run(utc_now()))
            wait_while_active(store, tracker.interval.total_seconds())

    except KeyboardInterrupt:
        store.put_bool(WORKER_ACTIVE_KEY, False)
        warn("'start' interrupted, periodic wallpaper changes are off")
        return

    describe("'start' stopped, periodic wallpaper changes are off")
