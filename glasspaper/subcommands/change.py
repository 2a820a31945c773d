"""
glasspaper change

This module defines the 'change' subcommand, which changes the wallpaper once, right now.
"""

import sys

import click

from glasspaper.config import GlasspaperConfig
from glasspaper.cli_utils.console import describe
from glasspaper.cli_utils.console import confirm_success
from glasspaper.cli_utils.console import fail
from glasspaper.cli_utils.decorators import catch_errors
from glasspaper.cli_utils.decorators import viewport_option
from glasspaper.cli_utils.utils import build_pipeline
from glasspaper.cli_utils.utils import build_tracker
from glasspaper.cli_utils.utils import open_state
from glasspaper.cli_utils.utils import resolve_viewport


@click.command(name="change")
@viewport_option
@click.pass_obj
@catch_errors
def cli(config: GlasspaperConfig, viewport_size):
    """Change the desktop wallpaper once, right now."""

    tracker = build_tracker(config, open_state(config))
    pipeline = build_pipeline(config, tracker)
    viewport = resolve_viewport(config, viewport_size)

    describe(
        f":earth_asia-emoji: 'change' getting a wallpaper from {config.PAGE_URL} for a {viewport.width}x{viewport.height} screen ..."
    )
    outcome = pipeline.run(viewport)

    if not outcome.succeeded:
        fail(f"'change' failed: {outcome.reason.value}")
        sys.exit(1)

    confirm_success(":white_check_mark-emoji: 'change' updated the desktop wallpaper")
