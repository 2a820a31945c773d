"""
glasspaper CLI Utilities

This module contains utilities shared across the Click subcommands: importing subcommands from
the subcommands directory, wiring up the wallpaper pipeline from the configuration, and working
out which viewport to fit wallpapers to.
"""

import inspect
import importlib
from pathlib import Path
from datetime import timedelta
from collections.abc import Iterable

import click

import glasspaper.subcommands
from glasspaper.config import GlasspaperConfig
from glasspaper.dimensions import ViewportSize
from glasspaper.image_handler import ImageFetcher
from glasspaper.page_handler import UrlResolver
from glasspaper.pipeline import WallpaperPipeline
from glasspaper.schedule import INTERVAL_KEY
from glasspaper.schedule import ScheduleTracker
from glasspaper.state_store import JsonStateStore
from glasspaper.wallpaper_handler import GnomeWallpaperSink
from glasspaper.wallpaper_handler import ScreenSizeError
from glasspaper.wallpaper_handler import get_screen_size
from glasspaper.cli_utils.console import warn


def import_commands(
    module_paths: Iterable = None,
) -> list[click.Command]:
    """
    Retrieve a set of click Commands from the modules in the built in subcommands directory.

    A valid glasspaper command module defines a "cli" function that is wrapped as a click Command
    object. Set the 'name' keyword argument in the @click.command decorator to set the name of
    the command exposed to the end user.
    """

    if module_paths is None:
        module_paths = sorted(Path(glasspaper.subcommands.__file__).parent.glob("*.py"))

    commands = []

    for path in module_paths:
        name = inspect.getmodulename(str(path))
        if name is None or name == "__init__":
            continue

        module = importlib.import_module(f"glasspaper.subcommands.{name}")

        try:
            commands.append(getattr(module, "cli"))

        except AttributeError:
            warn(f"Cannot add command {name}: no 'cli' function found.")

    return commands


def attach_commands(group: click.Group, commands: list[click.Command]):
    """
    Attach each command in a list of click Command objects to a provided group. Useful when
    retrieving a dynamic list of subcommands with import_commands().
    """

    for command in commands:
        group.add_command(command)


def open_state(config: GlasspaperConfig) -> JsonStateStore:
    return JsonStateStore(config.GLASSPAPER_STATE_FILE)


def build_tracker(
    config: GlasspaperConfig, store: JsonStateStore, interval_minutes: int = None
) -> ScheduleTracker:
    """
    Interval from the argument, else the one the last 'start' ran with, else the config.
    """

    minutes = (
        interval_minutes
        or store.get_long(INTERVAL_KEY, 0)
        or config.INTERVAL_MINUTES
    )
    return ScheduleTracker(store, interval=timedelta(minutes=minutes))


def build_pipeline(config: GlasspaperConfig, tracker: ScheduleTracker) -> WallpaperPipeline:
    """Wire the real resolver, fetcher and Gnome sink together as configured."""

    return WallpaperPipeline(
        page_url=config.PAGE_URL,
        resolver=UrlResolver(timeout=config.PAGE_TIMEOUT),
        fetcher=ImageFetcher(
            connect_timeout=config.CONNECT_TIMEOUT, read_timeout=config.READ_TIMEOUT
        ),
        sink=GnomeWallpaperSink(config.GLASSPAPER_WALLPAPER_DIR),
        tracker=tracker,
    )


def resolve_viewport(config: GlasspaperConfig, viewport_size=None) -> ViewportSize:
    """
    Viewport from --size if given, otherwise the detected screen size, otherwise the
    SCREEN_WIDTH x SCREEN_HEIGHT fallback from the config.
    """

    if viewport_size:
        return ViewportSize(*viewport_size)

    try:
        return get_screen_size()

    except ScreenSizeError as error:
        warn(
            f"{error} Using {config.SCREEN_WIDTH}x{config.SCREEN_HEIGHT} from the config instead."
        )
        return ViewportSize(config.SCREEN_WIDTH, config.SCREEN_HEIGHT)
