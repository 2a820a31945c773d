"""
console.py - provide application level access to Rich Console objects for writing to stdout
and stderr, and route the library's log records through Rich as well.
"""

import logging
from io import StringIO

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

glasspaper_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "bold", "describe": ""}
)

console = Console(theme=glasspaper_theme)
error_console = Console(theme=glasspaper_theme, stderr=True)

"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(f":warning-emoji:  {msg}", style="warning")


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str):
    """
    Format confirmation msg and print to stdout.
    """

    console.print(f"{msg}", style="confirm")


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: {msg}", style="fail")


def set_quiet(quiet: bool):
    """
    Send everything printed by the consoles to a junk stream, or back to stdout/stderr.
    A console with no file set writes to whatever sys.stdout / sys.stderr currently is.
    """

    console.file = StringIO() if quiet else None
    error_console.file = StringIO() if quiet else None


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a RichHandler writing to the error console to the 'glasspaper' logger. Warnings and
    errors are always shown, debug output only with verbose.
    """

    logger = logging.getLogger("glasspaper")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=error_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
