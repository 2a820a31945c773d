"""
glasspaper Decorators

Decorators shared by the glasspaper subcommands: option bundles that several commands accept
and uniform error reporting.
"""

import sys
from functools import wraps

import click

from glasspaper.cli_utils.console import fail


def viewport_option(func):
    """
    Add a --size option to a command. The value reaches the command as 'viewport_size', a
    (width, height) tuple or None when the screen size should be detected.
    """

    return click.option(
        "--size",
        "-s",
        "viewport_size",
        type=(click.IntRange(min=1), click.IntRange(min=1)),
        default=None,
        help="Size of the screen to fit the wallpaper to, e.g. -s 1920 1080. Detected when omitted.",
    )(func)


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code. Click's own usage errors are left to click.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.exceptions.Abort):
            raise
        except Exception as error:
            fail(str(error))
            sys.exit(1)

    return wrapper
