"""
__main__.py

This file adds support for running glasspaper as a python module (python -m glasspaper) instead
of invoking the "glasspaper" command line entrypoint.
"""

from glasspaper.cli import main


if __name__ == "__main__":
    main()
