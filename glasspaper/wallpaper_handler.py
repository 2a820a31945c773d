"""
Gnome Wallpaper Handler

This module handles updates to the Gnome desktop background through the gsettings command
line tool, which reads and writes the org.gnome.desktop.background schema.

Settings for desktop backgrounds are defined under the schema: org.gnome.desktop.background
More information on this schema can be found at:
https://github.com/GNOME/gsettings-desktop-schemas/blob/master/schemas/org.gnome.desktop.background.gschema.xml.in

It also knows how to ask the X server for the current screen size, which is the viewport
wallpapers are fitted to.
"""

import re
import logging
import subprocess
from pathlib import Path
from datetime import datetime
from collections import OrderedDict

from PIL import Image, UnidentifiedImageError

from glasspaper.dimensions import ViewportSize

logger = logging.getLogger(__name__)

GSETTINGS = "gsettings"
BACKGROUND_SCHEMA = "org.gnome.desktop.background"
WALLPAPER_PREFIX = "glasspaper-"


class WallpaperUpdateError(Exception):
    """
    Raised when an attempt to update Gnome desktop background fails.
    """

    pass


class ScreenSizeError(WallpaperUpdateError):
    """
    Raised when the screen size can't be determined.
    """

    pass


def update_wallpaper(img_path: Path) -> None:
    """
    Update the background image to the one specified by img_path. Raise WallpaperUpdateError if
    issues are encountered during the attempt to update the background.

    Both picture-uri and picture-uri-dark are set so the wallpaper shows with either the light or
    the dark Gnome style. Gnome does no validation of the value so the path is checked here.
    """

    wallpaper_location = Path(img_path).expanduser().resolve()

    # subsequent operations will fail if path does not exist or is not a file, so catch this.
    if not wallpaper_location.is_file():
        raise WallpaperUpdateError(
            f"Invalid path provided for image location: {img_path} does not exist."
        )

    try:
        with Image.open(wallpaper_location):
            pass

    except UnidentifiedImageError:
        raise WallpaperUpdateError(
            f"Invalid image type provided. {wallpaper_location.name} is not a valid image."
        )

    for key in ("picture-uri", "picture-uri-dark"):

        # ordered dict preserves the sequence of the command arguments
        set_desktop_background = OrderedDict(
            [
                ("cmd", GSETTINGS),
                ("subcmd", "set"),
                ("schema", BACKGROUND_SCHEMA),
                ("key", key),
                ("value", wallpaper_location.as_uri()),
            ]
        )

        try:
            subprocess.run(
                list(set_desktop_background.values()),
                check=True,
                stdin=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                stdout=subprocess.PIPE,
            )

        except subprocess.CalledProcessError as error:
            # picture-uri-dark only exists from Gnome 42 onward
            if key == "picture-uri-dark":
                logger.debug("Could not set %s: %s", key, error)
                continue
            raise WallpaperUpdateError(f"Could not set desktop background: {error}")

        except OSError as error:
            raise WallpaperUpdateError(f"Could not run {GSETTINGS}: {error}")


def get_screen_size() -> ViewportSize:
    """
    Read the current screen size from 'xrandr --current', e.g.

        Screen 0: minimum 320 x 200, current 2560 x 1440, maximum 16384 x 16384
    """

    try:
        process = subprocess.run(
            ["xrandr", "--current"],
            text=True,
            check=True,
            stdin=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            stdout=subprocess.PIPE,
        )

    except (subprocess.CalledProcessError, OSError) as error:
        raise ScreenSizeError(f"Could not retrieve screen size: {error}")

    match = re.search(r"current\s+(\d+)\s*x\s*(\d+)", process.stdout)
    if match is None:
        raise ScreenSizeError("Could not find the current screen size in xrandr output.")

    try:
        return ViewportSize(width=int(match.group(1)), height=int(match.group(2)))

    except ValueError as error:
        raise ScreenSizeError(str(error))


class GnomeWallpaperSink:
    """
    Wallpaper sink for the pipeline. set_static() saves the finished image into wallpaper_dir
    and points the Gnome desktop background at it. Files from earlier changes are removed once
    the new wallpaper is in place.
    """

    def __init__(self, wallpaper_dir: Path, clock=datetime.now):
        self.wallpaper_dir = Path(wallpaper_dir).expanduser()
        self.clock = clock

    def _save(self, image: Image.Image) -> Path:
        self.wallpaper_dir.mkdir(parents=True, exist_ok=True)

        # a new file name each time, gnome doesn't reload a picture-uri that didn't change
        stamp = self.clock().strftime("%Y%m%d-%H%M%S-%f")
        dest_path = self.wallpaper_dir / f"{WALLPAPER_PREFIX}{stamp}.jpg"

        image.save(dest_path, format="JPEG", quality=95)
        return dest_path

    def _remove_previous(self, current: Path):
        for old in self.wallpaper_dir.glob(f"{WALLPAPER_PREFIX}*.jpg"):
            if old != current:
                try:
                    old.unlink()
                except OSError as error:
                    logger.warning("Could not remove old wallpaper %s: %s", old, error)

    def set_static(self, image: Image.Image) -> bool:
        logger.debug(
            "Attempting to set image as wallpaper. Final dimensions: %sx%s",
            image.width,
            image.height,
        )

        try:
            dest_path = self._save(image)
            update_wallpaper(dest_path)

        except (WallpaperUpdateError, OSError, ValueError) as error:
            logger.error("Error setting wallpaper: %s", error)
            return False

        self._remove_previous(dest_path)
        logger.info("Desktop wallpaper updated to %s", dest_path)
        return True
