"""
glasspaper Configuration Management

This file handles utilities related to generating and loading variables from a configuration file.
GlasspaperConfig should be loaded at startup by the CLI before any command processing is done.
Raise a GlasspaperConfigError for any issues that arise in processing or retrieving these
configuration variables.

The configuration file is "config.json" and is saved at ~/.config/glasspaper/config.json
unless the GLASSPAPER_CONFIG_DIR environment variable points somewhere else.
"""

import json
import os
from dataclasses import dataclass
from dataclasses import asdict
from pathlib import Path, PurePath


class GlasspaperConfigError(Exception):
    """Raise when an issue occurs with handling glasspaper configuration."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, PurePath):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


def default_config_dir() -> Path:
    try:
        return Path(os.environ["GLASSPAPER_CONFIG_DIR"]).expanduser()

    except KeyError:
        return Path("~/.config/glasspaper").expanduser()


@dataclass
class GlasspaperConfig:
    """
    Dataclass to represent configuration variables for glasspaper. Provides a namespace for the
    directories glasspaper reads and writes, the page that is scraped for wallpapers and the
    timing knobs for the schedule and the HTTP requests.

    A GlasspaperConfig is instantiated by supplying keyword arguments from a deserialized json
    object, so the json object is kept fully flat.
    """

    GLASSPAPER_CONFIG_DIR: Path = None
    GLASSPAPER_STATE_FILE: Path = None
    GLASSPAPER_WALLPAPER_DIR: Path = Path("~/.local/share/backgrounds")
    PAGE_URL: str = "https://wallpapers.opentrust.it/"
    INTERVAL_MINUTES: int = 120
    PAGE_TIMEOUT: float = 10
    CONNECT_TIMEOUT: float = 15
    READ_TIMEOUT: float = 15
    SCREEN_WIDTH: int = 1920
    SCREEN_HEIGHT: int = 1080

    def __post_init__(self):
        """
        Handle the case where a new GlasspaperConfig is created from JSON, which cannot
        deserialize a str into a Path. Missing directories fall back to the config directory.
        """

        if self.GLASSPAPER_CONFIG_DIR is None:
            self.GLASSPAPER_CONFIG_DIR = default_config_dir()

        self.GLASSPAPER_CONFIG_DIR = Path(self.GLASSPAPER_CONFIG_DIR).expanduser()

        if self.GLASSPAPER_STATE_FILE is None:
            self.GLASSPAPER_STATE_FILE = self.GLASSPAPER_CONFIG_DIR / "state.json"

        self.GLASSPAPER_STATE_FILE = Path(self.GLASSPAPER_STATE_FILE).expanduser()
        self.GLASSPAPER_WALLPAPER_DIR = Path(self.GLASSPAPER_WALLPAPER_DIR).expanduser()

        if self.INTERVAL_MINUTES <= 0:
            raise GlasspaperConfigError(
                f"INTERVAL_MINUTES must be positive, got {self.INTERVAL_MINUTES}"
            )

    def generate_config_json(self) -> Path:
        """
        Write the GlasspaperConfig to file, serializing to JSON. Returns filepath of written
        config.json file which is located at GLASSPAPER_CONFIG_DIR.

        Will overwrite any existing config file for glasspaper.
        """

        try:
            to_json = json.dumps(
                asdict(self), sort_keys=True, indent=4, cls=PathEncoder
            )

        except TypeError as error:
            raise GlasspaperConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            )

        try:
            self.GLASSPAPER_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

            dest_file = self.GLASSPAPER_CONFIG_DIR / "config.json"
            with open(dest_file, "w") as file:
                file.write(to_json)

        except OSError as error:
            raise GlasspaperConfigError(
                f"There was an error saving the configuration file: {error}."
            )

        return dest_file


def init() -> GlasspaperConfig:
    """initialize the glasspaper CLI app"""

    try:
        config: GlasspaperConfig = load_config()

    except GlasspaperConfigError:

        try:
            config: GlasspaperConfig = GlasspaperConfig()
            config.generate_config_json()

        except GlasspaperConfigError as error:

            raise GlasspaperConfigError(
                f"There was an issue trying to load config file for glasspaper: {error}"
            )

    return config


def load_config() -> GlasspaperConfig:
    """
    Load config.json from GLASSPAPER_CONFIG_DIR (or ~/.config/glasspaper) and instantiate it as a
    GlasspaperConfig dataclass. Raise GlasspaperConfigError if a config file can't be found or read.
    """

    config_src = default_config_dir() / "config.json"

    try:
        with config_src.open("r") as file:

            from_json = json.loads(file.read())
            config = GlasspaperConfig(**from_json)

    except json.JSONDecodeError as error:
        raise GlasspaperConfigError(f"There was an issue reading the config: {error}")

    except TypeError as error:
        raise GlasspaperConfigError(f"Unknown setting in the config: {error}")

    except FileNotFoundError as error:
        raise GlasspaperConfigError(f"There was an issue opening the config: {error}")

    return config
