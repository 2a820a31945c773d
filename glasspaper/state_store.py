"""
State Store

A small durable key-value store for glasspaper schedule state, saved as a flat JSON object
(by default at ~/.config/glasspaper/state.json). Values survive process restarts.

Every put is a single-key upsert: the whole file is rewritten to a temporary file in the same
directory and moved over the old one with os.replace, so a reader sees either the old or the
new file and never a half-written one.
"""

import os
import json
import tempfile
from pathlib import Path


class StateStoreError(Exception):
    """Raise when the state file cannot be read or written."""

    pass


class JsonStateStore:
    """Key-value store backed by a JSON file. Keys are strings, values are ints or bools."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:

        try:
            with self.path.open("r") as file:
                data = json.load(file)

        except FileNotFoundError:
            return {}

        except (OSError, json.JSONDecodeError) as error:
            raise StateStoreError(f"Could not read state from {self.path}: {error}")

        if not isinstance(data, dict):
            raise StateStoreError(f"State file {self.path} does not hold a JSON object.")

        return data

    def _write(self, key: str, value):

        data = self._read()
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as file:
                    json.dump(data, file, sort_keys=True, indent=4)
                os.replace(tmp_name, self.path)

            except BaseException:
                os.unlink(tmp_name)
                raise

        except OSError as error:
            raise StateStoreError(f"Could not write state to {self.path}: {error}")

    def get_long(self, key: str, default: int = 0) -> int:
        value = self._read().get(key, default)

        # bool is an int subclass, never hand a flag back as a timestamp
        if isinstance(value, bool) or not isinstance(value, int):
            return default

        return value

    def put_long(self, key: str, value: int):
        self._write(key, int(value))

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._read().get(key, default)

        if not isinstance(value, bool):
            return default

        return value

    def put_bool(self, key: str, value: bool):
        self._write(key, bool(value))
