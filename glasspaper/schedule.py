"""
Schedule Tracker

Keeps track of when glasspaper last changed the wallpaper and estimates when the next change
should happen. The estimate is a projection for display purposes only; actually running the
pipeline on time is the job of whoever calls it (the 'start' loop, cron, a systemd timer...).

Two timestamps are persisted through an injected key-value store:

    last_successful_run_time - written after every successful pipeline run
    activation_time          - written once when periodic changes are switched on

Both are stored as epoch milliseconds and 0 means "not set". Once a successful run has been
recorded it always drives the estimate, and it is never cleared automatically.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

LAST_SUCCESSFUL_RUN_KEY = "last_successful_run_time"
ACTIVATION_KEY = "activation_time"
WORKER_ACTIVE_KEY = "is_worker_active"
INTERVAL_KEY = "interval_minutes"

DEFAULT_INTERVAL = timedelta(hours=2)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    return round(moment.timestamp() * 1000)


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


class ScheduleTracker:
    """
    Record activation and successful runs, and estimate the next run from them.

    store is anything with get_long(key, default) and put_long(key, value), e.g. a JsonStateStore.
    """

    def __init__(self, store, interval: timedelta = DEFAULT_INTERVAL):
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")

        self.store = store
        self.interval = interval

    def record_activation(self, now: datetime):
        self.store.put_long(ACTIVATION_KEY, to_millis(now))
        logger.debug("Recorded activation at %s", now.isoformat())

    def record_success(self, now: datetime):
        self.store.put_long(LAST_SUCCESSFUL_RUN_KEY, to_millis(now))
        logger.debug("Recorded successful run at %s", now.isoformat())

    @property
    def last_successful_run(self) -> Optional[datetime]:
        millis = self.store.get_long(LAST_SUCCESSFUL_RUN_KEY, 0)
        return from_millis(millis) if millis > 0 else None

    @property
    def activated_at(self) -> Optional[datetime]:
        millis = self.store.get_long(ACTIVATION_KEY, 0)
        return from_millis(millis) if millis > 0 else None

    def estimate_next_run(self) -> Optional[datetime]:
        """
        Return last successful run + interval if there has been a successful run, otherwise
        activation + interval as a best guess for the pending first run, otherwise None.
        """

        last_run = self.last_successful_run
        if last_run is not None:
            return last_run + self.interval

        activated = self.activated_at
        if activated is not None:
            return activated + self.interval

        return None

    def time_until_next_run(self, now: datetime) -> Optional[timedelta]:
        """Negative when the estimated run time has already passed."""

        next_run = self.estimate_next_run()
        if next_run is None:
            return None

        return next_run - now

    def describe_next_run(self, now: datetime) -> str:
        remaining = self.time_until_next_run(now)

        if remaining is None:
            return "Next change: not scheduled yet"

        # a past estimate means the run is due or in progress
        if remaining < timedelta(0):
            return "Next change: processing..."

        total_minutes = int(remaining.total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)
        return f"Next change: {hours}h {minutes}m"
