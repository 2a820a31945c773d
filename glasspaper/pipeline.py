"""
Wallpaper Pipeline

One run of the pipeline changes the wallpaper once:

    IDLE -> RESOLVING_URL -> FETCHING -> TRANSFORMING -> SETTING_WALLPAPER -> SUCCEEDED | FAILED

Stages run strictly one after the other. The first failure ends the run as FAILED with a
reason, nothing is retried here; whoever triggers runs (the 'start' loop, cron...) decides when
to try again. No exception escapes run(): errors that don't belong to a known category are
reported as FailureReason.UNKNOWN.

Only a successful run touches the schedule state, by recording the time of the success. The
caller must not start a second run for the same schedule while one is in flight.
"""

import asyncio
import logging
import threading
from enum import Enum
from dataclasses import dataclass
from typing import Optional

from glasspaper.crop_handler import fit_to_viewport
from glasspaper.dimensions import ViewportSize
from glasspaper.image_handler import DecodeError
from glasspaper.image_handler import HttpError
from glasspaper.image_handler import RunCancelled
from glasspaper.image_handler import check_cancelled
from glasspaper.page_handler import FetchError
from glasspaper.page_handler import NoImageFound
from glasspaper.schedule import utc_now

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    RESOLVING_URL = "resolving url"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    SETTING_WALLPAPER = "setting wallpaper"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(Enum):
    FETCH_ERROR = "could not fetch the wallpaper page"
    NO_IMAGE_FOUND = "no image found on the wallpaper page"
    HTTP_ERROR = "could not download the image"
    DECODE_ERROR = "could not decode the image"
    WALLPAPER_SINK_ERROR = "could not set the wallpaper"
    CANCELLED = "run was cancelled"
    UNKNOWN = "unexpected error"


class WallpaperSinkError(Exception):
    """
    Raised when the wallpaper sink refuses the image or breaks while setting it.
    """

    pass


# checked in order, subclasses before their parents
FAILURE_REASONS = (
    (FetchError, FailureReason.FETCH_ERROR),
    (NoImageFound, FailureReason.NO_IMAGE_FOUND),
    (HttpError, FailureReason.HTTP_ERROR),
    (DecodeError, FailureReason.DECODE_ERROR),
    (WallpaperSinkError, FailureReason.WALLPAPER_SINK_ERROR),
    (RunCancelled, FailureReason.CANCELLED),
)


@dataclass(frozen=True)
class RunOutcome:
    """Success, or failure with a reason."""

    reason: Optional[FailureReason] = None

    @classmethod
    def success(cls) -> "RunOutcome":
        return cls()

    @classmethod
    def failure(cls, reason: FailureReason) -> "RunOutcome":
        return cls(reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.reason is None


def failure_reason(error: Exception) -> FailureReason:
    for error_type, reason in FAILURE_REASONS:
        if isinstance(error, error_type):
            return reason

    return FailureReason.UNKNOWN


class WallpaperPipeline:
    """
    Drive a page url through resolver -> fetcher -> fit -> sink and record successes.

    resolver has resolve(page_url) -> url, fetcher has fetch(url, viewport, cancel) -> image,
    sink has set_static(image) -> bool and tracker has record_success(now). The defaults for
    everything else are the real implementations, tests swap them out.
    """

    def __init__(
        self,
        page_url: str,
        resolver,
        fetcher,
        sink,
        tracker,
        fit=fit_to_viewport,
        clock=utc_now,
    ):
        self.page_url = page_url
        self.resolver = resolver
        self.fetcher = fetcher
        self.sink = sink
        self.tracker = tracker
        self.fit = fit
        self.clock = clock
        self.state = PipelineState.IDLE

    def _advance(self, state: PipelineState, cancel=None):
        check_cancelled(cancel)
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def _set_wallpaper(self, image):
        try:
            accepted = self.sink.set_static(image)

        except Exception as error:
            raise WallpaperSinkError(f"Wallpaper sink failed: {error}") from error

        if not accepted:
            raise WallpaperSinkError("Wallpaper sink did not accept the image.")

    def run(self, viewport: ViewportSize, cancel: threading.Event = None) -> RunOutcome:
        """
        Change the wallpaper once. Returns RunOutcome.success() or RunOutcome.failure(reason).
        If cancel is set while the run is in flight, the run stops at the next stage (or download
        chunk) and fails with FailureReason.CANCELLED without touching the schedule state.
        """

        logger.info("Wallpaper change started.")
        self.state = PipelineState.IDLE
        image = None

        try:
            self._advance(PipelineState.RESOLVING_URL, cancel)
            url = self.resolver.resolve(self.page_url)
            logger.debug("Extracted image URL: %s", url)

            self._advance(PipelineState.FETCHING, cancel)
            image = self.fetcher.fetch(url, viewport, cancel)

            self._advance(PipelineState.TRANSFORMING, cancel)
            image = self.fit(image, viewport)

            self._advance(PipelineState.SETTING_WALLPAPER, cancel)
            self._set_wallpaper(image)

            self.tracker.record_success(self.clock())

        except Exception as error:
            reason = failure_reason(error)

            if reason is FailureReason.UNKNOWN:
                logger.exception("An error occurred while %s", self.state.value)
            else:
                logger.error("Wallpaper change failed while %s: %s", self.state.value, error)

            self.state = PipelineState.FAILED
            return RunOutcome.failure(reason)

        finally:
            if image is not None:
                image.close()

        self.state = PipelineState.SUCCEEDED
        logger.info("Wallpaper changed successfully and last run time stored.")
        return RunOutcome.success()

    async def run_in_background(self, viewport: ViewportSize) -> RunOutcome:
        """
        Await run() on a worker thread. Cancelling the awaiting task asks the worker to stop; it
        releases its connection and image buffers and persists nothing.
        """

        cancel = threading.Event()

        try:
            return await asyncio.to_thread(self.run, viewport, cancel)

        except asyncio.CancelledError:
            cancel.set()
            raise
