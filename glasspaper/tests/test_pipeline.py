"""
Tests for pipeline.py

The pipeline is driven with MagicMock stand-ins for the resolver, fetcher and sink, and a real
ScheduleTracker over a temporary state file. This way each stage can be made to fail on its own
and the schedule state can be inspected afterwards.
"""

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from PIL import Image

# following entities are tested in this module:
from glasspaper.pipeline import WallpaperPipeline
from glasspaper.pipeline import FailureReason
from glasspaper.pipeline import PipelineState
from glasspaper.pipeline import RunOutcome
from glasspaper.image_handler import DecodeError
from glasspaper.image_handler import HttpError
from glasspaper.page_handler import FetchError
from glasspaper.page_handler import NoImageFound
from glasspaper.schedule import ScheduleTracker
from glasspaper.schedule import to_millis
from glasspaper.dimensions import ViewportSize
from glasspaper.state_store import StateStoreError

PAGE_URL = "https://example.com/"
IMG_URL = "https://example.com/a.jpg"
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tracker(state_store):
    return ScheduleTracker(state_store, timedelta(hours=2))


@pytest.fixture
def parts():
    """
    Resolver, fetcher and sink that succeed. The fetcher hands out a fresh 400x200 image on
    every call and the sink remembers the size of what it was given.
    """

    resolver = MagicMock()
    resolver.resolve.return_value = IMG_URL

    fetcher = MagicMock()
    fetcher.fetch.side_effect = lambda url, viewport, cancel=None: Image.new(
        "RGB", (400, 200)
    )

    sink = MagicMock()
    sink.received = []

    def set_static(image):
        sink.received.append(image.size)
        return True

    sink.set_static.side_effect = set_static

    return resolver, fetcher, sink


@pytest.fixture
def pipeline(parts, tracker):
    resolver, fetcher, sink = parts
    return WallpaperPipeline(
        PAGE_URL, resolver, fetcher, sink, tracker, clock=lambda: NOW
    )


def test_run_success(pipeline, parts, state_store, viewport):
    resolver, fetcher, sink = parts

    outcome = pipeline.run(viewport)

    assert outcome == RunOutcome.success()
    assert outcome.succeeded
    assert pipeline.state is PipelineState.SUCCEEDED
    resolver.resolve.assert_called_once_with(PAGE_URL)
    assert fetcher.fetch.call_args.args[:2] == (IMG_URL, viewport)
    # 400x200 cropped to the square viewport
    assert sink.received == [(200, 200)]
    assert state_store.get_long("last_successful_run_time") == to_millis(NOW)


def test_run_success_leaves_activation_alone(pipeline, tracker, state_store, viewport):
    activated = NOW - timedelta(hours=1)
    tracker.record_activation(activated)

    pipeline.run(viewport)

    assert state_store.get_long("activation_time") == to_millis(activated)
    assert tracker.estimate_next_run() == NOW + timedelta(hours=2)


def test_run_closes_image(pipeline, parts, viewport):
    _, fetcher, sink = parts
    handed_out = []

    def fetch(url, viewport, cancel=None):
        image = Image.new("RGB", (100, 100))
        handed_out.append(image)
        return image

    fetcher.fetch.side_effect = fetch

    assert pipeline.run(viewport).succeeded
    with pytest.raises(ValueError):
        handed_out[0].getpixel((0, 0))


@pytest.mark.parametrize(
    "stage, error, reason",
    [
        ("resolver", FetchError("timeout"), FailureReason.FETCH_ERROR),
        ("resolver", NoImageFound("nothing"), FailureReason.NO_IMAGE_FOUND),
        ("fetcher", HttpError("HTTP 404"), FailureReason.HTTP_ERROR),
        ("fetcher", DecodeError("garbage"), FailureReason.DECODE_ERROR),
        ("fetcher", RuntimeError("boom"), FailureReason.UNKNOWN),
        ("sink", OSError("gsettings missing"), FailureReason.WALLPAPER_SINK_ERROR),
    ],
)
def test_run_failure_reasons(
    pipeline, parts, state_store, viewport, stage, error, reason
):
    resolver, fetcher, sink = parts
    mocks = {
        "resolver": resolver.resolve,
        "fetcher": fetcher.fetch,
        "sink": sink.set_static,
    }
    mocks[stage].side_effect = error

    outcome = pipeline.run(viewport)

    assert outcome == RunOutcome.failure(reason)
    assert not outcome.succeeded
    assert pipeline.state is PipelineState.FAILED
    assert state_store.get_long("last_successful_run_time") == 0


def test_run_stops_at_first_failure(pipeline, parts, viewport):
    resolver, fetcher, sink = parts
    resolver.resolve.side_effect = NoImageFound("nothing")

    pipeline.run(viewport)

    fetcher.fetch.assert_not_called()
    sink.set_static.assert_not_called()


def test_run_sink_rejects(pipeline, parts, state_store, viewport):
    _, _, sink = parts
    sink.set_static.side_effect = None
    sink.set_static.return_value = False

    outcome = pipeline.run(viewport)

    assert outcome.reason is FailureReason.WALLPAPER_SINK_ERROR
    assert state_store.get_long("last_successful_run_time") == 0


def test_run_fit_error_is_unknown(parts, tracker, viewport):
    resolver, fetcher, sink = parts

    def broken_fit(image, viewport):
        raise MemoryError("out of memory")

    pipeline = WallpaperPipeline(
        PAGE_URL, resolver, fetcher, sink, tracker, fit=broken_fit
    )

    assert pipeline.run(viewport).reason is FailureReason.UNKNOWN
    sink.set_static.assert_not_called()


def test_run_store_failure_is_unknown(parts, viewport):
    resolver, fetcher, sink = parts
    tracker = MagicMock()
    tracker.record_success.side_effect = StateStoreError("disk full")

    pipeline = WallpaperPipeline(PAGE_URL, resolver, fetcher, sink, tracker)

    assert pipeline.run(viewport).reason is FailureReason.UNKNOWN


def test_run_cancelled_before_start(pipeline, parts, state_store, viewport):
    resolver, _, _ = parts
    cancel = threading.Event()
    cancel.set()

    outcome = pipeline.run(viewport, cancel)

    assert outcome.reason is FailureReason.CANCELLED
    resolver.resolve.assert_not_called()
    assert state_store.get_long("last_successful_run_time") == 0


def test_run_cancelled_between_stages(pipeline, parts, state_store, viewport):
    resolver, fetcher, sink = parts
    cancel = threading.Event()

    def resolve(page_url):
        cancel.set()
        return IMG_URL

    resolver.resolve.side_effect = resolve

    outcome = pipeline.run(viewport, cancel)

    assert outcome.reason is FailureReason.CANCELLED
    fetcher.fetch.assert_not_called()
    sink.set_static.assert_not_called()
    assert state_store.get_long("last_successful_run_time") == 0


def test_run_is_repeatable(pipeline, parts, viewport):
    resolver, _, _ = parts
    resolver.resolve.side_effect = [FetchError("down"), IMG_URL]

    assert pipeline.run(viewport).reason is FailureReason.FETCH_ERROR
    assert pipeline.run(viewport).succeeded
    assert pipeline.state is PipelineState.SUCCEEDED


def test_run_in_background(pipeline, state_store):
    outcome = asyncio.run(pipeline.run_in_background(ViewportSize(100, 100)))

    assert outcome.succeeded
    assert state_store.get_long("last_successful_run_time") == to_millis(NOW)


def test_run_in_background_cancelled(pipeline, parts, state_store):
    """
    Cancelling the awaiting task sets the cancel flag seen by the worker thread, so the run
    stops before the wallpaper is set and nothing is recorded.
    """

    resolver, _, sink = parts
    resolving = threading.Event()
    release = threading.Event()

    def resolve(page_url):
        resolving.set()
        release.wait(timeout=5)
        return IMG_URL

    resolver.resolve.side_effect = resolve

    async def cancel_midway():
        task = asyncio.ensure_future(pipeline.run_in_background(ViewportSize(100, 100)))
        while not resolving.is_set():
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        release.set()

    asyncio.run(cancel_midway())

    # asyncio.run waits for the default executor, so the worker is done by now
    sink.set_static.assert_not_called()
    assert pipeline.state is PipelineState.FAILED
    assert state_store.get_long("last_successful_run_time") == 0
