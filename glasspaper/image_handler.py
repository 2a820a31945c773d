"""
Image Handler

Utilities for downloading and decoding wallpaper images at a size suited to the screen
rather than at their native resolution.

Downloading happens in two passes over two separate connections:

    1) bounds pass - stream just enough of the response for PIL to parse the image header
       and report the width and height, then hang up.
    2) decode pass - download the image again and decode it at a power-of-two downscale
       factor picked from those bounds, so each dimension still covers the screen.

JPEG images are shrunk by the decoder itself (PIL's draft mode uses libjpeg DCT scaling),
other formats have to be decoded at full size and are then reduced by the same factor. Either
way the result is at most roughly 4x the pixel count of the screen, and no decode allocates
more than MAX_DECODE_PIXELS, whatever the size of the source.

Connections are always opened as context managers, so they are closed on every exit path.
"""

import io
import logging
from contextlib import contextmanager

import requests
from PIL import Image, UnidentifiedImageError

from glasspaper.dimensions import ImageMetadata
from glasspaper.dimensions import ViewportSize

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# give up on the bounds pass if no header has been recognised after this many bytes
MAX_HEADER_BYTES = 4 * 1024 * 1024

# pixels the decoder may allocate in one go, the same budget as Pillow's decompression bomb
# limit but applied to the reduced size actually decoded instead of the native size
MAX_DECODE_PIXELS = 2 * 89478485

DECODER_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


class DownloadError(Exception):
    """
    Raised when an image download is unsuccessful.
    """

    pass


class HttpError(DownloadError):
    """
    Raised when the server answers with anything but 200 OK, or the request fails outright.
    """

    pass


class DecodeError(DownloadError):
    """
    Raised when the downloaded bytes can't be decoded into an image.
    """

    pass


class RunCancelled(Exception):
    """
    Raised when a run is cancelled while it is in flight.
    """

    pass


def check_cancelled(cancel):
    if cancel is not None and cancel.is_set():
        raise RunCancelled("run was cancelled")


@contextmanager
def native_size_unchecked():
    """
    Lift Pillow's decompression bomb check while opening an image. The check looks at the
    native size, which is never decoded here; the decode pass bounds the reduced size against
    MAX_DECODE_PIXELS instead.
    """

    limit = Image.MAX_IMAGE_PIXELS
    Image.MAX_IMAGE_PIXELS = None

    try:
        yield

    finally:
        Image.MAX_IMAGE_PIXELS = limit


def peek_size(data: bytes):
    """
    Try to parse an image header from the bytes received so far. PIL's open() reads the header
    only and does not allocate any pixel storage. Returns (width, height) or None if the header
    is not complete (or not recognisable) yet.
    """

    try:
        with native_size_unchecked(), Image.open(io.BytesIO(data)) as image:
            return image.size

    except DECODER_ERRORS:
        return None


def calculate_downscale_factor(metadata: ImageMetadata, viewport: ViewportSize) -> int:
    """
    Largest power of two that the image can be shrunk by while each halved dimension still
    covers the viewport. Images no larger than the viewport are never shrunk.
    """

    factor = 1

    if metadata.height > viewport.height or metadata.width > viewport.width:
        half_height = metadata.height // 2
        half_width = metadata.width // 2

        while (half_height // factor) >= viewport.height and (
            half_width // factor
        ) >= viewport.width:
            factor *= 2

    return factor


class ImageFetcher:
    """
    Download an image at the given url and decode it at a size suited to a viewport.
    """

    def __init__(
        self,
        connect_timeout: float = 15,
        read_timeout: float = 15,
        session: requests.Session = None,
    ):
        self.timeout = (connect_timeout, read_timeout)
        self.session = session

    def _open(self, url: str) -> requests.Response:
        getter = self.session.get if self.session is not None else requests.get

        try:
            response = getter(url, stream=True, timeout=self.timeout)

        except requests.exceptions.RequestException as error:
            raise HttpError(f"Download error: could not connect to {url}: {error}")

        return response

    def _read_chunks(self, response: requests.Response, url: str, cancel=None):
        if response.status_code != 200:
            raise HttpError(
                f"Download error: server returned HTTP {response.status_code} for {url}"
            )

        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                check_cancelled(cancel)
                if chunk:
                    yield chunk

        except requests.exceptions.RequestException as error:
            raise HttpError(f"Download error: connection to {url} broke off: {error}")

    def read_metadata(self, url: str, cancel=None) -> ImageMetadata:
        """
        Bounds pass. Stream the response only until the header can be parsed, then close the
        connection. Raises HttpError for a bad status and DecodeError if no usable size is found.
        """

        received = io.BytesIO()
        size = None

        with self._open(url) as response:
            for chunk in self._read_chunks(response, url, cancel):
                received.write(chunk)
                size = peek_size(received.getvalue())

                if size is not None or received.tell() >= MAX_HEADER_BYTES:
                    break

        if size is None:
            raise DecodeError(f"Failed to decode image bounds. URL: {url}")

        width, height = size
        if width <= 0 or height <= 0:
            raise DecodeError(f"Image at {url} reported invalid bounds {width}x{height}")

        return ImageMetadata(width=width, height=height)

    def _download(self, url: str, cancel=None) -> io.BytesIO:
        data = io.BytesIO()

        with self._open(url) as response:
            for chunk in self._read_chunks(response, url, cancel):
                data.write(chunk)

        data.seek(0)
        return data

    def decode(
        self, data: io.BytesIO, metadata: ImageMetadata, factor: int
    ) -> Image.Image:
        """
        Decode the downloaded bytes shrunk by factor. The returned image is RGB and at least
        (width // factor) x (height // factor) in size.
        """

        target = (max(1, metadata.width // factor), max(1, metadata.height // factor))
        stages = []

        try:
            with native_size_unchecked():
                source = Image.open(data)
            stages.append(source)

            # only has an effect for formats whose decoder can scale, i.e. JPEG
            source.draft("RGB", target)

            if factor > 1 and source.size == (metadata.width, metadata.height):
                logger.debug(
                    "%s decoder can't scale, decoding at full size %sx%s before reducing by %s",
                    source.format,
                    source.width,
                    source.height,
                    factor,
                )

            if source.width * source.height > MAX_DECODE_PIXELS:
                raise DecodeError(
                    f"{source.format} image of {source.width}x{source.height} is too large to decode"
                )

            source.load()

            image = source
            if image.mode != "RGB":
                image = image.convert("RGB")
                stages.append(image)

            reduce_by = min(image.width // target[0], image.height // target[1])
            if reduce_by > 1:
                image = image.reduce(reduce_by)
                stages.append(image)

        except DECODER_ERRORS + (DecodeError,) as error:
            for stage in stages:
                stage.close()
            raise DecodeError(f"Could not decode the downloaded image: {error}")

        # intermediate buffers are released, only the final image is kept
        for stage in stages:
            if stage is not image:
                stage.close()

        if image.width <= 0 or image.height <= 0:
            image.close()
            raise DecodeError("Decoder returned an empty image")

        return image

    def fetch(self, url: str, viewport: ViewportSize, cancel=None) -> Image.Image:
        """
        Download and decode the image at url for display on viewport. Two connections are used:
        the first only reads the image bounds, the second downloads the image for decoding.
        """

        metadata = self.read_metadata(url, cancel)

        factor = calculate_downscale_factor(metadata, viewport)
        logger.debug(
            "Decoding image with sample size %s. Original: %sx%s, Target Screen: %sx%s",
            factor,
            metadata.width,
            metadata.height,
            viewport.width,
            viewport.height,
        )

        check_cancelled(cancel)
        data = self._download(url, cancel)

        try:
            image = self.decode(data, metadata, factor)

        finally:
            data.close()

        logger.debug("Initial decoded image. Dimensions: %sx%s", image.width, image.height)
        return image
