"""
Crop Handler

Fit an image to the screen by cutting a centered rectangle out of it with the same aspect
ratio as the viewport. Images whose aspect ratio is already within ASPECT_RATIO_EPSILON of the
viewport are left alone.

A crop that would not fit inside the source image is never a reason to fail: the image is
handed back uncropped and a warning is logged.
"""

import logging
from typing import Optional

from PIL import Image

from glasspaper.dimensions import CropRect
from glasspaper.dimensions import ViewportSize

logger = logging.getLogger(__name__)

ASPECT_RATIO_EPSILON = 0.01


def calculate_crop(width: int, height: int, viewport: ViewportSize) -> Optional[CropRect]:
    """
    Centered crop rectangle matching the viewport aspect ratio, or None when the image
    aspect ratio already matches within ASPECT_RATIO_EPSILON.

    A relatively wider image keeps its full height and loses the sides, a relatively taller
    image keeps its full width and loses the top and bottom.
    """

    screen_ratio = viewport.aspect_ratio
    image_ratio = width / height

    if abs(image_ratio - screen_ratio) <= ASPECT_RATIO_EPSILON:
        return None

    if image_ratio > screen_ratio:
        crop_width = max(1, round(screen_ratio * height))
        return CropRect(
            x=max(0, (width - crop_width) // 2), y=0, width=crop_width, height=height
        )

    crop_height = max(1, round(width / screen_ratio))
    return CropRect(
        x=0, y=max(0, (height - crop_height) // 2), width=width, height=crop_height
    )


def fit_to_viewport(image: Image.Image, viewport: ViewportSize) -> Image.Image:
    """
    Crop image to the viewport aspect ratio. On success the source image is closed and the
    cropped copy is returned; otherwise the very same image object is returned.
    """

    width, height = image.size
    if width <= 0 or height <= 0:
        logger.error("Image has invalid dimensions %sx%s. Cannot crop.", width, height)
        return image

    rect = calculate_crop(width, height, viewport)

    if rect is None:
        logger.debug("Image aspect ratio matches screen. No crop needed.")
        return image

    if not rect.fits_within(width, height):
        logger.warning(
            "Invalid crop dimensions: x=%s, y=%s, w=%s, h=%s. Source: %sx%s. Using uncropped image.",
            rect.x,
            rect.y,
            rect.width,
            rect.height,
            width,
            height,
        )
        return image

    logger.debug(
        "Calculated crop: x=%s, y=%s, w=%s, h=%s from %sx%s",
        rect.x,
        rect.y,
        rect.width,
        rect.height,
        width,
        height,
    )

    try:
        cropped = image.crop(rect.box)

    except (ValueError, OSError) as error:
        logger.error("Error during crop, using uncropped image: %s", error)
        return image

    image.close()
    logger.debug("Image successfully cropped to: %sx%s", cropped.width, cropped.height)

    return cropped
