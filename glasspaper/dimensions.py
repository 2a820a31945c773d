"""
Dimensions

Small value types describing the sizes glasspaper works with: the size of a remote image as
reported by its header, the size of the screen the wallpaper is rendered on, and the crop
rectangle that fits one to the other.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageMetadata:
    """Width and height of an image, read from its header without decoding any pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class ViewportSize:
    """
    Size of the render surface. Supplied per run since it may change between runs
    (screen rotation, a different monitor...).
    """

    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"viewport dimensions must be positive, got {self.width}x{self.height}"
            )

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    def fits_within(self, width: int, height: int) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and self.x >= 0
            and self.y >= 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )

    @property
    def box(self) -> tuple:
        """(left, upper, right, lower) as expected by PIL Image.crop"""

        return (self.x, self.y, self.x + self.width, self.y + self.height)
