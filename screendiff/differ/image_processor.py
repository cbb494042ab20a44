"""Image processing — crop screenshots and compare before/after pairs."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageChops, ImageStat

from screendiff.models.task import Size

logger = logging.getLogger(__name__)

# used when no viewport size was set, e.g. on mobile
DEFAULT_CROP = (1000, 700)

_HIGHLIGHT = (255, 0, 0)
_FADE = 0.7


def crop_image(path: str | Path, size: Size | None) -> None:
    """Crop a full-page screenshot to its viewport, in place."""
    width, height = (size.width, size.height) if size else DEFAULT_CROP
    with Image.open(path) as img:
        cropped = img.crop((0, 0, min(width, img.width), min(height, img.height)))
    cropped.save(path)


def _pad(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    if img.size == size:
        return img
    canvas = Image.new("RGB", size, "white")
    canvas.paste(img, (0, 0))
    return canvas


def compare_images(
    before_path: str | Path,
    after_path: str | Path,
    diff_path: str | Path,
    tolerance: float = 0.1,
) -> tuple[bool, float]:
    """Compare two images and write a diff visualisation.

    The metric is the mean absolute error over RGB, normalised to [0, 1].
    Images of different sizes are compared on a shared white canvas.
    Returns ``(metric <= tolerance, metric)``.
    """
    with Image.open(before_path) as b, Image.open(after_path) as a:
        before = b.convert("RGB")
        after = a.convert("RGB")

    size = (max(before.width, after.width), max(before.height, after.height))
    before = _pad(before, size)
    after = _pad(after, size)

    diff = ImageChops.difference(before, after)
    metric = sum(ImageStat.Stat(diff).mean) / (3 * 255)

    # any channel differing marks the pixel
    r, g, bl = diff.split()
    mask = ImageChops.lighter(ImageChops.lighter(r, g), bl).point(lambda v: 255 if v else 0)
    faded = Image.blend(before, Image.new("RGB", size, "white"), _FADE)
    visual = Image.composite(Image.new("RGB", size, _HIGHLIGHT), faded, mask)
    visual.save(diff_path)

    logger.debug("Compared %s and %s: MAE %.4f", before_path, after_path, metric)
    return metric <= tolerance, metric
