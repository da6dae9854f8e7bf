"""
Parallel box blur

Each output pixel is the truncated mean of the R, G and B channels over a square
window centred on it. Out-of-range window coordinates are clamped to the nearest
edge pixel. Alpha is written as fully opaque.

Rows are split into contiguous bands, one per worker. Every band reads the shared
padded source and writes only its own rows of the output array.
"""

import logging
import os
from multiprocessing.pool import ThreadPool as Pool

import numpy as np

from .errors import ProcessingError
from .image import Image


logger = logging.getLogger(__name__)


def coerce_radius(radius: int) -> int:
    """Return radius as an odd value >= 1; even values move up by one."""
    radius = max(1, int(radius))
    if radius % 2 == 0:
        radius += 1
    return radius


def split_bands(height: int, parts: int) -> list[tuple[int, int]]:
    """Split rows [0, height) into `parts` bands; the last band takes the remainder."""
    if parts < 1:
        raise ValueError(f"parts must be positive, got {parts}")
    rows_per_part = height // parts
    bands = []
    for i in range(parts):
        start = i * rows_per_part
        stop = height if i == parts - 1 else start + rows_per_part
        bands.append((start, stop))
    return bands


def _blur_band(padded, output, start, stop, half):
    window = 2 * half + 1
    width = output.shape[1]

    # padded row r holds source row r - half, so the band needs rows start..stop+2*half
    block = padded[start : stop + 2 * half]
    rows = np.cumsum(block, axis=0, dtype=np.int64)
    rows = np.concatenate([np.zeros_like(rows[:1]), rows], axis=0)
    vertical = rows[window:] - rows[:-window]

    cols = np.cumsum(vertical, axis=1)
    cols = np.concatenate([np.zeros_like(cols[:, :1]), cols], axis=1)
    sums = cols[:, window : window + width] - cols[:, :width]

    output[start:stop, :, :3] = sums // (window * window)
    output[start:stop, :, 3] = 255


def box_blur(image: Image, radius: int, workers: int | None = None) -> Image:
    """
    Blur an image with a clamped box filter.

    Args:
        image: source image, never modified
        radius: window parameter; coerced to odd, the window side is 2*(radius//2)+1
        workers: number of row bands, None for one per CPU

    Returns:
        A new Image with the same dimensions.

    Raises:
        ProcessingError: any band failed; no partial output is returned
    """
    half = coerce_radius(radius) // 2
    parts = workers or os.cpu_count() or 1
    height, width = image.height, image.width

    bands = [(start, stop) for start, stop in split_bands(height, parts) if stop > start]

    logger.debug(
        "Blurring %dx%d image, half-window %d, %d band(s)", width, height, half, len(bands)
    )

    try:
        padded = np.pad(image.pixels[:, :, :3], ((half, half), (half, half), (0, 0)), mode="edge")
        output = np.empty((height, width, 4), dtype=np.uint8)
        with Pool(min(parts, len(bands))) as p:
            p.starmap(_blur_band, [(padded, output, start, stop, half) for start, stop in bands])
    except Exception as exc:
        raise ProcessingError(f"blur did not complete: {exc}") from exc

    return Image(output)
