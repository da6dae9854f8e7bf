"""
Image model and PNG container

Pixels are held as a uint8 array of shape (height, width, 4) in RGBA order.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from .errors import DecodeError, EncodeError


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_TO_RGBA = {
    1: cv2.COLOR_GRAY2RGBA,
    3: cv2.COLOR_BGR2RGBA,
    4: cv2.COLOR_BGRA2RGBA,
}


@dataclass(frozen=True, eq=False)
class Image:
    """RGBA raster with 8 bits per channel."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels.dtype != np.uint8:
            raise ValueError(f"expected uint8 pixels, got {pixels.dtype}")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"expected (height, width, 4) pixels, got {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("image dimensions must be positive")

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def width(self) -> int:
        return self.pixels.shape[1]


def decode_png(data: bytes) -> Image:
    """
    Decode PNG bytes into an RGBA Image.

    Grayscale and RGB sources gain an opaque alpha channel; 16-bit sources are
    reduced to 8 bits per channel.

    Raises:
        DecodeError: data is not a decodable PNG
    """
    if not data.startswith(PNG_SIGNATURE):
        raise DecodeError("payload is not a PNG image")

    try:
        decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise DecodeError(f"cannot decode image: {exc}") from exc
    if decoded is None or decoded.size == 0:
        raise DecodeError("cannot decode image")

    if decoded.dtype == np.uint16:
        decoded = (decoded >> 8).astype(np.uint8)
    channels = 1 if decoded.ndim == 2 else decoded.shape[2]
    if channels not in _TO_RGBA:
        raise DecodeError(f"unsupported channel count: {channels}")

    return Image(cv2.cvtColor(decoded, _TO_RGBA[channels]))


def encode_png(image: Image) -> bytes:
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise EncodeError(f"cannot encode {image.width}x{image.height} image as PNG")
    return buffer.tobytes()
