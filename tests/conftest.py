"""
Pytest fixtures shared by the blurserver tests
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import cv2
import numpy as np
import pytest

from blurserver.gateway import AuditLog, RadiusCell
from blurserver.image import Image
from blurserver.settings import AppSettings
from blurserver.storage import Workspace


def rgba_to_png(pixels: np.ndarray) -> bytes:
    """Encode an RGBA uint8 array as PNG bytes."""
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA))
    assert ok
    return buffer.tobytes()


def solid_image(width: int, height: int, rgba: tuple[int, int, int, int]) -> Image:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = rgba
    return Image(pixels)


def png_to_rgba(data: bytes) -> np.ndarray:
    decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)
    return cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)


class FakeSocket:
    """Socket stand-in that hands out at most `max_read` bytes per recv call."""

    def __init__(self, data: bytes = b"", max_read: int = 3):
        self._data = data
        self._max_read = max_read
        self.consumed = 0
        self.sent = bytearray()

    def recv(self, size: int) -> bytes:
        size = min(size, self._max_read)
        chunk = self._data[self.consumed : self.consumed + size]
        self.consumed += len(chunk)
        return chunk

    def sendall(self, data: bytes) -> None:
        self.sent += data


@pytest.fixture
def random_rgba() -> Callable[[int, int], np.ndarray]:
    rng = np.random.default_rng(1234)

    def _make(width: int, height: int) -> np.ndarray:
        return rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)

    return _make


@pytest.fixture
def solid_red_png() -> bytes:
    pixels = np.zeros((4, 4, 4), dtype=np.uint8)
    pixels[:, :] = (255, 0, 0, 255)
    return rgba_to_png(pixels)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: datetime(2024, 5, 17, 9, 30, 15)


@pytest.fixture
def workspace(tmp_path: Path, fixed_clock: Callable[[], datetime]) -> Workspace:
    return Workspace(tmp_path / "images", clock=fixed_clock)


@pytest.fixture
def audit_log(tmp_path: Path) -> AuditLog:
    log = AuditLog(tmp_path / "images" / "index.db")
    log.initialize()
    return log


@pytest.fixture
def radius_cell() -> RadiusCell:
    return RadiusCell(3)


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        host="127.0.0.1",
        port=0,
        image_dir=tmp_path / "images",
        workers=2,
        _env_file=None,
    )
