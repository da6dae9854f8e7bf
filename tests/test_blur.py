"""
Box blur tests
"""

import numpy as np
import pytest

from blurserver import blur as blur_module
from blurserver.blur import box_blur, coerce_radius, split_bands
from blurserver.errors import ProcessingError
from blurserver.image import Image

from .conftest import solid_image


def reference_blur(pixels: np.ndarray, radius: int) -> np.ndarray:
    """Pixel-by-pixel clamped box blur used as the oracle."""
    half = coerce_radius(radius) // 2
    height, width = pixels.shape[:2]
    out = np.empty_like(pixels)
    for y in range(height):
        for x in range(width):
            total = [0, 0, 0]
            count = 0
            for dy in range(-half, half + 1):
                for dx in range(-half, half + 1):
                    ny = min(max(y + dy, 0), height - 1)
                    nx = min(max(x + dx, 0), width - 1)
                    for c in range(3):
                        total[c] += int(pixels[ny, nx, c])
                    count += 1
            out[y, x] = (total[0] // count, total[1] // count, total[2] // count, 255)
    return out


@pytest.fixture
def grid_3x3() -> Image:
    red = np.array([[10, 20, 30], [40, 50, 60], [70, 80, 90]], dtype=np.uint8)
    pixels = np.zeros((3, 3, 4), dtype=np.uint8)
    pixels[:, :, 0] = red
    pixels[:, :, 1] = 255 - red
    pixels[:, :, 2] = 7
    pixels[:, :, 3] = 0
    return Image(pixels)


class TestCoerceRadius:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("value", "expected"), [(1, 1), (2, 3), (3, 3), (4, 5), (15, 15), (0, 1), (-4, 1)]
    )
    def test_odd_and_at_least_one(self, value: int, expected: int) -> None:
        assert coerce_radius(value) == expected


class TestSplitBands:
    @pytest.mark.unit
    def test_even_split(self) -> None:
        assert split_bands(8, 4) == [(0, 2), (2, 4), (4, 6), (6, 8)]

    @pytest.mark.unit
    def test_last_band_takes_remainder(self) -> None:
        assert split_bands(10, 4) == [(0, 2), (2, 4), (4, 6), (6, 10)]

    @pytest.mark.unit
    def test_more_parts_than_rows(self) -> None:
        bands = split_bands(2, 4)
        assert bands[-1] == (0, 2)
        assert all(start == stop for start, stop in bands[:-1])

    @pytest.mark.unit
    def test_rejects_zero_parts(self) -> None:
        with pytest.raises(ValueError):
            split_bands(10, 0)


class TestBoxBlur:
    @pytest.mark.unit
    def test_corner_uses_clamped_samples(self, grid_3x3: Image) -> None:
        out = box_blur(grid_3x3, 3, workers=1).pixels
        # (0,0) sampled 4x, (1,0) and (0,1) twice, (1,1) once: 210 // 9
        assert tuple(out[0, 0]) == (23, 231, 7, 255)

    @pytest.mark.unit
    def test_centre_is_plain_mean(self, grid_3x3: Image) -> None:
        out = box_blur(grid_3x3, 3, workers=1).pixels
        assert tuple(out[1, 1]) == (50, 205, 7, 255)

    @pytest.mark.unit
    def test_matches_reference(self, random_rgba) -> None:
        pixels = random_rgba(9, 7)
        for radius in (1, 3, 5, 9):
            out = box_blur(Image(pixels), radius, workers=3).pixels
            np.testing.assert_array_equal(out, reference_blur(pixels, radius))

    @pytest.mark.unit
    def test_interior_pixel_is_window_mean(self, random_rgba) -> None:
        pixels = random_rgba(12, 12)
        out = box_blur(Image(pixels), 5, workers=4).pixels
        window = pixels[4:9, 3:8, :3].astype(np.int64)
        expected = window.sum(axis=(0, 1)) // 25
        assert tuple(out[6, 5, :3]) == tuple(expected)
        assert out[6, 5, 3] == 255

    @pytest.mark.unit
    def test_radius_one_copies_rgb(self, random_rgba) -> None:
        pixels = random_rgba(5, 4)
        out = box_blur(Image(pixels), 1).pixels
        np.testing.assert_array_equal(out[:, :, :3], pixels[:, :, :3])
        assert (out[:, :, 3] == 255).all()

    @pytest.mark.unit
    @pytest.mark.parametrize("radius", [2, 4, 6])
    def test_even_radius_matches_next_odd(self, random_rgba, radius: int) -> None:
        image = Image(random_rgba(8, 6))
        np.testing.assert_array_equal(
            box_blur(image, radius, workers=2).pixels,
            box_blur(image, radius + 1, workers=2).pixels,
        )

    @pytest.mark.unit
    @pytest.mark.parametrize("radius", [1, 3, 7, 21])
    def test_single_pixel(self, radius: int) -> None:
        image = Image(np.array([[[12, 34, 56, 78]]], dtype=np.uint8))
        out = box_blur(image, radius).pixels
        assert out.shape == (1, 1, 4)
        assert tuple(out[0, 0]) == (12, 34, 56, 255)

    @pytest.mark.unit
    def test_uniform_image_is_unchanged(self) -> None:
        image = solid_image(6, 5, (255, 0, 0, 255))
        out = box_blur(image, 7).pixels
        assert (out == np.array([255, 0, 0, 255], dtype=np.uint8)).all()

    @pytest.mark.unit
    @pytest.mark.parametrize("workers", [2, 3, 5, 16, 64])
    def test_worker_count_does_not_change_output(self, random_rgba, workers: int) -> None:
        image = Image(random_rgba(17, 13))
        single = box_blur(image, 5, workers=1).pixels
        np.testing.assert_array_equal(box_blur(image, 5, workers=workers).pixels, single)

    @pytest.mark.unit
    def test_source_is_not_modified(self, random_rgba) -> None:
        pixels = random_rgba(6, 6)
        before = pixels.copy()
        box_blur(Image(pixels), 5, workers=3)
        np.testing.assert_array_equal(pixels, before)

    @pytest.mark.unit
    def test_band_failure_raises_processing_error(
        self, random_rgba, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def failing_band(padded, output, start, stop, half):
            if start > 0:
                raise RuntimeError("worker cancelled")

        monkeypatch.setattr(blur_module, "_blur_band", failing_band)
        with pytest.raises(ProcessingError, match="worker cancelled"):
            box_blur(Image(random_rgba(4, 8)), 3, workers=4)

    @pytest.mark.unit
    def test_unallocatable_radius_raises_processing_error(self) -> None:
        with pytest.raises(ProcessingError):
            box_blur(solid_image(2, 2, (1, 2, 3, 255)), 2**40 + 1, workers=1)
