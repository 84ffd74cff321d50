"""Pytest configuration and fixtures."""

import numpy as np
import pytest
from PIL import Image

from flatvec.types import Raster

from tests.helpers import BLUE, GREEN, RED, WHITE, raster_from_rows


@pytest.fixture
def make_raster():
    """Factory turning nested color rows into a Raster."""
    return raster_from_rows


@pytest.fixture
def two_by_two():
    """[[red, red], [blue, red]]."""
    return raster_from_rows([[RED, RED], [BLUE, RED]])


@pytest.fixture
def white_10x10():
    """Uniform 10x10 white raster."""
    return raster_from_rows([[WHITE] * 10 for _ in range(10)])


@pytest.fixture
def random_three_color():
    """16x16 raster with pixels drawn from three colors."""
    rng = np.random.default_rng(7)
    choices = np.array([RED.as_tuple(), GREEN.as_tuple(), BLUE.as_tuple()], dtype=np.uint8)
    idx = rng.integers(0, 3, size=(16, 16))
    return Raster(choices[idx])


@pytest.fixture
def noisy_photo():
    """24x20 smooth gradient with noise, many distinct colors."""
    rng = np.random.default_rng(3)
    h, w = 20, 24
    ys, xs = np.mgrid[0:h, 0:w]
    image = np.zeros((h, w, 4), dtype=np.float64)
    image[..., 0] = 255 * xs / (w - 1)
    image[..., 1] = 255 * ys / (h - 1)
    image[..., 2] = 128
    image[..., :3] += rng.normal(0, 12, size=(h, w, 3))
    image[..., 3] = 255
    return Raster(np.clip(image, 0, 255).astype(np.uint8))


@pytest.fixture
def png_file(tmp_path, noisy_photo):
    """Noisy gradient saved as a PNG file."""
    path = tmp_path / "input.png"
    Image.fromarray(noisy_photo.pixels.copy()).save(path)
    return path
