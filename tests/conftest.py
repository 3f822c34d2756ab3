"""Shared fixtures for the label scanner tests."""

from pathlib import Path

import numpy as np
import pytest

# Frame size and the bright rectangle standing in for a label sticker.
FRAME_SHAPE = (200, 300)
LABEL_AREA = (slice(50, 150), slice(50, 250))


@pytest.fixture
def sample_image() -> np.ndarray:
    """Dark grayscale frame with a white label area."""
    image = np.zeros(FRAME_SHAPE, dtype=np.uint8)
    image[LABEL_AREA] = 255
    return image


@pytest.fixture
def sample_color_image(sample_image: np.ndarray) -> np.ndarray:
    """BGR copy of :func:`sample_image`."""
    return np.repeat(sample_image[:, :, np.newaxis], 3, axis=2)


@pytest.fixture
def config_dir() -> Path:
    """The repository's configs directory."""
    return Path(__file__).resolve().parent.parent / "configs"
