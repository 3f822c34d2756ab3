"""Contrast enhancement and label cropping for captured label photos.

Provides grayscale conversion, CLAHE contrast enhancement and a crop to
the bright label area of a camera frame.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (BGR, BGRA or grayscale).

    Returns:
        Grayscale image.
    """
    if len(image.shape) == 3:
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def apply_clahe(
    image: np.ndarray,
    clip_limit: float = 2.0,
    tile_size: int = 8,
) -> np.ndarray:
    """Enhance contrast using CLAHE (Contrast Limited Adaptive Histogram Equalization).

    Args:
        image: Input image (BGR or grayscale).
        clip_limit: Threshold for contrast limiting.
        tile_size: Size of the grid for histogram equalization.

    Returns:
        Contrast-enhanced grayscale image.
    """
    gray = to_gray(image)
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
    result = clahe.apply(gray)
    logger.debug("Applied CLAHE (clip=%.1f, tile=%d)", clip_limit, tile_size)
    return result


def auto_crop_label(
    image: np.ndarray,
    min_size: int = 50,
    step: int = 4,
) -> np.ndarray:
    """Crop a frame to the bright region where the label is printed.

    Pixels brighter than the mean gray level are sampled on a ``step``
    grid and the frame is cropped to their bounding box. When that box is
    smaller than ``min_size`` in either dimension the grayscale frame is
    returned uncropped.

    Args:
        image: Input image (BGR or grayscale).
        min_size: Minimum width and height of an accepted crop.
        step: Sampling stride in pixels.

    Returns:
        Cropped region of the input image, or the grayscale frame.
    """
    gray = to_gray(image)
    threshold = float(gray.mean())

    sampled = gray[::step, ::step]
    ys, xs = np.nonzero(sampled > threshold)
    if len(xs) == 0:
        logger.debug("No bright region found, skipping crop")
        return gray

    min_x, max_x = int(xs.min()) * step, int(xs.max()) * step
    min_y, max_y = int(ys.min()) * step, int(ys.max()) * step

    if max_x - min_x < min_size or max_y - min_y < min_size:
        width, height = max_x - min_x, max_y - min_y
        logger.debug("Bright region too small (%dx%d), skipping crop", width, height)
        return gray

    logger.info("Cropped label region to %dx%d", max_x - min_x, max_y - min_y)
    return image[min_y:max_y, min_x:max_x]
