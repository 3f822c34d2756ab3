"""Image rotation for orientation sweeps.

Rotates label images about their centre with the canvas expanded so that
no corner of the label is clipped.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)

_RIGHT_ANGLES = {
    90: cv2.ROTATE_90_COUNTERCLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_CLOCKWISE,
}


def rotate_image(image: np.ndarray, angle: float, fill: int = 255) -> np.ndarray:
    """Rotate an image counterclockwise by ``angle`` degrees.

    Multiples of 90 degrees are rotated losslessly. Other angles use an
    affine warp onto an enlarged canvas filled with ``fill``.

    Args:
        image: Input image (BGR or grayscale).
        angle: Rotation angle in degrees; positive is counterclockwise.
        fill: Gray level of the uncovered border.

    Returns:
        A new rotated image; the input is never modified.
    """
    normalized = angle % 360
    if normalized == 0:
        return image.copy()
    if normalized in _RIGHT_ANGLES:
        return cv2.rotate(image, _RIGHT_ANGLES[int(normalized)])

    h, w = image.shape[:2]
    center = (w / 2.0, h / 2.0)
    matrix = cv2.getRotationMatrix2D(center, angle, 1.0)

    cos = abs(matrix[0, 0])
    sin = abs(matrix[0, 1])
    new_w = int(round(h * sin + w * cos))
    new_h = int(round(h * cos + w * sin))
    matrix[0, 2] += new_w / 2.0 - center[0]
    matrix[1, 2] += new_h / 2.0 - center[1]

    border = (fill, fill, fill) if len(image.shape) == 3 else fill
    result = cv2.warpAffine(
        image,
        matrix,
        (new_w, new_h),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=border,
    )
    logger.debug("Rotated image by %.1f degrees to %dx%d", angle, new_w, new_h)
    return result
