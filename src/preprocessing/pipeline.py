"""Preprocessing of captured label images ahead of the rotation sweep.

Each enabled step (label crop, grayscale, CLAHE) is applied in a fixed
order. Sharpness and contrast of the capture are measured before and after
so that poor photos can be spotted in the logs.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from functools import partial

import cv2
import numpy as np

from src.utils.config import PreprocessingConfig
from src.utils.logger import get_logger

from .enhance import apply_clahe, auto_crop_label, to_gray

logger = get_logger(__name__)

Step = Callable[[np.ndarray], np.ndarray]


@dataclass
class QualityMetrics:
    """Sharpness and contrast of a label capture, before and after."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float
    steps: list[str] = field(default_factory=list)

    @property
    def contrast_gain(self) -> float:
        return self.contrast_after - self.contrast_before


def calculate_sharpness(image: np.ndarray) -> float:
    """Variance of the Laplacian; blurred captures score close to zero."""
    return float(cv2.Laplacian(to_gray(image), cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Standard deviation of the gray levels."""
    return float(to_gray(image).std())


class PreprocessingPipeline:
    """Builds the contrast-enhanced base image used by the consensus driver.

    Args:
        config: Preprocessing configuration controlling which steps to apply.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def steps(self) -> Iterator[tuple[str, Step]]:
        """Yield the enabled steps as ``(name, function)`` pairs, in order."""
        cfg = self.config
        if cfg.auto_crop_enabled:
            yield "auto_crop", partial(
                auto_crop_label,
                min_size=cfg.auto_crop_min_size,
                step=cfg.auto_crop_step,
            )
        if cfg.grayscale_enabled:
            yield "grayscale", to_gray
        if cfg.contrast_enabled:
            yield "clahe", partial(
                apply_clahe,
                clip_limit=cfg.clahe_clip_limit,
                tile_size=cfg.clahe_tile_size,
            )

    def process(self, image: np.ndarray) -> tuple[np.ndarray, QualityMetrics]:
        """Run the enabled preprocessing steps on a label capture.

        Args:
            image: Captured label image (BGR or grayscale). Not modified.

        Returns:
            Tuple of (processed_image, quality_metrics).
        """
        result = image.copy()
        applied: list[str] = []
        for name, step in self.steps():
            result = step(result)
            applied.append(name)

        metrics = QualityMetrics(
            sharpness_before=calculate_sharpness(image),
            sharpness_after=calculate_sharpness(result),
            contrast_before=calculate_contrast(image),
            contrast_after=calculate_contrast(result),
            steps=applied,
        )
        logger.info(
            "Preprocessed label [%s]: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            ", ".join(applied) or "none",
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return result, metrics
