"""Rotation consensus for label OCR.

A label can be photographed in any orientation and with a slight tilt. The
consensus driver rotates the base image through a sweep of orientations,
refines each orientation with small tilt corrections, runs OCR on every
variant and keeps the longest transcription.
"""

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from src.preprocessing.rotate import rotate_image
from src.utils.config import ConsensusConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

Recognizer = Callable[[np.ndarray], str]
Rotator = Callable[[np.ndarray, float], np.ndarray]


@dataclass(frozen=True)
class OCRAttempt:
    """Text recognized for one rotated variant of the base image."""

    angle: float
    text: str

    @property
    def score(self) -> int:
        return len(self.text)


@dataclass
class ConsensusResult:
    """Winning transcription and every attempt that was made."""

    text: str
    angle: float | None
    attempts: list[OCRAttempt] = field(default_factory=list)


def pick_best(attempts: Iterable[OCRAttempt]) -> OCRAttempt | None:
    """Return the longest attempt; ties keep the earliest one."""
    best: OCRAttempt | None = None
    for attempt in attempts:
        if best is None or attempt.score > best.score:
            best = attempt
    return best


def pick_longest(texts: Iterable[str]) -> str:
    """Return the longest text; ties keep the earliest, empty if none."""
    best = pick_best(OCRAttempt(angle=0.0, text=t) for t in texts)
    return best.text if best else ""


class ConsensusDriver:
    """Selects the best OCR transcription over rotated image variants.

    Args:
        recognizer: OCR callable returning the text found in an image.
            Exceptions and empty output both count as no text.
        rotator: Returns a new image rotated by the given angle.
        config: Angles, early-exit threshold and parallelism settings.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        rotator: Rotator = rotate_image,
        config: ConsensusConfig | None = None,
    ) -> None:
        self.recognizer = recognizer
        self.rotator = rotator
        self.config = config or ConsensusConfig()

    def recognize(self, image: np.ndarray, angle: float) -> OCRAttempt:
        """Run OCR on one variant, absorbing any recognizer failure.

        Args:
            image: Image variant to recognize.
            angle: Total rotation of the variant, recorded on the attempt.

        Returns:
            The attempt; its text is empty if recognition failed.
        """
        try:
            text = self.recognizer(image) or ""
        except Exception as exc:
            logger.warning("OCR failed at %.0f degrees: %s", angle, exc)
            text = ""
        logger.debug("OCR at %.0f degrees returned %d characters", angle, len(text))
        return OCRAttempt(angle=angle, text=text)

    def refine(self, image: np.ndarray, base_angle: float = 0.0) -> list[OCRAttempt]:
        """Recognize one orientation with small tilt corrections.

        The image is recognized as is first. If that text is longer than
        ``good_enough_length`` the tilt variants are skipped; otherwise the
        image is also recognized at each of ``refine_angles``.

        Args:
            image: Image already rotated to the orientation being tried.
            base_angle: Orientation of ``image`` relative to the capture.

        Returns:
            Attempts in the order they were made.
        """
        base = self.recognize(image, base_angle)
        attempts = [base]
        if base.score > self.config.good_enough_length:
            logger.debug("Orientation %.0f is good enough, skipping tilt", base_angle)
            return attempts

        for offset in self.config.refine_angles:
            variant = self.rotator(image, offset)
            attempts.append(self.recognize(variant, base_angle + offset))
        return attempts

    def refine_text(self, image: np.ndarray) -> str:
        """Return the best text for a single orientation."""
        best = pick_best(self.refine(image))
        return best.text if best else ""

    def resolve(self, base_image: np.ndarray) -> ConsensusResult:
        """Run the full orientation sweep and pick the best transcription.

        Args:
            base_image: Contrast-enhanced capture of the label.

        Returns:
            The winning text with its angle and all attempts, in sweep order.
        """
        angles = list(self.config.sweep_angles)

        def sweep(angle: float) -> list[OCRAttempt]:
            return self.refine(self.rotator(base_image, angle), angle)

        if self.config.parallel and len(angles) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                per_angle = list(executor.map(sweep, angles))
        else:
            per_angle = [sweep(angle) for angle in angles]

        attempts = [attempt for group in per_angle for attempt in group]
        best = pick_best(attempts)

        if best is None or best.score == 0:
            logger.info("No text recognized in %d attempts", len(attempts))
            return ConsensusResult(text="", angle=None, attempts=attempts)

        logger.info(
            "Best OCR text at %.0f degrees: %d characters (%d attempts)",
            best.angle,
            best.score,
            len(attempts),
        )
        return ConsensusResult(text=best.text, angle=best.angle, attempts=attempts)

    def resolve_best_text(self, base_image: np.ndarray) -> str:
        """Return the longest transcription over all rotated variants."""
        return self.resolve(base_image).text
