"""End-to-end label scanning pipeline.

Loads a captured label image, enhances it, runs the rotation consensus
over Tesseract OCR and parses the winning text into label fields.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageOps

from src.extraction.label_parser import LabelParser
from src.extraction.scan_result import ScanResult
from src.preprocessing.pipeline import PreprocessingPipeline, QualityMetrics
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .consensus import ConsensusDriver, OCRAttempt, Recognizer
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)


@dataclass
class LabelScanOutcome:
    """Complete results of scanning one label image."""

    source_file: str
    text: str
    result: ScanResult
    angle: float | None = None
    attempts: list[OCRAttempt] = field(default_factory=list)
    quality_metrics: QualityMetrics | None = None


class LabelProcessor:
    """Scans label images into structured fields.

    Args:
        config: Application configuration object.
        recognizer: OCR callable to use instead of Tesseract.
    """

    def __init__(
        self, config: AppConfig, recognizer: Recognizer | None = None
    ) -> None:
        self.config = config
        self.preprocessing = PreprocessingPipeline(config.preprocessing)
        if recognizer is None:
            engine = TesseractEngine(
                tesseract_cmd=config.ocr.tesseract_cmd,
                default_lang=config.ocr.default_lang,
                psm=config.ocr.psm,
            )
            recognizer = engine.recognize
        self.consensus = ConsensusDriver(recognizer, config=config.consensus)
        self.parser = LabelParser(config.parser)

    def process(
        self, source: Path | bytes | np.ndarray, filename: str = "label"
    ) -> LabelScanOutcome:
        """Scan a label from a file path, raw bytes or a decoded image.

        Args:
            source: Image path, encoded image bytes, or a numpy array.
            filename: Display name for the source image.

        Returns:
            Recognized text and parsed label fields.
        """
        logger.info("Scanning label: %s", filename)
        image = source if isinstance(source, np.ndarray) else load_image(source)

        processed, metrics = self.preprocessing.process(image)
        consensus = self.consensus.resolve(processed)
        result = self.parser.parse(consensus.text)

        missing = result.missing_fields()
        if missing:
            logger.info("Label %s is missing fields: %s", filename, ", ".join(missing))

        return LabelScanOutcome(
            source_file=filename,
            text=consensus.text,
            result=result,
            angle=consensus.angle,
            attempts=consensus.attempts,
            quality_metrics=metrics,
        )


def load_image(source: Path | bytes) -> np.ndarray:
    """Decode an image file into a numpy array.

    EXIF orientation is applied so the sweep starts from the image as
    the camera saw it.

    Args:
        source: Path or raw bytes of a PNG, JPEG or TIFF image.

    Returns:
        BGR or grayscale image as a numpy array, matching OpenCV.

    Raises:
        PIL.UnidentifiedImageError: If the data is not a supported image.
    """
    if isinstance(source, bytes):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(Path(source))

    img = ImageOps.exif_transpose(img)
    if img.mode == "L":
        return np.array(img)
    return cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2BGR)
