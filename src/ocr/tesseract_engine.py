"""Tesseract OCR recognizer for label images.

Wraps pytesseract as a plain ``image -> text`` recognizer. Recognition
failures are logged and reported as empty text rather than raised, so a
failed attempt on one rotation never aborts the others.
"""

import cv2
import numpy as np
import pytesseract
from PIL import Image

from src.utils.logger import get_logger

logger = get_logger(__name__)


class TesseractEngine:
    """Wrapper around Tesseract OCR for label text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def recognize(self, image: np.ndarray) -> str:
        """Recognize the text in an image.

        Args:
            image: Input image as a numpy array (BGR or grayscale).

        Returns:
            Recognized text, or an empty string if recognition failed.
        """
        if image.ndim == 3 and image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        try:
            text = pytesseract.image_to_string(
                Image.fromarray(image),
                lang=self.default_lang,
                config=f"--psm {self.psm}",
            )
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            OSError,
            RuntimeError,
        ) as exc:
            logger.warning("OCR recognition failed: %s", exc)
            return ""

        logger.debug("OCR recognized %d characters", len(text))
        return text or ""
