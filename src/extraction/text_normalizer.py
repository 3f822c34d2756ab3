"""Line normalization for raw OCR text.

Splits OCR output into trimmed, whitespace-collapsed lines and builds the
lowercase, diacritic-free views used for label matching. The case-preserved
text is kept for value extraction.
"""

import re
import unicodedata
from dataclasses import dataclass

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizedLine:
    """A non-blank OCR line with its matching views.

    Attributes:
        index: Position among the non-blank lines.
        text: Trimmed, whitespace-collapsed original text.
        folded: Lowercase, diacritic-stripped copy of ``text``.
        compact: ``folded`` with all spaces removed.
    """

    index: int
    text: str
    folded: str
    compact: str

    @property
    def after_colon(self) -> str | None:
        """Text following the first colon, or ``None`` if there is none."""
        if ":" not in self.text:
            return None
        tail = self.text.split(":", 1)[1].strip()
        return tail or None

    @property
    def tokens(self) -> list[str]:
        """Whitespace separated tokens with surrounding punctuation removed."""
        return [t for t in (clean_token(raw) for raw in self.text.split(" ")) if t]


def strip_diacritics(text: str) -> str:
    """Remove combining marks, so that ``Ôty`` becomes ``Oty``."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold(text: str) -> str:
    """Lowercase and strip diacritics for case-insensitive label matching."""
    return strip_diacritics(text).lower()


def clean_token(token: str) -> str:
    """Strip punctuation OCR tends to glue onto either end of a token."""
    return token.strip(" \t.,;:|()[]{}<>\"'`*#")


def normalize_lines(text: str) -> list[NormalizedLine]:
    """Split raw OCR text into normalized, non-blank lines.

    Args:
        text: Raw text returned by the OCR engine. May be empty.

    Returns:
        Lines in their original order, indexed after blank lines are dropped.
    """
    lines: list[NormalizedLine] = []
    for raw in (text or "").splitlines():
        collapsed = _WHITESPACE.sub(" ", raw).strip()
        if not collapsed:
            continue
        folded = fold(collapsed)
        lines.append(
            NormalizedLine(
                index=len(lines),
                text=collapsed,
                folded=folded,
                compact=folded.replace(" ", ""),
            )
        )
    return lines
