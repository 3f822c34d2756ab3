"""Label keyword detectors for warehouse label fields.

Each detector recognizes the printed label of one field on a normalized
line, tolerating the corruptions OCR typically introduces (digits read as
letters, dropped letters, accented look-alikes). Detectors are collected in
an ordered table; the order is the priority in which they are tried on each
line.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from functools import partial

from src.utils.config import ParserConfig

from .text_normalizer import NormalizedLine
from .token_shapes import (
    BARCODE_PATTERN,
    as_date,
    as_po,
    as_quantity,
    as_reference,
    as_sales_order,
    as_weight,
    first_number,
    looks_like_stock_code,
    repair_po,
)
from .window_search import Acceptor


class LabelKind(StrEnum):
    """Kinds of label recognized on a scanned label."""

    STOCK_CODE = "stock_code"
    SALES_ORDER = "sales_order"
    PURCHASE_ORDER = "po"
    QUANTITY = "qty"
    WEIGHT = "weight"
    PART_NUMBER = "part_number"
    SUPPLIER_ID = "supplier_id"
    DATE = "date"
    BARCODE_LIKE = "barcode_like"

    @property
    def is_decoy(self) -> bool:
        """Whether values of this kind are only tracked for exclusion."""
        return self in _DECOY_KINDS


_DECOY_KINDS = frozenset(
    {
        LabelKind.PART_NUMBER,
        LabelKind.SUPPLIER_ID,
        LabelKind.DATE,
        LabelKind.BARCODE_LIKE,
    }
)


@dataclass(frozen=True)
class LabelDetector:
    """One row of the detector table.

    Attributes:
        kind: Field the detector fills.
        detect: Returns True when a line carries this field's label.
        accept: Maps a nearby candidate string to a value, or ``None``.
        same_line: Optional extractor tried on the label line before the
            windowed search.
        window: Optional window override; defaults to the parser setting.
    """

    kind: LabelKind
    detect: Callable[[NormalizedLine], bool]
    accept: Acceptor
    same_line: Callable[[NormalizedLine], str | None] | None = None
    window: int | None = None


_WEIGHT_KEYWORD = re.compile(r"we[i1l]ght|ight")
_QTY_WILDCARD = re.compile(r".ty")
_QTY_SHORT = re.compile(r"q.{0,2}")
_PART_NUMBER = re.compile(r"part(?:number|num|no|#)")
_PART_NUMBER_SHORT = re.compile(r"p/?n[:#]")


def label_text(line: NormalizedLine) -> str:
    """Return the folded label portion of a line without spaces.

    The label portion is the text before the first colon, or the first
    token when the line has no colon.
    """
    if ":" in line.folded:
        head = line.folded.split(":", 1)[0]
    else:
        head = line.folded.split(" ", 1)[0]
    return head.replace(" ", "")


def is_po_label(line: NormalizedLine) -> bool:
    """Detect ``PO``/``P0`` at the start of a line."""
    return line.compact.startswith(("po", "p0"))


def is_weight_label(line: NormalizedLine) -> bool:
    """Detect ``Weight`` or the ``We1ght`` misread, or ``...ight:``."""
    compact = line.compact
    if "weight" in compact or "we1ght" in compact:
        return True
    return "ight" in compact and ":" in compact


def is_quantity_label(line: NormalizedLine) -> bool:
    """Detect ``Qty`` including misreads such as ``Oty``, ``0ty`` or ``Ôty``."""
    if "qty" in line.compact:
        return True
    label = label_text(line)
    if "quantity" in label:
        return True
    if _QTY_WILDCARD.fullmatch(label):
        return True
    if "search" in line.compact or "query" in line.compact:
        return False
    return _QTY_SHORT.fullmatch(label) is not None


def is_sales_order_label(line: NormalizedLine) -> bool:
    """Detect the ``Sales Order`` label."""
    return "sales" in line.folded and "order" in line.folded


def is_stock_code_label(line: NormalizedLine) -> bool:
    """Detect ``Stock Code`` or ``StockCode``."""
    if "stockcode" in line.compact:
        return True
    return "stock" in line.folded and "code" in line.folded


def is_part_number_label(line: NormalizedLine) -> bool:
    compact = line.compact
    return bool(_PART_NUMBER.search(compact) or _PART_NUMBER_SHORT.match(compact))


def is_supplier_label(line: NormalizedLine) -> bool:
    return "supplier" in line.compact or "vendor" in line.compact


def is_date_label(line: NormalizedLine) -> bool:
    return "date" in line.compact


def is_barcode_like(line: NormalizedLine) -> bool:
    """Detect a barcode caption by shape: 2-3 digits, a letter, 4-8 digits."""
    return BARCODE_PATTERN.search(line.text) is not None


def weight_on_line(line: NormalizedLine) -> str | None:
    """Return the first number following the weight keyword on its line."""
    match = _WEIGHT_KEYWORD.search(line.folded)
    if match is None:
        return None
    return first_number(line.folded[match.end() :])


def po_on_line(line: NormalizedLine) -> str | None:
    """Return the repaired text after the colon of a PO line, whatever its shape."""
    tail = line.after_colon
    return repair_po(tail) if tail else None


def barcode_on_line(line: NormalizedLine) -> str | None:
    match = BARCODE_PATTERN.search(line.text)
    return match.group(0) if match else None


def _reject(_candidate: str) -> str | None:
    return None


def _stock_code(config: ParserConfig, candidate: str) -> str | None:
    return candidate if looks_like_stock_code(candidate, config) else None


def build_detectors(config: ParserConfig) -> list[LabelDetector]:
    """Build the detector table in priority order.

    Args:
        config: Parser settings providing value bounds.

    Returns:
        Detectors for PO, weight, quantity, sales order and stock code,
        followed by the decoy kinds. Decoys only look at their own label
        line by default, so a decoy with a missing value cannot take the
        value of a neighbouring field.
    """
    return [
        LabelDetector(
            LabelKind.PURCHASE_ORDER, is_po_label, as_po, same_line=po_on_line
        ),
        LabelDetector(
            LabelKind.WEIGHT, is_weight_label, as_weight, same_line=weight_on_line
        ),
        LabelDetector(
            LabelKind.QUANTITY, is_quantity_label, partial(as_quantity, config=config)
        ),
        LabelDetector(
            LabelKind.SALES_ORDER,
            is_sales_order_label,
            partial(as_sales_order, config=config),
        ),
        LabelDetector(
            LabelKind.STOCK_CODE, is_stock_code_label, partial(_stock_code, config)
        ),
        LabelDetector(
            LabelKind.PART_NUMBER,
            is_part_number_label,
            as_reference,
            window=config.decoy_window_size,
        ),
        LabelDetector(
            LabelKind.SUPPLIER_ID,
            is_supplier_label,
            as_reference,
            window=config.decoy_window_size,
        ),
        LabelDetector(
            LabelKind.DATE, is_date_label, as_date, window=config.decoy_window_size
        ),
        LabelDetector(
            LabelKind.BARCODE_LIKE,
            is_barcode_like,
            _reject,
            same_line=barcode_on_line,
            window=0,
        ),
    ]
