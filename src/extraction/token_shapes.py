"""Shape tests for label field values.

Each field accepts only tokens of a characteristic shape: stock codes mix
letters and digits, sales orders are long digit runs, quantities are small
integers, and so on. The helpers here are pure functions over single tokens
so they can be reused by both the anchored and the fallback passes.
"""

import re
from collections.abc import Iterable

from src.utils.config import ParserConfig

PO_PATTERN = re.compile(r"[A-Z]{2,8}[0-9]{2,10}")
BARCODE_PATTERN = re.compile(r"(?<![A-Za-z0-9])\d{2,3}[A-Za-z]\d{4,8}(?![A-Za-z0-9])")
DATE_PATTERN = re.compile(r"\d{1,4}[/.\-]\d{1,2}[/.\-]\d{1,4}")
INTEGER_PATTERN = re.compile(r"\d{1,7}")
NUMBER_PATTERN = re.compile(r"\d+(?:[.,]\d+)?")
WEIGHT_TOKEN_PATTERN = re.compile(
    r"(\d{1,5}(?:[.,]\d{1,3})?)(?:kgs?|g|lbs?)?", re.IGNORECASE
)

_ALNUM = re.compile(r"[A-Za-z0-9]+")
_ALNUM_WITH_SEPARATORS = re.compile(r"[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)+")
_TRAILING_DIGITS = re.compile(r"\d+$")


def looks_like_stock_code(token: str, config: ParserConfig | None = None) -> bool:
    """Check whether a token has the shape of a stock code.

    A stock code mixes letters and digits: pure serial numbers and plain
    words are rejected, as is anything containing a known noise fragment.

    Args:
        token: Candidate token, already stripped of surrounding punctuation.
        config: Parser settings holding length bounds and noise fragments.

    Returns:
        True if the token passes every shape check.
    """
    cfg = config or ParserConfig()

    if _ALNUM.fullmatch(token):
        if not cfg.stock_code_min_length <= len(token) <= cfg.stock_code_max_length:
            return False
    elif cfg.allow_separator_stock_codes and _ALNUM_WITH_SEPARATORS.fullmatch(token):
        if not 2 <= len(token) <= cfg.separator_max_length:
            return False
    else:
        return False

    if not any(ch.isalpha() for ch in token):
        return False
    if not any(ch.isdigit() for ch in token):
        return False

    lowered = token.lower()
    return not any(noise in lowered for noise in cfg.noise_substrings)


def repair_po(value: str) -> str:
    """Replace ``0`` with ``O`` in the alphabetic prefix of a PO number.

    The trailing digit run is left untouched, so ``G0R024`` becomes
    ``GOR024`` while ``GRO024`` is returned unchanged.
    """
    value = value.upper()
    digits = _TRAILING_DIGITS.search(value)
    if digits is None or digits.start() == 0:
        return value
    prefix = value[: digits.start()].replace("0", "O")
    return prefix + value[digits.start() :]


def as_po(candidate: str) -> str | None:
    """Return the repaired PO number if the candidate has a PO shape."""
    value = repair_po(candidate.replace(" ", ""))
    if PO_PATTERN.fullmatch(value):
        return value
    return None


def as_quantity(candidate: str, config: ParserConfig | None = None) -> str | None:
    """Return the candidate if it is a standalone integer within range."""
    cfg = config or ParserConfig()
    if not INTEGER_PATTERN.fullmatch(candidate):
        return None
    if cfg.qty_min <= int(candidate) <= cfg.qty_max:
        return candidate
    return None


def as_sales_order(candidate: str, config: ParserConfig | None = None) -> str | None:
    """Return the candidate if it is a digit run of sales order length."""
    cfg = config or ParserConfig()
    if not candidate.isdigit():
        return None
    if cfg.sales_order_min_digits <= len(candidate) <= cfg.sales_order_max_digits:
        return candidate
    return None


def as_weight(candidate: str) -> str | None:
    """Return the numeric part of a short weight token such as ``12.5kg``."""
    match = WEIGHT_TOKEN_PATTERN.fullmatch(candidate.replace(" ", ""))
    if match:
        return match.group(1)
    return None


def first_number(text: str) -> str | None:
    """Return the first integer or decimal literal in a string."""
    match = NUMBER_PATTERN.search(text)
    return match.group(0) if match else None


def as_reference(candidate: str) -> str | None:
    """Return a reference-like token (three or more chars with a digit)."""
    token = candidate.strip()
    if len(token) >= 3 and " " not in token and any(ch.isdigit() for ch in token):
        return token
    return None


def as_date(candidate: str) -> str | None:
    """Return a date literal, either separated or a compact 6-8 digit run."""
    token = candidate.strip()
    if DATE_PATTERN.fullmatch(token):
        return token
    if token.isdigit() and 6 <= len(token) <= 8:
        return token
    return None


def digit_runs(text: str, min_digits: int, max_digits: int) -> Iterable[str]:
    """Yield maximal digit runs whose length falls within the bounds."""
    for match in re.finditer(r"\d+", text):
        run = match.group(0)
        if min_digits <= len(run) <= max_digits:
            yield run
