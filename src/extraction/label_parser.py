"""Structured field extraction from OCR text of a warehouse label.

Extracts stock code, sales order, PO, quantity and weight in three steps:

1. An anchored pass walks the normalized lines once, trying the label
   detectors in priority order and searching near each detected label for
   a value of the right shape.
2. Fallback passes fill the stock code, sales order and quantity from the
   whole text when no label was found for them.
3. The surviving candidates are assembled into a :class:`ScanResult`.

Values claimed by any field, including decoy kinds such as part numbers or
dates, are excluded from every other real field.
"""

from collections import Counter
from dataclasses import dataclass, field

from src.utils.config import ParserConfig
from src.utils.logger import get_logger

from .label_detectors import LabelDetector, LabelKind, build_detectors
from .scan_result import FIELD_NAMES, ScanResult
from .text_normalizer import NormalizedLine, normalize_lines
from .token_shapes import as_quantity, digit_runs, looks_like_stock_code
from .window_search import Acceptor, find_nearby_value

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldCandidate:
    """A value accepted for a label kind."""

    kind: LabelKind
    value: str
    line_index: int
    anchored: bool


@dataclass
class ScanState:
    """Per-scan accumulator with one slot per label kind.

    Only :meth:`claim` writes to the state; each slot is written once.
    """

    slots: dict[LabelKind, FieldCandidate] = field(default_factory=dict)
    claimed: dict[str, LabelKind] = field(default_factory=dict)

    def is_set(self, kind: LabelKind) -> bool:
        return kind in self.slots

    def value(self, kind: LabelKind) -> str | None:
        candidate = self.slots.get(kind)
        return candidate.value if candidate else None

    def is_excluded(self, value: str, kind: LabelKind) -> bool:
        """Whether the value is already claimed by a different kind."""
        owner = self.claimed.get(value.upper())
        return owner is not None and owner != kind

    def claim(self, candidate: FieldCandidate, *aliases: str) -> None:
        """Record a candidate and exclude its value (and raw aliases)."""
        self.slots[candidate.kind] = candidate
        for text in (candidate.value, *aliases):
            self.claimed.setdefault(text.upper(), candidate.kind)

    def result(self) -> ScanResult:
        return ScanResult(
            stock_code=self.value(LabelKind.STOCK_CODE),
            sales_order=self.value(LabelKind.SALES_ORDER),
            qty=self.value(LabelKind.QUANTITY),
            po=self.value(LabelKind.PURCHASE_ORDER),
            weight=self.value(LabelKind.WEIGHT),
        )


class LabelParser:
    """Parses OCR text of a warehouse label into a :class:`ScanResult`.

    Args:
        config: Parser settings. Defaults to :class:`ParserConfig`.
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or ParserConfig()
        self.detectors: list[LabelDetector] = build_detectors(self.config)

    def parse(self, text: str) -> ScanResult:
        """Extract label fields from raw OCR text.

        Args:
            text: Raw OCR output, possibly empty or garbled.

        Returns:
            Scan result; fields that could not be found are ``None``.
        """
        lines = normalize_lines(text)
        state = ScanState()

        self._anchored_pass(lines, state)
        self._fallback_pass(lines, state)

        result = state.result()
        logger.info(
            "Label parsing found %d of %d fields",
            len(FIELD_NAMES) - len(result.missing_fields()),
            len(FIELD_NAMES),
        )
        return result

    def _anchored_pass(self, lines: list[NormalizedLine], state: ScanState) -> None:
        labels = self._field_labels(lines)
        for line in lines:
            for detector in self.detectors:
                if state.is_set(detector.kind) or not detector.detect(line):
                    continue
                self._extract_anchored(detector, lines, line, state, labels)

    def _field_labels(self, lines: list[NormalizedLine]) -> list[set[LabelKind]]:
        """Real field kinds whose label appears on each line."""
        return [
            {d.kind for d in self.detectors if not d.kind.is_decoy and d.detect(line)}
            for line in lines
        ]

    def _extract_anchored(
        self,
        detector: LabelDetector,
        lines: list[NormalizedLine],
        line: NormalizedLine,
        state: ScanState,
        labels: list[set[LabelKind]],
    ) -> None:
        accept = self._guarded(detector.kind, detector.accept, state)

        found: tuple[str, int] | None = None
        if detector.same_line is not None:
            value = detector.same_line(line)
            if value is not None and not self._is_excluded(detector.kind, value, state):
                found = (value, line.index)
        if found is None:
            window = detector.window
            if window is None:
                window = self.config.window_size
            # Lines carrying another field's label hold that field's value.
            found = find_nearby_value(
                lines,
                line.index,
                window,
                accept,
                skip=lambda index: bool(labels[index] - {detector.kind}),
            )

        if found is None:
            logger.debug("Label %s on line %d has no value", detector.kind, line.index)
            return

        value, index = found
        state.claim(
            FieldCandidate(detector.kind, value, index, anchored=True),
            *self._aliases(lines[index], value),
        )
        logger.debug("Anchored %s=%r from line %d", detector.kind, value, index)

    def _fallback_pass(self, lines: list[NormalizedLine], state: ScanState) -> None:
        if not state.is_set(LabelKind.STOCK_CODE):
            self._fallback_stock_code(lines, state)
        if not state.is_set(LabelKind.SALES_ORDER):
            self._fallback_sales_order(lines, state)
        if not state.is_set(LabelKind.QUANTITY):
            self._fallback_quantity(lines, state)

    def _fallback_stock_code(
        self, lines: list[NormalizedLine], state: ScanState
    ) -> None:
        for line in lines:
            for token in line.tokens:
                if not looks_like_stock_code(token, self.config):
                    continue
                if state.is_excluded(token, LabelKind.STOCK_CODE):
                    continue
                self._claim_fallback(state, LabelKind.STOCK_CODE, token, line.index)
                return

    def _fallback_sales_order(
        self, lines: list[NormalizedLine], state: ScanState
    ) -> None:
        qty = state.value(LabelKind.QUANTITY)
        for line in lines:
            for token in line.tokens:
                if state.is_excluded(token, LabelKind.SALES_ORDER):
                    continue
                for run in digit_runs(
                    token,
                    self.config.sales_order_min_digits,
                    self.config.sales_order_max_digits,
                ):
                    if run == qty or state.is_excluded(run, LabelKind.SALES_ORDER):
                        continue
                    self._claim_fallback(state, LabelKind.SALES_ORDER, run, line.index)
                    return

    def _fallback_quantity(self, lines: list[NormalizedLine], state: ScanState) -> None:
        candidates: list[tuple[str, int]] = []
        for line in lines:
            for token in line.tokens:
                value = as_quantity(token, self.config)
                if value is None or state.is_excluded(value, LabelKind.QUANTITY):
                    continue
                candidates.append((value, line.index))

        if not candidates:
            return

        counts = Counter(value for value, _ in candidates)
        # max() keeps the first maximum, so ties go to the earliest value.
        value, index = max(candidates, key=lambda c: counts[c[0]])
        self._claim_fallback(state, LabelKind.QUANTITY, value, index)

    def _claim_fallback(
        self, state: ScanState, kind: LabelKind, value: str, index: int
    ) -> None:
        state.claim(FieldCandidate(kind, value, index, anchored=False))
        logger.debug("Fallback %s=%r from line %d", kind, value, index)

    def _guarded(self, kind: LabelKind, accept: Acceptor, state: ScanState) -> Acceptor:
        """Wrap an acceptor so real fields skip values claimed elsewhere."""
        if kind.is_decoy:
            return accept

        def guarded(candidate: str) -> str | None:
            value = accept(candidate)
            if value is None or state.is_excluded(value, kind):
                return None
            if state.is_excluded(candidate, kind):
                return None
            return value

        return guarded

    @staticmethod
    def _is_excluded(kind: LabelKind, value: str, state: ScanState) -> bool:
        return not kind.is_decoy and state.is_excluded(value, kind)

    @staticmethod
    def _aliases(line: NormalizedLine, value: str) -> list[str]:
        """Raw tokens of the value line that map onto the claimed value.

        A repaired PO such as ``GOR024`` was read as ``G0R024``; both
        spellings are excluded from other fields.
        """
        return [
            token
            for token in line.tokens
            if token.upper() != value.upper()
            and token.upper().replace("0", "O") == value.upper().replace("0", "O")
        ]
