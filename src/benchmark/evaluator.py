"""Accuracy benchmarking for label field extraction.

Scanned label fields are compared with hand-labelled ground truth, one
field at a time. Each comparison yields a :class:`MatchOutcome`; outcomes
are tallied per field into precision, recall, F1 and exact-match accuracy.
"""

import csv
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from src.extraction.scan_result import FIELD_NAMES, ScanResult
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Fields compared as numbers, so that "12.50" matches "12.5".
NUMERIC_FIELDS = frozenset({"qty", "weight"})


class MatchOutcome(Enum):
    EXACT = "exact"
    EQUIVALENT = "equivalent"
    WRONG = "wrong"
    MISSING = "missing"


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class FieldMetrics:
    """Tally of comparison outcomes for one label field."""

    field_name: str
    true_positives: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    exact_matches: int = 0
    total: int = 0

    def record(self, outcome: MatchOutcome) -> None:
        self.total += 1
        if outcome is MatchOutcome.MISSING:
            self.false_negatives += 1
        elif outcome is MatchOutcome.WRONG:
            self.false_positives += 1
        else:
            self.true_positives += 1
            if outcome is MatchOutcome.EXACT:
                self.exact_matches += 1

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if p + r else 0.0

    @property
    def accuracy(self) -> float:
        """Share of labels where the scanned value matched exactly."""
        return _ratio(self.exact_matches, self.total)


@dataclass
class BenchmarkResult:
    """Benchmark results across all labels and fields."""

    total_labels: int
    scanned_labels: int
    overall_accuracy: float
    overall_f1: float
    field_metrics: dict[str, FieldMetrics]
    errors: list[str] = field(default_factory=list)


class Evaluator:
    """Evaluates scanned label fields against ground truth.

    Codes are compared case-insensitively with spaces ignored; quantities
    and weights are also accepted when numerically equal.

    Args:
        weight_tolerance: Absolute tolerance for numeric comparisons.
    """

    def __init__(self, weight_tolerance: float = 0.01) -> None:
        self.weight_tolerance = weight_tolerance

    def compare(
        self, field_name: str, predicted: object, expected: object
    ) -> MatchOutcome:
        """Compare one scanned value with its expected value.

        Args:
            field_name: Label field the values belong to.
            predicted: Scanned value; ``None`` or blank means not found.
            expected: Ground truth value.

        Returns:
            The outcome of the comparison.
        """
        if predicted is None or not str(predicted).strip():
            return MatchOutcome.MISSING

        pred, exp = _clean(predicted), _clean(expected)
        if pred == exp:
            return MatchOutcome.EXACT
        if field_name in NUMERIC_FIELDS and self._numbers_match(pred, exp):
            return MatchOutcome.EQUIVALENT
        return MatchOutcome.WRONG

    def _numbers_match(self, pred: str, expected: str) -> bool:
        try:
            difference = _as_number(pred) - _as_number(expected)
        except ValueError:
            return False
        return abs(difference) < self.weight_tolerance

    def evaluate(
        self,
        predictions: Mapping[str, Mapping[str, str | None]],
        ground_truth: Mapping[str, Mapping[str, str]],
    ) -> BenchmarkResult:
        """Compare predictions against ground truth and compute metrics.

        Args:
            predictions: Scanned field values keyed by label image name.
            ground_truth: Expected field values keyed by label image name.
                Only the fields present for a label are scored.

        Returns:
            Aggregated benchmark results with per-field metrics.
        """
        field_metrics = {name: FieldMetrics(name) for name in FIELD_NAMES}
        errors: list[str] = []

        for filename, expected in ground_truth.items():
            predicted = predictions.get(filename)
            if predicted is None:
                errors.append(f"Missing prediction for {filename}")
                predicted = {}

            for field_name, expected_value in expected.items():
                outcome = self.compare(
                    field_name, predicted.get(field_name), expected_value
                )
                metrics = field_metrics.setdefault(field_name, FieldMetrics(field_name))
                metrics.record(outcome)

        measured = [m for m in field_metrics.values() if m.total]
        if errors:
            logger.warning("%d labels have no prediction", len(errors))

        return BenchmarkResult(
            total_labels=len(ground_truth),
            scanned_labels=len(ground_truth) - len(errors),
            overall_accuracy=_mean([m.accuracy for m in measured]),
            overall_f1=_mean([m.f1 for m in measured]),
            field_metrics=field_metrics,
            errors=errors,
        )

    def evaluate_results(
        self,
        results: Mapping[str, ScanResult],
        ground_truth: Mapping[str, Mapping[str, str]],
    ) -> BenchmarkResult:
        """Evaluate :class:`ScanResult` objects keyed by label image name."""
        predictions = {name: result.to_dict() for name, result in results.items()}
        return self.evaluate(predictions, ground_truth)

    def generate_report(
        self, result: BenchmarkResult, output_path: Path | None = None
    ) -> str:
        """Format benchmark results as a plain-text table.

        Args:
            result: Benchmark results to format.
            output_path: Optional path to write the report file.

        Returns:
            The report text.
        """
        rule = "=" * 60
        header = f"{'Field':<14}{'Precision':>11}{'Recall':>11}{'F1':>11}{'Exact':>11}"
        lines = [
            rule,
            "LABEL SCAN BENCHMARK",
            rule,
            f"Labels:            {result.total_labels}",
            f"Scanned:           {result.scanned_labels}",
            f"Exact accuracy:    {result.overall_accuracy:.2%}",
            f"Mean F1:           {result.overall_f1:.3f}",
            "",
            header,
            "-" * 60,
        ]
        lines.extend(
            f"{name:<14}{m.precision:>11.2%}{m.recall:>11.2%}"
            f"{m.f1:>11.3f}{m.accuracy:>11.2%}"
            for name, m in result.field_metrics.items()
            if m.total
        )
        lines.append(rule)

        if result.errors:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"  - {error}" for error in result.errors)

        report = "\n".join(lines)

        if output_path:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report)
            logger.info("Report written to %s", output_path)

        return report


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _as_number(value: str) -> float:
    return float(value.replace(",", "."))


def _clean(value: object) -> str:
    return str(value).strip().upper().replace(" ", "")


def load_label_table(path: Path) -> dict[str, dict[str, str]]:
    """Load label field values from a JSON or CSV file.

    Reads both ground truth files and the CSV written by a batch scan.
    JSON files map image names to field values; CSV files need a
    ``filename`` column, and only the label field columns are kept.

    Args:
        path: Path to the table file.

    Returns:
        Field values keyed by label image name, with empty and null
        values dropped.

    Raises:
        ValueError: If the file format is not supported.
    """
    if path.suffix == ".json":
        raw = json.loads(path.read_text())
        return {
            name: {k: str(v) for k, v in values.items() if v not in (None, "")}
            for name, values in raw.items()
        }

    if path.suffix == ".csv":
        with open(path, newline="") as f:
            return {
                row["filename"]: {k: row[k] for k in FIELD_NAMES if row.get(k)}
                for row in csv.DictReader(f)
            }

    raise ValueError(f"Unsupported label table format: {path.suffix}")
