"""Command-line interface for scanning label images.

Provides subcommands for scanning a single label, batch scanning a folder
to CSV, parsing raw OCR text, and benchmarking results against ground truth.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from src.benchmark.evaluator import Evaluator, load_label_table
from src.extraction.label_parser import LabelParser
from src.extraction.scan_result import FIELD_NAMES
from src.ocr.label_processor import LabelProcessor
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp"})
_META_COLUMNS = [
    "filename",
    "status",
    "processing_time_s",
    "text_length",
    "angle",
    "missing_fields",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """List label images in a directory, matching suffixes case-insensitively."""
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() in _IMAGE_SUFFIXES
    )


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config_path: Path | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Scan every label image in a folder and export the fields to CSV.

    A file that cannot be scanned is recorded as a failed row; the rest
    of the batch carries on.

    Args:
        input_dir: Directory containing label images.
        output_csv: Path for the output CSV file.
        config_path: Optional configuration file.
        verbose: Whether to print per-file progress.

    Returns:
        Counts of total, successful, failed and incomplete labels. A label
        is incomplete when at least one field was not found.
    """
    processor = LabelProcessor(load_config(config_path))
    summary = {"total": 0, "successful": 0, "failed": 0, "incomplete": 0}

    files = _find_images(input_dir)
    if not files:
        logger.warning("No label images found in %s", input_dir)
        return summary

    logger.info("Found %d label images to scan", len(files))
    summary["total"] = len(files)
    rows: list[dict[str, object]] = []

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Scanning [{i}/{len(files)}]: {file_path.name}")

        started = time.perf_counter()
        try:
            row = _scan_single_file(file_path, processor)
        except Exception as exc:
            logger.error("Failed to scan %s: %s", file_path.name, exc)
            rows.append(
                {"filename": file_path.name, "status": "failed", "error": str(exc)}
            )
            summary["failed"] += 1
            continue

        row["processing_time_s"] = round(time.perf_counter() - started, 2)
        rows.append(row)
        summary["successful"] += 1
        if row["missing_fields"]:
            summary["incomplete"] += 1

    _write_csv(rows, output_csv)
    logger.info("Scan results for %d labels written to %s", len(rows), output_csv)
    _print_summary(summary, output_csv)
    return summary


def _scan_single_file(file_path: Path, processor: LabelProcessor) -> dict[str, object]:
    """Scan one label image into a CSV row of metadata and field values."""
    outcome = processor.process(file_path, file_path.name)
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "text_length": len(outcome.text),
        "angle": outcome.angle,
        "missing_fields": ";".join(outcome.result.missing_fields()),
        "error": None,
    }
    row.update(outcome.result.to_dict())
    return row


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write scan rows to CSV: metadata columns, then the label fields.

    Keys outside those columns are ignored; nothing is written for an
    empty batch.
    """
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=[*_META_COLUMNS, *FIELD_NAMES], extrasaction="ignore"
        )
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    rule = "=" * 50
    print(f"\n{rule}\nBatch Scan Complete\n{rule}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Incomplete: {summary.get('incomplete', 0)}")
    print(f"Output:     {output_csv}")


def scan_single(file_path: Path, config_path: Path | None = None) -> dict[str, object]:
    """Scan a single label image and return structured results.

    Args:
        file_path: Path to the label image.
        config_path: Optional configuration file.

    Returns:
        Dictionary with filename, fields, missing fields and raw_text.
    """
    processor = LabelProcessor(load_config(config_path))
    outcome = processor.process(file_path, file_path.name)
    return {
        "filename": file_path.name,
        "fields": outcome.result.to_dict(),
        "missing_fields": outcome.result.missing_fields(),
        "angle": outcome.angle,
        "raw_text": outcome.text,
    }


def parse_text(text: str, config_path: Path | None = None) -> dict[str, object]:
    """Parse raw OCR text without running OCR.

    Args:
        text: Raw OCR text of a label.
        config_path: Optional configuration file.

    Returns:
        Dictionary with fields and missing fields.
    """
    parser = LabelParser(load_config(config_path).parser)
    result = parser.parse(text)
    return {"fields": result.to_dict(), "missing_fields": result.missing_fields()}


def _emit(payload: object, output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its scan/batch/parse/benchmark commands."""
    parser = argparse.ArgumentParser(
        prog="label-scanner",
        description="Warehouse Label Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="Configuration YAML file")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan = subparsers.add_parser("scan", help="Scan a single label image")
    scan.add_argument("file", type=Path, help="Label image to scan")
    scan.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch = subparsers.add_parser("batch", help="Scan a folder of label images")
    batch.add_argument("input_dir", type=Path, help="Directory of label images")
    batch.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch.add_argument("-v", "--verbose", action="store_true", help="Print progress")

    parse = subparsers.add_parser("parse", help="Parse raw OCR text of a label")
    parse.add_argument("file", help="Text file with OCR output, or '-' for stdin")
    parse.add_argument("-o", "--output", type=Path, help="Output JSON file")

    bench = subparsers.add_parser(
        "benchmark", help="Compare scan results with ground truth"
    )
    bench.add_argument("predictions", type=Path, help="Batch CSV or JSON of scans")
    bench.add_argument("ground_truth", type=Path, help="CSV or JSON of expected fields")
    bench.add_argument("-o", "--output", type=Path, help="Report output file")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the selected command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(load_config(args.config).log_level)

    if args.command == "scan":
        _require_file(args.file)
        _emit(scan_single(args.file, args.config), args.output)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            _exit_with_error(f"{args.input_dir} is not a directory")
        process_folder(args.input_dir, args.output, args.config, args.verbose)
    elif args.command == "parse":
        text = _read_text(args.file)
        _emit(parse_text(text, args.config), args.output)
    elif args.command == "benchmark":
        _require_file(args.predictions)
        _require_file(args.ground_truth)
        evaluator = Evaluator()
        result = evaluator.evaluate(
            load_label_table(args.predictions), load_label_table(args.ground_truth)
        )
        print(evaluator.generate_report(result, args.output))


def _exit_with_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _require_file(path: Path) -> None:
    if not path.exists():
        _exit_with_error(f"{path} does not exist")


def _read_text(source: str) -> str:
    """Read OCR text from a file, or from stdin when ``source`` is ``-``."""
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    _require_file(path)
    return path.read_text(encoding="utf-8")


if __name__ == "__main__":
    main()
