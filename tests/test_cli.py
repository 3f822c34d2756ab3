"""Tests for the label scanning CLI and CSV export."""

import csv
import io
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from src.cli import (
    _find_images,
    _print_summary,
    _write_csv,
    main,
    parse_text,
    process_folder,
    scan_single,
)
from src.extraction.scan_result import ScanResult
from src.ocr.consensus import OCRAttempt
from src.ocr.label_processor import LabelScanOutcome
from src.preprocessing.pipeline import QualityMetrics

LABEL_TEXT = "Stock Code: N4C3K7P9\nQty: 250\nPO: WH0012345"


def _make_outcome(filename: str = "label.png") -> LabelScanOutcome:
    """Create a LabelScanOutcome for a partially read label."""
    return LabelScanOutcome(
        source_file=filename,
        text=LABEL_TEXT,
        result=ScanResult(stock_code="N4C3K7P9", qty="250", po="WH0012345"),
        angle=90.0,
        attempts=[OCRAttempt(0.0, ""), OCRAttempt(90.0, LABEL_TEXT)],
        quality_metrics=QualityMetrics(100.0, 120.0, 50.0, 60.0),
    )


class TestFindImages:
    """Tests for label image discovery."""

    def test_find_png_files(self, tmp_path: Path) -> None:
        (tmp_path / "label1.png").touch()
        (tmp_path / "label2.png").touch()
        (tmp_path / "readme.txt").touch()
        files = _find_images(tmp_path)
        assert len(files) == 2
        assert all(f.suffix == ".png" for f in files)

    def test_find_mixed_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "a.png").touch()
        (tmp_path / "b.jpg").touch()
        (tmp_path / "c.jpeg").touch()
        (tmp_path / "d.tiff").touch()
        (tmp_path / "e.pdf").touch()
        assert len(_find_images(tmp_path)) == 4

    def test_find_no_images(self, tmp_path: Path) -> None:
        (tmp_path / "readme.txt").touch()
        assert _find_images(tmp_path) == []

    def test_directories_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "nested.png").mkdir()
        assert _find_images(tmp_path) == []

    def test_find_uppercase_extensions(self, tmp_path: Path) -> None:
        (tmp_path / "LABEL.JPG").touch()
        assert len(_find_images(tmp_path)) == 1

    def test_sorted(self, tmp_path: Path) -> None:
        (tmp_path / "b.png").touch()
        (tmp_path / "a.png").touch()
        assert [f.name for f in _find_images(tmp_path)] == ["a.png", "b.png"]


class TestWriteCsv:
    """Tests for CSV writing."""

    def test_write_csv_content(self, tmp_path: Path) -> None:
        rows = [
            {
                "filename": "label.png",
                "status": "success",
                "error": None,
                "qty": "250",
                "po": "WH0012345",
                "stock_code": None,
            }
        ]
        output = tmp_path / "results.csv"
        _write_csv(rows, output)

        with open(output) as f:
            written = list(csv.DictReader(f))
        assert len(written) == 1
        assert written[0]["filename"] == "label.png"
        assert written[0]["qty"] == "250"
        assert written[0]["stock_code"] == ""

    def test_write_csv_empty_results(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([], output)
        assert not output.exists()

    def test_write_csv_creates_parent_dirs(self, tmp_path: Path) -> None:
        output = tmp_path / "subdir" / "results.csv"
        _write_csv([{"filename": "label.png", "status": "success"}], output)
        assert output.exists()

    def test_column_order(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([{"filename": "label.png", "colour": "red"}], output)

        with open(output) as f:
            headers = next(csv.reader(f))
        assert headers[:2] == ["filename", "status"]
        assert headers[-5:] == ["stock_code", "sales_order", "qty", "po", "weight"]
        assert "colour" not in headers


class TestPrintSummary:
    """Tests for summary printing."""

    def test_print_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        summary = {"total": 5, "successful": 4, "failed": 1, "incomplete": 3}
        _print_summary(summary, Path("results.csv"))
        captured = capsys.readouterr()
        assert "Batch Scan Complete" in captured.out
        assert "Total:      5" in captured.out
        assert "Successful: 4" in captured.out
        assert "Failed:     1" in captured.out
        assert "Incomplete: 3" in captured.out
        assert "results.csv" in captured.out


class TestProcessFolder:
    """Tests for batch folder scanning."""

    @patch("src.cli.LabelProcessor")
    @patch("src.cli.load_config")
    def test_process_folder_success(
        self,
        mock_config: MagicMock,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
    ) -> None:
        mock_processor_cls.return_value.process.return_value = _make_outcome()

        (tmp_path / "label1.png").touch()
        (tmp_path / "label2.png").touch()
        output_csv = tmp_path / "out" / "output.csv"

        summary = process_folder(tmp_path, output_csv)
        assert summary == {"total": 2, "successful": 2, "failed": 0, "incomplete": 2}

        with open(output_csv) as f:
            rows = list(csv.DictReader(f))
        assert [r["filename"] for r in rows] == ["label1.png", "label2.png"]
        assert rows[0]["status"] == "success"
        assert rows[0]["stock_code"] == "N4C3K7P9"
        assert rows[0]["sales_order"] == ""
        assert rows[0]["missing_fields"] == "sales_order;weight"
        assert rows[0]["angle"] == "90.0"

    @patch("src.cli.LabelProcessor")
    @patch("src.cli.load_config")
    def test_process_folder_with_failure(
        self,
        mock_config: MagicMock,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
    ) -> None:
        mock_processor_cls.return_value.process.side_effect = [
            _make_outcome(),
            OSError("cannot read image"),
        ]

        (tmp_path / "label1.png").touch()
        (tmp_path / "label2.png").touch()
        output_csv = tmp_path / "output.csv"

        summary = process_folder(tmp_path, output_csv)
        assert summary["successful"] == 1
        assert summary["failed"] == 1

        with open(output_csv) as f:
            rows = list(csv.DictReader(f))
        assert rows[1]["status"] == "failed"
        assert rows[1]["error"] == "cannot read image"

    @patch("src.cli.LabelProcessor")
    @patch("src.cli.load_config")
    def test_process_folder_empty(
        self, mock_config: MagicMock, mock_processor_cls: MagicMock, tmp_path: Path
    ) -> None:
        output_csv = tmp_path / "output.csv"
        summary = process_folder(tmp_path, output_csv)
        assert summary["total"] == 0
        assert not output_csv.exists()

    @patch("src.cli.LabelProcessor")
    @patch("src.cli.load_config")
    def test_process_folder_verbose(
        self,
        mock_config: MagicMock,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_processor_cls.return_value.process.return_value = _make_outcome()
        (tmp_path / "label1.png").touch()

        process_folder(tmp_path, tmp_path / "output.csv", verbose=True)
        captured = capsys.readouterr()
        assert "Scanning [1/1]: label1.png" in captured.out


class TestScanSingle:
    """Tests for single label scanning."""

    @patch("src.cli.LabelProcessor")
    @patch("src.cli.load_config")
    def test_scan_single_returns_fields(
        self,
        mock_config: MagicMock,
        mock_processor_cls: MagicMock,
        tmp_path: Path,
    ) -> None:
        mock_processor_cls.return_value.process.return_value = _make_outcome()
        path = tmp_path / "label.png"
        path.touch()

        result = scan_single(path)
        assert result["filename"] == "label.png"
        assert result["fields"]["qty"] == "250"
        assert result["missing_fields"] == ["sales_order", "weight"]
        assert result["angle"] == 90.0
        assert result["raw_text"] == LABEL_TEXT


class TestParseText:
    """Tests for parsing raw OCR text without OCR."""

    def test_parse_text(self) -> None:
        result = parse_text(LABEL_TEXT)
        assert result["fields"]["stock_code"] == "N4C3K7P9"
        assert result["fields"]["qty"] == "250"
        assert result["fields"]["po"] == "WH0012345"
        assert result["missing_fields"] == ["sales_order", "weight"]

    def test_parse_text_uses_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"parser": {"qty_max": 100}}))
        result = parse_text("Qty: 250", config_file)
        assert result["fields"]["qty"] is None


@patch("src.cli.setup_logging")
class TestCLIMain:
    """Tests for the CLI argument parser and main entry point."""

    def test_no_command_shows_help(self, mock_logging: MagicMock) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        mock_logging.assert_not_called()

    def test_batch_nonexistent_directory(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", "/nonexistent/path"])
        assert exc_info.value.code == 1
        assert "not a directory" in capsys.readouterr().err

    def test_scan_nonexistent_file(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", "/nonexistent/label.png"])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    @patch("src.cli.process_folder")
    def test_batch_command(
        self, mock_pf: MagicMock, mock_logging: MagicMock, tmp_path: Path
    ) -> None:
        mock_pf.return_value = {"total": 1, "successful": 1, "failed": 0}
        output = tmp_path / "out.csv"
        main(["batch", str(tmp_path), "-o", str(output), "-v"])
        mock_pf.assert_called_once_with(tmp_path, output, None, True)

    @patch("src.cli.scan_single")
    def test_scan_command_writes_json(
        self, mock_scan: MagicMock, mock_logging: MagicMock, tmp_path: Path
    ) -> None:
        mock_scan.return_value = {"filename": "label.png", "fields": {"qty": "5"}}
        image = tmp_path / "label.png"
        image.touch()
        output = tmp_path / "result.json"

        main(["scan", str(image), "-o", str(output)])

        assert json.loads(output.read_text())["fields"]["qty"] == "5"

    def test_parse_command(
        self,
        mock_logging: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        text_file = tmp_path / "label.txt"
        text_file.write_text("Sales Order\n95237\nQty\n1086", encoding="utf-8")

        main(["parse", str(text_file)])

        payload = json.loads(capsys.readouterr().out)
        assert payload["fields"]["sales_order"] == "95237"
        assert payload["fields"]["qty"] == "1086"

    def test_parse_stdin(
        self,
        mock_logging: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("Weight: 12.5 kg"))
        main(["parse", "-"])
        payload = json.loads(capsys.readouterr().out)
        assert payload["fields"]["weight"] == "12.5"

    def test_parse_with_config(
        self,
        mock_logging: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"log_level": "DEBUG"}))
        text_file = tmp_path / "label.txt"
        text_file.write_text("Qty: 3")

        main(["-c", str(config_file), "parse", str(text_file)])

        mock_logging.assert_called_once_with("DEBUG")
        assert json.loads(capsys.readouterr().out)["fields"]["qty"] == "3"

    def test_parse_nonexistent_file(
        self, mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["parse", "/nonexistent/label.txt"])
        assert exc_info.value.code == 1

    def test_benchmark_command(
        self,
        mock_logging: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        predictions = tmp_path / "predictions.json"
        predictions.write_text(json.dumps({"a.png": {"qty": "250", "po": None}}))
        truth = tmp_path / "truth.json"
        truth.write_text(json.dumps({"a.png": {"qty": "250", "po": "WH0012345"}}))
        report = tmp_path / "report.txt"

        main(["benchmark", str(predictions), str(truth), "-o", str(report)])

        out = capsys.readouterr().out
        assert "LABEL SCAN BENCHMARK" in out
        assert report.exists()

    def test_benchmark_missing_file(
        self,
        mock_logging: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["benchmark", str(tmp_path / "p.json"), str(tmp_path / "t.json")])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err
