"""Tests for the FastAPI REST endpoints."""

import io
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.api.app import app
from src.ocr.label_processor import LabelProcessor
from src.utils.config import AppConfig, ConsensusConfig

LABEL_TEXT = (
    "Stock Code: N4C3K7P9\nSales Order: 40012345\nPO: WH0012345\n"
    "Qty: 250\nWeight: 12.5 kg"
)


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def processor() -> LabelProcessor:
    """Label processor with a fixed-text recognizer and a single orientation."""
    config = AppConfig(consensus=ConsensusConfig(sweep_angles=[0]))
    return LabelProcessor(config, recognizer=lambda image: LABEL_TEXT)


def _make_test_image_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.fromarray(np.full((100, 200, 3), 255, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_200(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)


class TestScanEndpoint:
    """Tests for the /scan endpoint."""

    def test_scan_label(self, client: TestClient, processor: LabelProcessor) -> None:
        with patch("src.api.app._get_processor", return_value=processor):
            response = client.post(
                "/scan",
                files={"file": ("label.png", _make_test_image_bytes(), "image/png")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fields"] == {
            "stock_code": "N4C3K7P9",
            "sales_order": "40012345",
            "qty": "250",
            "po": "WH0012345",
            "weight": "12.5",
        }
        assert data["missing_fields"] == []
        assert data["raw_text"] == LABEL_TEXT
        assert data["angle"] == 0.0
        assert data["attempts"] == [{"angle": 0.0, "length": len(LABEL_TEXT)}]
        assert data["processing_time_ms"] >= 0

    def test_scan_reports_missing_fields(self, client: TestClient) -> None:
        processor = LabelProcessor(
            AppConfig(consensus=ConsensusConfig(sweep_angles=[0], refine_angles=[])),
            recognizer=lambda image: "Qty: 5",
        )
        with patch("src.api.app._get_processor", return_value=processor):
            response = client.post(
                "/scan",
                files={"file": ("label.png", _make_test_image_bytes(), "image/png")},
            )

        data = response.json()
        assert data["fields"]["qty"] == "5"
        assert data["missing_fields"] == ["stock_code", "sales_order", "po", "weight"]

    def test_scan_unsupported_type(self, client: TestClient) -> None:
        response = client.post(
            "/scan",
            files={"file": ("label.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert "Unsupported" in response.json()["detail"]

    def test_scan_undecodable_image(
        self, client: TestClient, processor: LabelProcessor
    ) -> None:
        with patch("src.api.app._get_processor", return_value=processor):
            response = client.post(
                "/scan",
                files={"file": ("label.png", b"not a png", "image/png")},
            )
        assert response.status_code == 400
        assert response.json()["detail"] == "Could not decode image"

    @patch("src.api.app._get_processor")
    def test_scan_processing_error(
        self, mock_get_processor: MagicMock, client: TestClient
    ) -> None:
        mock_get_processor.return_value.process.side_effect = RuntimeError("boom")
        response = client.post(
            "/scan",
            files={"file": ("label.png", _make_test_image_bytes(), "image/png")},
        )
        assert response.status_code == 500
        assert response.json()["detail"] == "boom"


class TestBatchEndpoint:
    """Tests for the /scan/batch endpoint."""

    def test_batch_scan(self, client: TestClient, processor: LabelProcessor) -> None:
        with patch("src.api.app._get_processor", return_value=processor):
            response = client.post(
                "/scan/batch",
                files=[
                    ("files", ("a.png", _make_test_image_bytes(), "image/png")),
                    ("files", ("b.txt", b"hello", "text/plain")),
                ],
            )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["total_images"] == 2
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][0]["filename"] == "a.png"
        assert data["results"][0]["result"]["fields"]["qty"] == "250"
        assert data["results"][1]["error"].startswith("Unsupported file type")

    def test_batch_all_failed(self, client: TestClient) -> None:
        response = client.post(
            "/scan/batch",
            files=[("files", ("b.txt", b"hello", "text/plain"))],
        )
        data = response.json()
        assert data["success"] is False
        assert data["failed"] == 1


class TestParseEndpoint:
    """Tests for the /parse endpoint."""

    def test_parse_text(self, client: TestClient) -> None:
        response = client.post(
            "/parse", json={"text": "PO: GRO024\nSales Order\n95237\nQty\n1086"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["fields"]["po"] == "GRO024"
        assert data["fields"]["sales_order"] == "95237"
        assert data["fields"]["qty"] == "1086"
        assert data["missing_fields"] == ["stock_code", "weight"]

    def test_parse_empty_text(self, client: TestClient) -> None:
        response = client.post("/parse", json={"text": ""})
        assert response.status_code == 200
        assert len(response.json()["missing_fields"]) == 5

    def test_parse_requires_text(self, client: TestClient) -> None:
        response = client.post("/parse", json={})
        assert response.status_code == 422


class TestFieldsEndpoint:
    """Tests for the /fields endpoint."""

    def test_list_fields(self, client: TestClient) -> None:
        response = client.get("/fields")
        assert response.status_code == 200
        names = [f["name"] for f in response.json()["fields"]]
        assert names == ["stock_code", "sales_order", "qty", "po", "weight"]
