"""FastAPI application for the Label Scanner API.

Provides REST endpoints for scanning label images, parsing raw OCR text,
listing the extracted fields, and health checks.
"""

import shutil
import time
import uuid
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from PIL import UnidentifiedImageError

from src.extraction.label_parser import LabelParser
from src.ocr.label_processor import LabelProcessor
from src.utils.config import load_config
from src.utils.logger import get_logger

from .schemas import (
    BatchItemResponse,
    BatchScanResponse,
    FieldInfo,
    FieldsResponse,
    HealthResponse,
    LabelFields,
    OCRAttemptResponse,
    ParseRequest,
    ParseResponse,
    ScanResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Label Scanner API",
    description=(
        "Extract stock code, sales order, PO, quantity and weight from label photos"
    ),
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_processor() -> LabelProcessor:
    """Create a label processor from the current configuration."""
    return LabelProcessor(load_config())


_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/bmp",
    "application/octet-stream",
}

_FIELD_DESCRIPTIONS = {
    "stock_code": "Alphanumeric stock code printed next to 'Stock Code'",
    "sales_order": "Sales order number (5-12 digits)",
    "qty": "Quantity printed next to 'Qty'",
    "po": "Purchase order number, letters followed by digits",
    "weight": "Weight value printed next to 'Weight'",
}


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post("/scan", response_model=ScanResponse)
async def scan_label(file: Annotated[UploadFile, File(...)]) -> ScanResponse:
    """Scan an uploaded label photo into structured fields.

    Args:
        file: Uploaded label image (PNG, JPEG, TIFF or BMP).

    Returns:
        Scanned fields, missing fields and the winning OCR text.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    try:
        processor = _get_processor()
        content = await file.read()
        outcome = processor.process(content, file.filename or "label")
    except UnidentifiedImageError as exc:
        raise HTTPException(status_code=400, detail="Could not decode image") from exc
    except Exception as exc:
        logger.error("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return ScanResponse(
        success=True,
        scan_id=str(uuid.uuid4()),
        fields=LabelFields.from_result(outcome.result),
        missing_fields=outcome.result.missing_fields(),
        raw_text=outcome.text,
        angle=outcome.angle,
        attempts=[
            OCRAttemptResponse(angle=a.angle, length=a.score) for a in outcome.attempts
        ],
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.post("/scan/batch", response_model=BatchScanResponse)
async def scan_batch(
    files: Annotated[list[UploadFile], File(...)],
) -> BatchScanResponse:
    """Scan multiple uploaded label photos.

    Args:
        files: List of uploaded label images.

    Returns:
        Batch results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        try:
            result = await scan_label(file)
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", result=result)
            )
            successful += 1
        except HTTPException as exc:
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", error=exc.detail)
            )

    return BatchScanResponse(
        success=successful > 0,
        total_images=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )


@app.post("/parse", response_model=ParseResponse)
async def parse_text(request: ParseRequest) -> ParseResponse:
    """Parse raw OCR text of a label without running OCR."""
    result = LabelParser(load_config().parser).parse(request.text)
    return ParseResponse(
        fields=LabelFields.from_result(result),
        missing_fields=result.missing_fields(),
    )


@app.get("/fields", response_model=FieldsResponse)
async def list_fields() -> FieldsResponse:
    """List the label fields the scanner extracts."""
    return FieldsResponse(
        fields=[
            FieldInfo(name=name, description=description)
            for name, description in _FIELD_DESCRIPTIONS.items()
        ]
    )
