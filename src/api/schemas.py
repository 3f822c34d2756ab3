"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, Field

from src.extraction.scan_result import ScanResult


class LabelFields(BaseModel):
    """The five label fields; ``None`` means not found."""

    stock_code: str | None = None
    sales_order: str | None = None
    qty: str | None = None
    po: str | None = None
    weight: str | None = None

    @classmethod
    def from_result(cls, result: ScanResult) -> "LabelFields":
        return cls(**result.to_dict())


class OCRAttemptResponse(BaseModel):
    """One OCR attempt made during the rotation sweep."""

    angle: float
    length: int


class ScanResponse(BaseModel):
    """Response schema for a label scan request."""

    success: bool
    scan_id: str
    fields: LabelFields
    missing_fields: list[str]
    raw_text: str
    angle: float | None = None
    attempts: list[OCRAttemptResponse] = Field(default_factory=list)
    processing_time_ms: float


class ParseRequest(BaseModel):
    """Request schema for parsing raw OCR text."""

    text: str


class ParseResponse(BaseModel):
    """Response schema for parsed OCR text."""

    fields: LabelFields
    missing_fields: list[str]


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch scan."""

    filename: str
    result: ScanResponse | None = None
    error: str | None = None


class BatchScanResponse(BaseModel):
    """Response schema for batch scanning of multiple label images."""

    success: bool
    total_images: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class FieldInfo(BaseModel):
    """Information about a label field the scanner extracts."""

    name: str
    description: str


class FieldsResponse(BaseModel):
    """Response schema listing the extracted label fields."""

    fields: list[FieldInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
