"""Configuration management for the label scanner.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, rotation consensus, and label parsing.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for label image preprocessing."""

    grayscale_enabled: bool = True
    contrast_enabled: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_size: int = 8
    auto_crop_enabled: bool = False
    auto_crop_min_size: int = 50
    auto_crop_step: int = 4


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3


class ConsensusConfig(BaseModel):
    """Configuration for the rotation consensus driver."""

    sweep_angles: list[float] = Field(default_factory=lambda: [0.0, 90.0, 180.0, 270.0])
    refine_angles: list[float] = Field(default_factory=lambda: [15.0, -15.0])
    good_enough_length: int = 30
    parallel: bool = False
    max_workers: int = 4


class ParserConfig(BaseModel):
    """Configuration for structured label field extraction."""

    window_size: int = 3
    decoy_window_size: int = 0
    qty_min: int = 1
    qty_max: int = 50000
    sales_order_min_digits: int = 5
    sales_order_max_digits: int = 12
    stock_code_min_length: int = 6
    stock_code_max_length: int = 12
    allow_separator_stock_codes: bool = True
    separator_max_length: int = 20
    noise_substrings: list[str] = Field(
        default_factory=lambda: [
            "www",
            "http",
            "madein",
            "china",
            "email",
            "fax",
            "page",
            "weight",
            "we1ght",
            "welght",
        ]
    )


class ServerConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
