"""Configuration management for the customs document OCR system.

Settings come from a YAML file validated by pydantic models. Every
section has defaults, so a missing file or a partial file is fine.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


class OCRConfig(BaseModel):
    """Tesseract gateway settings."""

    tesseract_cmd: str | None = None
    default_lang: str = "spa"
    psm: int = 3
    pdf_dpi: int = Field(default=300, ge=50)


class ExtractionConfig(BaseModel):
    """Confidence constants, upload limits, and the validity rules file."""

    text_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    file_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    max_batch_files: int = Field(default=10, ge=1)
    max_merge_files: int = Field(default=2, ge=1)
    rules_path: str | None = None


class StorageConfig(BaseModel):
    """Where extracted carnets are kept."""

    backend: str = "memory"


class ServerConfig(BaseModel):
    """HTTP server binding and CORS origins."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
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
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.info("No config file found at %s, using defaults", path)
        return AppConfig()

    logger.info("Loading configuration from %s", path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return AppConfig(**raw)
