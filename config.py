"""
Configuration management for the Contact Capture API.

Handles environment variables, storage location and extraction tuning.
"""

import os
import logging
from typing import Optional
from dotenv import load_dotenv

from capture.parser import DEFAULT_COMPANY_KEYWORDS, ExtractionSettings

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _env_list(name: str) -> list:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """Application configuration class.

    Attributes:
        DEBUG: Enable debug mode
        TESTING: Enable testing mode
        SECRET_KEY: Flask secret key
        MAX_CONTENT_LENGTH: Maximum upload file size (10MB default)
        STORE_PATH: JSON file backing the record store (None keeps records in memory)
        ALLOWED_EXTENSIONS: Allowed image file extensions
    """

    # Flask Settings
    DEBUG: bool = os.getenv("CAPTURE_DEBUG", "False").lower() == "true"
    TESTING: bool = os.getenv("CAPTURE_TESTING", "False").lower() == "true"
    SECRET_KEY: str = os.getenv("CAPTURE_SECRET_KEY", "dev-secret-key-change-in-production")

    # Upload Settings
    MAX_CONTENT_LENGTH: int = 10 * 1024 * 1024  # 10MB max file size
    ALLOWED_EXTENSIONS: set = {"png", "jpg", "jpeg", "gif", "bmp", "webp"}

    # Record store
    STORE_PATH: Optional[str] = os.getenv("CAPTURE_STORE_PATH", "data/submissions.json")

    # OCR Settings
    OCR_LANGUAGES: list = _env_list("CAPTURE_OCR_LANGUAGES") or ["en"]
    OCR_GPU: bool = os.getenv("CAPTURE_OCR_GPU", "False").lower() == "true"
    OCR_MODEL_DIR: str = os.getenv("CAPTURE_OCR_MODEL_DIR", "./models")
    OCR_MAX_DIMENSION: int = int(os.getenv("CAPTURE_OCR_MAX_DIMENSION", "1600"))
    OCR_ENHANCE_IMAGES: bool = os.getenv("CAPTURE_OCR_ENHANCE_IMAGES", "True").lower() == "true"

    # Extraction heuristics (empirical, tune per card population)
    NAME_MAX_LENGTH: int = int(os.getenv("CAPTURE_NAME_MAX_LENGTH", "50"))
    NAME_MAX_TOKENS: int = int(os.getenv("CAPTURE_NAME_MAX_TOKENS", "4"))
    COMPANY_MAX_LENGTH: int = int(os.getenv("CAPTURE_COMPANY_MAX_LENGTH", "100"))
    EXTRA_COMPANY_KEYWORDS: list = _env_list("CAPTURE_COMPANY_KEYWORDS")

    # Logging
    LOG_LEVEL: str = os.getenv("CAPTURE_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def init_app(cls, app) -> None:
        """Initialize Flask app with configuration.

        Args:
            app: Flask application instance
        """
        app.config.from_object(cls)

        # Configure logging
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL.upper()),
            format=cls.LOG_FORMAT
        )

        logger.info("Configuration initialized successfully")

    @classmethod
    def is_allowed_file(cls, filename: str) -> bool:
        """Check if file extension is allowed.

        Args:
            filename: Name of the file to check

        Returns:
            True if file extension is allowed, False otherwise
        """
        return "." in filename and \
            filename.rsplit(".", 1)[1].lower() in cls.ALLOWED_EXTENSIONS

    @classmethod
    def extraction_settings(cls) -> ExtractionSettings:
        """Build the card parser settings from configuration."""
        return ExtractionSettings(
            name_max_length=cls.NAME_MAX_LENGTH,
            name_max_tokens=cls.NAME_MAX_TOKENS,
            company_max_length=cls.COMPANY_MAX_LENGTH,
            company_keywords=DEFAULT_COMPANY_KEYWORDS + tuple(cls.EXTRA_COMPANY_KEYWORDS)
        )


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_LEVEL = "INFO"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    STORE_PATH = None


# Configuration mapping
config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration class by name.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configuration class
    """
    if config_name is None:
        config_name = os.getenv("CAPTURE_ENV", "development")
    return config_by_name.get(config_name, DevelopmentConfig)
