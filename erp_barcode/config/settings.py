"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the ERP barcode service using Pydantic Settings.

Settings cover four areas:
- Application / server (name, environment, bind address)
- Persistence and authentication (database URL, JWT signing)
- Scan pipeline tuning (tick interval, cool-down window, contrast factor)
- Camera constraints for the local capture source

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        database_url: SQLAlchemy database connection string
        jwt_secret_key: Secret key for JWT token signing
        scan_interval_ms: Delay between two capture ticks of the scan loop
        scan_cooldown_ms: Minimum gap between two accepted decodes
        contrast_factor: Multiplier used by the contrast preprocessing variant
        strict_upce_checksum: Verify the UPC-E check digit (off by default)
        numeric_code128_fallback: Let all-digit strings fall through to Code128
        scan_log_enabled: Emit barcode scan log entries on lookup

    Example:
        >>> settings = Settings()
        >>> settings.scan_cooldown_seconds
        1.5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="ERP Barcode Service",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    host: str = Field(default="0.0.0.0", description="Server bind address")

    port: int = Field(default=8000, ge=1, le=65535, description="Server port number")

    # =========================================================================
    # DATABASE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/erp.db",
        description="SQLAlchemy database connection string"
    )

    # =========================================================================
    # AUTHENTICATION SETTINGS
    # =========================================================================
    jwt_secret_key: str = Field(
        default="change-this-in-production",
        min_length=16,
        description="Secret key for JWT token signing"
    )

    jwt_algorithm: str = Field(default="HS256", description="Algorithm for JWT signing")

    access_token_expire_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Access token lifetime in minutes"
    )

    default_company_name: str = Field(
        default="Default Company",
        min_length=1,
        description="Company created on first start"
    )

    default_admin_username: str = Field(
        default="admin",
        min_length=3,
        max_length=50,
        description="Initial account username"
    )

    default_admin_password: str = Field(
        default="admin123",
        min_length=6,
        description="Initial account password"
    )

    # =========================================================================
    # SCAN PIPELINE SETTINGS
    # =========================================================================
    scan_interval_ms: int = Field(
        default=300,
        ge=50,
        le=5000,
        description="Delay between two capture ticks"
    )

    scan_cooldown_ms: int = Field(
        default=1500,
        ge=0,
        le=60000,
        description="Minimum gap between two accepted decodes"
    )

    contrast_factor: float = Field(
        default=1.5,
        gt=1.0,
        le=5.0,
        description="Contrast multiplier for the enhanced variant"
    )

    strict_upce_checksum: bool = Field(
        default=False,
        description="Verify UPC-E check digits instead of length only"
    )

    numeric_code128_fallback: bool = Field(
        default=True,
        description="Report all-digit strings that fail every checksum as Code128"
    )

    # =========================================================================
    # CAMERA SETTINGS
    # =========================================================================
    camera_back_index: int = Field(default=0, ge=0, description="Device index of the back camera")
    camera_front_index: int = Field(default=1, ge=0, description="Device index of the front camera")
    camera_ideal_width: int = Field(default=1920, ge=1)
    camera_ideal_height: int = Field(default=1080, ge=1)
    camera_min_width: int = Field(default=640, ge=1)
    camera_min_height: int = Field(default=480, ge=1)
    camera_ideal_fps: int = Field(default=30, ge=1)
    camera_min_fps: int = Field(default=15, ge=1)

    # =========================================================================
    # SCAN LOG SETTINGS
    # =========================================================================
    scan_log_enabled: bool = Field(
        default=True,
        description="Record one scan log entry per company lookup"
    )

    scan_log_queue_size: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Pending scan log entries kept before dropping"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """Normalize the environment name, defaulting unknown values."""
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, value: str) -> str:
        """
        Validate JWT algorithm is a supported HMAC algorithm.

        Raises:
            ValueError: If algorithm is not supported
        """
        supported = {"HS256", "HS384", "HS512"}

        if value.upper() not in supported:
            raise ValueError(
                f"Unsupported JWT algorithm: {value}. "
                f"Supported: {', '.join(sorted(supported))}"
            )

        return value.upper()

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def scan_interval_seconds(self) -> float:
        return self.scan_interval_ms / 1000.0

    @property
    def scan_cooldown_seconds(self) -> float:
        return self.scan_cooldown_ms / 1000.0

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from JSON string to list."""
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for in-memory and non-SQLite URLs
        """
        if not self.database_url.startswith("sqlite:///"):
            return None
        db_path = self.database_url.replace("sqlite:///", "")
        if not db_path or db_path == ":memory:":
            return None
        if db_path.startswith("./"):
            db_path = db_path[2:]
        return Path(db_path)

    def ensure_directories(self) -> None:
        """Create the SQLite database directory when needed."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the process-wide Settings instance.

    Returns:
        Cached Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
