"""
Environment configuration loader with validation for the motor park trips core.
"""

import logging
import os
from decimal import Decimal
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class ParkConfig(BaseModel):
    """Configuration model for the trips core with validation."""

    # Seat holds
    hold_duration_minutes: int = Field(
        default=5, ge=1, description="Minutes an unpaid seat hold lasts"
    )
    max_hold_duration_minutes: int = Field(
        default=1440, ge=1, description="Longest hold a caller may request"
    )
    released_hold_retention_minutes: int = Field(
        default=1440, ge=1, description="How long a released hold is remembered for late payments"
    )
    lock_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Maximum wait for a per-trip lock"
    )

    # Trips and recurrence
    max_seat_count: int = Field(
        default=50, ge=1, description="Seat ceiling for a single trip"
    )
    recurrence_horizon_days: int = Field(
        default=90, ge=1, description="Series span when a pattern has no end date"
    )
    max_recurrence_occurrences: int = Field(
        default=365, ge=1, description="Most trips a single series may generate"
    )
    preview_limit: int = Field(
        default=7, ge=1, description="Dates shown in a recurrence preview"
    )
    preview_horizon_days: int = Field(
        default=30, ge=1, description="Preview span when a pattern has no end date"
    )

    # Finance
    passenger_driver_share: Decimal = Field(
        default=Decimal("0.80"), ge=0, le=1, description="Driver share of passenger revenue"
    )
    parcel_driver_share: Decimal = Field(
        default=Decimal("0.50"), ge=0, le=1, description="Driver share of parcel revenue"
    )

    # Attribution and logging
    default_actor: str = Field(default="admin", description="Actor used when none is supplied")
    park_debug: bool = Field(default=False, description="Enable debug mode")
    park_log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("park_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("default_actor")
    @classmethod
    def validate_default_actor(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Default actor cannot be blank")
        return v.strip()


def load_config(env_file: Optional[str] = None) -> ParkConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        ParkConfig: Validated configuration object

    Raises:
        ValueError: If configuration is invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    config_data: Dict[str, Any] = {
        "hold_duration_minutes": int(os.getenv("HOLD_DURATION_MINUTES", "5")),
        "max_hold_duration_minutes": int(
            os.getenv("MAX_HOLD_DURATION_MINUTES", "1440")
        ),
        "released_hold_retention_minutes": int(
            os.getenv("RELEASED_HOLD_RETENTION_MINUTES", "1440")
        ),
        "lock_timeout_seconds": float(os.getenv("LOCK_TIMEOUT_SECONDS", "5.0")),
        "max_seat_count": int(os.getenv("MAX_SEAT_COUNT", "50")),
        "recurrence_horizon_days": int(os.getenv("RECURRENCE_HORIZON_DAYS", "90")),
        "max_recurrence_occurrences": int(
            os.getenv("MAX_RECURRENCE_OCCURRENCES", "365")
        ),
        "preview_limit": int(os.getenv("PREVIEW_LIMIT", "7")),
        "preview_horizon_days": int(os.getenv("PREVIEW_HORIZON_DAYS", "30")),
        "passenger_driver_share": Decimal(
            os.getenv("PASSENGER_DRIVER_SHARE", "0.80")
        ),
        "parcel_driver_share": Decimal(os.getenv("PARCEL_DRIVER_SHARE", "0.50")),
        "default_actor": os.getenv("DEFAULT_ACTOR", "admin"),
        "park_debug": os.getenv("PARK_DEBUG", "false").lower()
        in ("true", "1", "yes", "on"),
        "park_log_level": os.getenv("PARK_LOG_LEVEL", "INFO"),
    }

    try:
        return ParkConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def configure_logging(config: ParkConfig) -> None:
    """Apply the configured log level to the root logger."""
    level = logging.DEBUG if config.park_debug else getattr(logging, config.park_log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("motorpark").setLevel(level)


# Global configuration instance
_config: Optional[ParkConfig] = None


def get_config() -> ParkConfig:
    """
    Get the global configuration instance, loading it if necessary.

    Returns:
        ParkConfig: The global configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
        logger.info(
            f"Configuration loaded: hold={_config.hold_duration_minutes}min, "
            f"max_seats={_config.max_seat_count}, actor={_config.default_actor}"
        )
    return _config
