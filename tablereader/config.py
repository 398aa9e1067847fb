"""Configuration management using pydantic-settings."""
import logging
import sys
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog


class Settings(BaseSettings):
    """Library defaults loaded from environment variables.

    All settings prefixed with TABLEREADER_ (e.g., TABLEREADER_HEADER_ROW_END=20)

    These only provide defaults; every value can be overridden per
    TableReader instance.
    """

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for structlog output"
    )

    # Header search window
    header_row_start: int = Field(
        default=1,
        ge=1,
        description="First row (1-indexed) scanned for the header"
    )
    header_row_end: int = Field(
        default=10,
        ge=1,
        description="Last row (1-indexed) scanned for the header"
    )

    # Format detection
    probe_bytes: int = Field(
        default=4096,
        ge=64,
        le=1_048_576,
        description="Bytes read from the head of the input to detect its format"
    )
    csv_encoding: str = Field(
        default="utf-8-sig",
        description="Text encoding used by the delimited-text decoders"
    )

    # Default policies
    on_unknown_columns: Literal["use", "next", "die"] = Field(
        default="use",
        description="What to do with header columns no field claimed"
    )
    on_blank_row: Literal["next", "last", "die", "use"] = Field(
        default="next",
        description="What to do with runs of blank rows inside the table"
    )
    on_validation_fail: Literal["next", "use", "die"] = Field(
        default="die",
        description="What to do with records failing a field type check"
    )

    model_config = SettingsConfigDict(
        env_prefix="TABLEREADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached library settings."""
    return Settings()


def configure_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog for JSON logging.

    Args:
        log_level: Level name; defaults to TABLEREADER_LOG_LEVEL
    """
    level_name = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
