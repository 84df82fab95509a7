"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

PAGE_CONTEXTS = ("home", "dashboard", "requirement_form", "vehicle_post")

MIN_RECHECK_DELAY_SECONDS = 1
MAX_RECHECK_DELAY_SECONDS = 3600


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Settings for match notifications on page contexts."""

    recheck_delay: str = Field(
        "5s", description="Delay before home/dashboard re-check the pending match"
    )
    page_contexts: List[str] = Field(
        default_factory=lambda: ["home", "dashboard"],
        description="Page contexts that run the pending match re-check",
    )

    # Computed field
    recheck_delay_seconds: Optional[int] = None

    @field_validator("recheck_delay")
    @classmethod
    def validate_recheck_delay(cls, v: str) -> str:
        """Validate the delay parses and stays within 1 second to 1 hour."""
        try:
            validate_duration_range(
                parse_duration(v),
                min_seconds=MIN_RECHECK_DELAY_SECONDS,
                max_seconds=MAX_RECHECK_DELAY_SECONDS,
                label="Recheck delay",
            )
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("page_contexts")
    @classmethod
    def normalize_page_contexts(cls, v: List[str]) -> List[str]:
        """Lowercase, de-duplicate and check page context names."""
        normalized = []
        for name in v:
            cleaned = name.strip().lower().replace("-", "_")
            if cleaned not in PAGE_CONTEXTS:
                raise ValueError(
                    f"Unknown page context '{name}'. Must be one of: {', '.join(PAGE_CONTEXTS)}"
                )
            if cleaned not in normalized:
                normalized.append(cleaned)
        return normalized

    @model_validator(mode="after")
    def compute_fields(self):
        self.recheck_delay_seconds = parse_duration(self.recheck_delay)
        return self


class MessagingConfig(BaseModel):
    """Outbound contact message settings."""

    whatsapp_number: Optional[str] = Field(
        None, description="Number that receives contact messages, international format"
    )

    @field_validator("whatsapp_number", mode="before")
    @classmethod
    def normalize_number(cls, v):
        """Keep digits only; '+91 97467 25111' becomes '919746725111'."""
        if v is None:
            return None
        digits = "".join(ch for ch in str(v) if ch.isdigit())
        if not digits:
            raise ValueError("whatsapp_number must contain digits")
        if not 8 <= len(digits) <= 15:
            raise ValueError(
                f"whatsapp_number must have 8 to 15 digits, got {len(digits)}"
            )
        return digits


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the vehicle match service."""

    matching: MatchingConfig = Field(
        default_factory=MatchingConfig, description="Match notification settings"
    )
    messaging: MessagingConfig = Field(
        default_factory=MessagingConfig, description="Contact message settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
