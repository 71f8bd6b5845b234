"""HMPI settings loaded from environment variables."""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hmpi.scoring.models import AggregationMethod, NormalizationMethod


class Environment(StrEnum):
    """Deployment environment."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Process-wide settings loaded from environment variables / .env file.

    Only startup defaults live here. Standards, weights and risk bands are
    edited at runtime through the versioned stores, never through settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Scoring strategies ---
    DEFAULT_NORMALIZATION: NormalizationMethod = Field(
        default=NormalizationMethod.LINEAR,
        description="Normalization method: linear, logarithmic or exponential.",
    )
    DEFAULT_AGGREGATION: AggregationMethod = Field(
        default=AggregationMethod.WEIGHTED_SUM,
        description="Aggregation method: weighted_sum, geometric_mean or maximum.",
    )

    # --- Startup presets ---
    RISK_BAND_PRESET: str = Field(
        default="formula_settings",
        description="Named risk band preset loaded at startup.",
    )
    WEIGHT_PRESET: str = Field(
        default="formula_settings",
        description="Named weight preset loaded at startup.",
    )
    WEIGHT_SUM_TOLERANCE: float = Field(
        default=1e-6,
        gt=0.0,
        description="Tolerance for weights declared as already normalized.",
    )

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum level for structlog and the hmpi stdlib loggers.",
    )

    # --- Environment ---
    ENVIRONMENT: Environment = Field(
        default=Environment.DEV,
        description="Host environment; selects console or JSON log rendering.",
    )

    @property
    def is_production(self) -> bool:
        """True when scoring runs in the production deployment."""
        return self.ENVIRONMENT == Environment.PROD


def get_settings() -> Settings:
    """Factory function for the process-wide settings."""
    return Settings()
