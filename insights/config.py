"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Rule thresholds live here, not scattered through the rules
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

TrendStrategy = Literal["midpoint", "weekly"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EngineConfig(BaseModel):
    """Thresholds and windows for the pattern rules."""

    recent_window_days: int = Field(default=30, gt=0, description="Window for most rules")
    trend_window_days: int = Field(default=42, gt=0, description="Window for intensity trend")
    trend_split_days: int = Field(
        default=21, gt=0, description="Age splitting the trend window into older/newer halves"
    )
    week_days: int = Field(default=7, gt=0, description="Length of one week for frequency change")

    trigger_share: float = Field(
        default=0.25, gt=0.0, le=1.0, description="Share of episodes a trigger must reach"
    )
    cluster_share: float = Field(
        default=0.4, gt=0.0, le=1.0, description="Share needed for time/day clusters"
    )
    cluster_span_minutes: int = Field(default=240, gt=0, lt=1440)

    trend_strategy: TrendStrategy = Field(
        default="midpoint", description="How the rising intensity rule buckets episodes"
    )
    rising_ratio: float = Field(default=1.2, gt=1.0)
    weekly_min_episodes: int = Field(default=3, gt=0)
    weekly_min_buckets: int = Field(default=6, ge=2)

    medication_day_threshold: int = Field(default=10, gt=0)

    peak_min_mean: float = Field(default=6.0, ge=0.0, le=10.0)
    peak_min_samples: int = Field(default=3, gt=0)
    streak_min_days: int = Field(default=3, gt=1)

    include_extended_rules: bool = Field(
        default=True, description="Run peak hour, toughest day, streak and weekly change rules"
    )

    @model_validator(mode="after")
    def split_inside_window(self) -> "EngineConfig":
        if self.trend_split_days >= self.trend_window_days:
            raise ValueError("trend_split_days must be smaller than trend_window_days")
        if self.weekly_min_buckets % 2:
            raise ValueError("weekly_min_buckets must be even")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
    v = val.strip().lower()
    if v in {"dev", "development"}:
        return "development"
    if v in {"stage", "staging"}:
        return "staging"
    return "production"


def _level_to_literal(val: str) -> LogLevel:
    v = val.strip().upper()
    return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")


def _parse_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _trend_to_literal(val: str) -> TrendStrategy:
    return "weekly" if val.strip().lower() == "weekly" else "midpoint"


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    engine_config = EngineConfig(
        trend_strategy=_trend_to_literal(os.getenv("TREND_STRATEGY", "midpoint")),
        include_extended_rules=_parse_bool(os.getenv("INCLUDE_EXTENDED_RULES"), True),
        medication_day_threshold=int(os.getenv("MEDICATION_DAY_THRESHOLD", "10")),
    )

    # Console output while developing, JSON lines everywhere else
    log_format = os.getenv("LOG_FORMAT", "console" if debug else "json").strip().lower()
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="json" if log_format == "json" else "console",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        engine=engine_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Forget the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()
    engine = config.engine

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level} ({config.logging.format})")

    print("\nPATTERN ENGINE")
    print(f"Recent Window: {engine.recent_window_days} days")
    print(f"Trend: {engine.trend_strategy} over {engine.trend_window_days} days")
    print(f"Trigger Share: {engine.trigger_share:.0%}")
    print(f"Cluster Share: {engine.cluster_share:.0%} within {engine.cluster_span_minutes}m")
    print(f"Medication Days: {engine.medication_day_threshold}")
    print(f"Extended Rules: {engine.include_extended_rules}")


if __name__ == "__main__":
    print_config_summary()
