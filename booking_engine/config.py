"""
Centralized configuration with environment variable overrides.

Hold lifetimes, grid steps, and the shop-local timezone are configurable
here. Nothing time-related is hardcoded in the scheduling components.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from booking_engine.logging_context import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class HoldConfig:
    """Checkout hold lifetime and cleanup settings."""

    ttl_minutes: int = _safe_int("HOLD_TTL_MINUTES", "10")
    sweep_interval_seconds: float = _safe_float("HOLD_SWEEP_INTERVAL", "60")


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot grid and shop-local time settings."""

    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    calendar_step_minutes: int = _safe_int("CALENDAR_STEP_MINUTES", "15")
    default_service_duration: int = _safe_int("DEFAULT_SERVICE_DURATION", "30")
    shop_timezone: str = os.getenv("SHOP_TIMEZONE", "Australia/Melbourne")
    booking_number_prefix: str = os.getenv("BOOKING_NUMBER_PREFIX", "BK")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    holds: HoldConfig = field(default_factory=HoldConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "salon-booking-engine")


def _validate_step(name: str, value: int) -> None:
    # The grid has to tile an hour so every window start lines up the same way.
    if value < 1 or (60 % value != 0 and value % 60 != 0):
        raise ValueError(f"{name} must divide 60 or be a multiple of it, got {value}")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.holds.ttl_minutes < 1:
        raise ValueError(
            f"HOLD_TTL_MINUTES must be >= 1, got {config.holds.ttl_minutes}"
        )
    if config.holds.sweep_interval_seconds <= 0:
        raise ValueError(
            "HOLD_SWEEP_INTERVAL must be > 0, "
            f"got {config.holds.sweep_interval_seconds}"
        )

    _validate_step("SLOT_STEP_MINUTES", config.scheduling.slot_step_minutes)
    _validate_step("CALENDAR_STEP_MINUTES", config.scheduling.calendar_step_minutes)

    if config.scheduling.default_service_duration < 1:
        raise ValueError(
            "DEFAULT_SERVICE_DURATION must be >= 1, "
            f"got {config.scheduling.default_service_duration}"
        )
    if not config.scheduling.booking_number_prefix.strip():
        raise ValueError("BOOKING_NUMBER_PREFIX must not be empty")

    try:
        ZoneInfo(config.scheduling.shop_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"SHOP_TIMEZONE is not a known IANA zone: {config.scheduling.shop_timezone!r}"
        ) from None


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(getattr(logging, config.log_level.upper(), logging.INFO))
    logger.info(
        "Configuration loaded for '%s' (tz=%s, hold ttl=%dm)",
        config.app_name,
        config.scheduling.shop_timezone,
        config.holds.ttl_minutes,
    )
    return config


# Singleton instance
settings = load_config()
