"""
Centralized configuration with environment variable overrides.

Scheduling grid, lock window and fault-injection settings live here.
Nothing is hardcoded in scheduling or booking logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

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
class SchedulingConfig:
    """Slot grid and lock window."""

    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    lock_duration_minutes: int = _safe_int("LOCK_DURATION_MINUTES", "5")


@dataclass(frozen=True)
class FaultConfig:
    """Random store failures for demos. Disabled at 0.0."""

    failure_rate: float = _safe_float("FAULT_INJECTION_RATE", "0.0")
    seed: int = _safe_int("FAULT_INJECTION_SEED", "42")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    faults: FaultConfig = field(default_factory=FaultConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "slotbook")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.scheduling.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {config.scheduling.slot_step_minutes}"
        )
    if config.scheduling.lock_duration_minutes < 1:
        raise ValueError(
            f"LOCK_DURATION_MINUTES must be >= 1, got {config.scheduling.lock_duration_minutes}"
        )
    if not 0.0 <= config.faults.failure_rate <= 1.0:
        raise ValueError(
            f"FAULT_INJECTION_RATE must be between 0.0 and 1.0, got {config.faults.failure_rate}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
