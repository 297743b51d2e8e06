"""
Broker Intelligence Configuration Settings

This module contains all configuration settings for the broker intelligence core.
Settings can be overridden by environment variables.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Supabase Configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
LOADS_TABLE = os.getenv("LOADS_TABLE", "loads")
BROKER_STATS_TABLE = os.getenv("BROKER_STATS_TABLE", "broker_stats")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Extraction Rules
MAX_PLAUSIBLE_RATE_PER_MILE = _env_float("MAX_PLAUSIBLE_RATE_PER_MILE", 15.0)
MIN_LOAD_CONFIDENCE = _env_int("MIN_LOAD_CONFIDENCE", 25)
WEIGHT_MODE = os.getenv("WEIGHT_MODE", "lenient").lower()
ESTIMATE_MISSING_MILES = _env_bool("ESTIMATE_MISSING_MILES", False)

# Intake / Aggregation
INTAKE_MAX_WORKERS = _env_int("INTAKE_MAX_WORKERS", 8)
BROKER_STATS_LOCK_TIMEOUT = _env_float("BROKER_STATS_LOCK_TIMEOUT", 30.0)


def configure_logging(level: str = None) -> None:
    """Configure root logging for scripts and batch jobs."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
