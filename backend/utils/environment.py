"""
Environment Configuration Utility

Provides environment detection and the tunables of the options screener.

ENVIRONMENT values (reported by /api/health and the screener config):
- production
- development (default)
- test

All values are read once at import time. Components accept the same values
as arguments so callers (and tests) can override them per run.
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

# Valid environment values
VALID_ENVIRONMENTS = {"production", "development", "test"}

# Get current environment (default to development for safety)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()

# Validate environment value
if ENVIRONMENT not in VALID_ENVIRONMENTS:
    logging.warning(f"Invalid ENVIRONMENT '{ENVIRONMENT}', defaulting to 'development'")
    ENVIRONMENT = "development"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logging.warning(f"Invalid integer for {name}='{raw}', using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning(f"Invalid number for {name}='{raw}', using {default}")
        return default


# ==================== UPSTREAM (TRADIER) ====================

TRADIER_BASE_URL = os.environ.get("TRADIER_BASE_URL", "https://api.tradier.com/v1").rstrip("/")
TRADIER_MAX_RETRIES = _env_int("TRADIER_MAX_RETRIES", 3)
TRADIER_RETRY_BACKOFF_SECONDS = _env_float("TRADIER_RETRY_BACKOFF_SECONDS", 1.0)
TRADIER_QUOTA_BACKOFF_SECONDS = _env_float("TRADIER_QUOTA_BACKOFF_SECONDS", 2.0)
TRADIER_TIMEOUT_SECONDS = _env_float("TRADIER_TIMEOUT_SECONDS", 30.0)

# ==================== SCREENER ====================

SCREENER_BATCH_SIZE = _env_int("SCREENER_BATCH_SIZE", 6)
SCREENER_BATCH_DELAY_SECONDS = _env_float("SCREENER_BATCH_DELAY_SECONDS", 0.2)
SCREENER_MAX_EXPIRATIONS = _env_int("SCREENER_MAX_EXPIRATIONS", 6)
SCREENER_MAX_OPTIONS_PER_SIDE = _env_int("SCREENER_MAX_OPTIONS_PER_SIDE", 10)
SCREENER_MIN_MATCHES = _env_int("SCREENER_MIN_MATCHES", 2)
SCREENER_TOP_PERFORMERS = _env_int("SCREENER_TOP_PERFORMERS", 10)
SCREENER_NEAR_TERM_DAYS = _env_int("SCREENER_NEAR_TERM_DAYS", 30)


def get_tradier_api_key() -> str:
    """Read the upstream credential at call time so tests can patch the environment."""
    return os.environ.get("TRADIER_API_KEY", "").strip()


def get_screener_config() -> Dict[str, Any]:
    """Get the current screener configuration (no secrets)."""
    return {
        "environment": ENVIRONMENT,
        "tradier_base_url": TRADIER_BASE_URL,
        "tradier_api_key_configured": bool(get_tradier_api_key()),
        "tradier_max_retries": TRADIER_MAX_RETRIES,
        "tradier_retry_backoff_seconds": TRADIER_RETRY_BACKOFF_SECONDS,
        "tradier_quota_backoff_seconds": TRADIER_QUOTA_BACKOFF_SECONDS,
        "tradier_timeout_seconds": TRADIER_TIMEOUT_SECONDS,
        "batch_size": SCREENER_BATCH_SIZE,
        "batch_delay_seconds": SCREENER_BATCH_DELAY_SECONDS,
        "max_expirations": SCREENER_MAX_EXPIRATIONS,
        "max_options_per_side": SCREENER_MAX_OPTIONS_PER_SIDE,
        "min_matches": SCREENER_MIN_MATCHES,
        "top_performers": SCREENER_TOP_PERFORMERS,
        "near_term_days": SCREENER_NEAR_TERM_DAYS,
    }


# Log environment on module load
logging.info(f"Environment: {ENVIRONMENT} | Tradier base: {TRADIER_BASE_URL}")
