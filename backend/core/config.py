import os
import logging

_logger = logging.getLogger(__name__)


def _int_env(name: str, default: int, minimum: int = 0, maximum: int = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        _logger.warning(f"Invalid {name}={raw!r}, defaulting to {default}")
        return default
    if value < minimum or (maximum is not None and value > maximum):
        _logger.warning(f"Out of range {name}={value}, defaulting to {default}")
        return default
    return value


STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
SETTLEMENT_CURRENCY = os.getenv("SETTLEMENT_CURRENCY", "usd").lower()
CHURN_WINDOW_DAYS = _int_env("CHURN_WINDOW_DAYS", 30, minimum=1)
STRIPE_PAGE_SIZE = _int_env("STRIPE_PAGE_SIZE", 100, minimum=1, maximum=100)
STRIPE_MAX_RETRIES = _int_env("STRIPE_MAX_RETRIES", 0)
METRICS_CONCURRENCY = _int_env("METRICS_CONCURRENCY", 4, minimum=1)
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()
