import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _parse_positive_int(env_var: str, default: int) -> int:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid integer (got %r); defaulting to %d",
            env_var,
            raw_value,
            default,
        )
        return default
    if value <= 0:
        logger.warning("%s must be positive; defaulting to %d", env_var, default)
        return default
    return value


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MIN_PLAYERS = _parse_positive_int("MIN_PLAYERS", 2)
MAX_PLAYERS = _parse_positive_int("MAX_PLAYERS", 5)
if MIN_PLAYERS > MAX_PLAYERS:
    raise ValueError("MIN_PLAYERS cannot be greater than MAX_PLAYERS")

SCOREBOARD_CACHE_TTL = float(_parse_positive_int("SCOREBOARD_CACHE_TTL", 30))


def rate_limits_disabled() -> bool:
    return (os.getenv("DISABLE_RATE_LIMITS") or "").lower() == "true"


def submit_rate_limit() -> str:
    if rate_limits_disabled():
        return "1000/second"
    return (os.getenv("SUBMIT_RATE_LIMIT") or "").strip() or "60/minute"
