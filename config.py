"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "bill_tracker")
DB_USER: str = os.getenv("DB_USER", "billtracker_user")
DB_PASS: str = os.getenv("DB_PASS", "")

# A full DATABASE_URL wins over the individual parts.
# Use "sqlite:///path/to/file.db" (or "sqlite:///:memory:") for local runs.
DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

# ── HTTP API ──────────────────────────────────────────────
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "3000"))

# ── Security ──────────────────────────────────────────────
_raw_ids = os.getenv("ALLOWED_OWNER_IDS", "")
ALLOWED_OWNER_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_REQUESTS: int = int(os.getenv("RATE_LIMIT_REQUESTS", "120"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Cache ─────────────────────────────────────────────────
CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "900"))

# ── Recurring generation ──────────────────────────────────
GENERATION_HORIZON_MONTHS: int = int(os.getenv("GENERATION_HORIZON_MONTHS", "12"))
GENERATION_MAX_RETRIES: int = int(os.getenv("GENERATION_MAX_RETRIES", "3"))

# ── Notifications ─────────────────────────────────────────
PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))
DISPATCH_DEADLINE_SECONDS: float = float(os.getenv("DISPATCH_DEADLINE_SECONDS", "30"))
DEFAULT_DAYS_BEFORE: int = int(os.getenv("DEFAULT_DAYS_BEFORE", "3"))

# ── Scheduler ─────────────────────────────────────────────
SCHEDULER_ENABLED: bool = _as_bool(os.getenv("SCHEDULER_ENABLED", "true"))
SCHEDULER_MAX_WORKERS: int = int(os.getenv("SCHEDULER_MAX_WORKERS", "4"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE: str = os.getenv("LOG_FILE", "")

# ── Currency ──────────────────────────────────────────────
DEFAULT_CURRENCY: str = "USD"
