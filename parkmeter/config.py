# config.py

import os
from decimal import Decimal
from urllib.parse import quote_plus

from dotenv import load_dotenv

# ─── Load env vars ───────────────────────────────────────────────────────────────
load_dotenv()  # DATABASE_URL, or DB_HOST / DB_PORT / DB_USER / DB_PASSWORD / DB_NAME


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    host = os.getenv("DB_HOST")
    if not host:
        return "sqlite:///./parkmeter.db"

    user     = os.getenv("DB_USER", "parkmeter")
    password = quote_plus(os.getenv("DB_PASSWORD", ""))
    port     = os.getenv("DB_PORT", "3306")
    name     = os.getenv("DB_NAME", "parkmeter")
    return f"mysql+mysqlconnector://{user}:{password}@{host}:{port}/{name}"


def _baseline_rate():
    raw = os.getenv("BASELINE_HOURLY_RATE", "50")
    if raw.strip() == "":
        return None  # no baseline: hourly fallback without a 1h tier fails closed
    return Decimal(raw)


DATABASE_URL = _database_url()
SQL_ECHO     = os.getenv("SQL_ECHO", "false").lower() == "true"
LOG_LEVEL    = os.getenv("LOG_LEVEL", "INFO").upper()

DEFAULT_GRACE_MINUTES = int(os.getenv("DEFAULT_GRACE_MINUTES", "15"))
BASELINE_HOURLY_RATE  = _baseline_rate()

# thresholds in hours -> flat amount, per category value
DEFAULT_TARIFF_TABLE = {
    "two-wheeler":      [{"threshold_hours": 1, "amount": "20"},  {"threshold_hours": 12, "amount": "150"},  {"threshold_hours": 24, "amount": "250"}],
    "four-wheeler":     [{"threshold_hours": 1, "amount": "50"},  {"threshold_hours": 12, "amount": "500"},  {"threshold_hours": 24, "amount": "900"}],
    "heavy-vehicle":    [{"threshold_hours": 1, "amount": "100"}, {"threshold_hours": 12, "amount": "1000"}, {"threshold_hours": 24, "amount": "1800"}],
    "public-transport": [{"threshold_hours": 1, "amount": "80"},  {"threshold_hours": 12, "amount": "800"},  {"threshold_hours": 24, "amount": "1500"}],
}

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
