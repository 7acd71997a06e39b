"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "padel_booking.db"))

# Seed the demo courts and gym machines into an empty database.
SEED_RESOURCES: bool = os.getenv("SEED_RESOURCES", "true").lower() == "true"

# ── Business ──────────────────────────────────────────────────────────────

# All slot computation is anchored to the club's wall clock, not the caller's.
BUSINESS_TIMEZONE_NAME: str = os.getenv("BUSINESS_TIMEZONE", "Africa/Abidjan")
BUSINESS_TIMEZONE: ZoneInfo = ZoneInfo(BUSINESS_TIMEZONE_NAME)

# F CFA has no subdivision; prices are whole units.
CURRENCY: str = os.getenv("CURRENCY", "XOF")

# Tiered discount on long bookings (5% from 2h, 10% from 3h).
LONG_BOOKING_DISCOUNT: bool = os.getenv("LONG_BOOKING_DISCOUNT", "false").lower() == "true"

# ── JWT ───────────────────────────────────────────────────────────────────
# Tokens are issued by the identity provider; we only verify them.

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE: str | None = os.getenv("JWT_AUDIENCE") or None
ADMIN_ROLE: str = os.getenv("ADMIN_ROLE", "admin")
