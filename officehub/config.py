"""Centralized configuration for the officehub backend.

Re-exports everything from officehub.infrastructure.settings, then adds typed
constants for the database, mail queue, digest job, response cache and rate
limiting.  Environment variable overrides use safe defaults so the app starts
without extra env configuration.
"""

from __future__ import annotations

import os

from officehub.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("OFFICEHUB_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("OFFICEHUB_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("OFFICEHUB_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("OFFICEHUB_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("OFFICEHUB_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("OFFICEHUB_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("OFFICEHUB_DB_RETRY_JITTER", "0.1"))

# --- SMTP ---
SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_TIMEOUT_SECONDS: float = float(os.getenv("SMTP_TIMEOUT", "30"))
SMTP_FROM_NAME: str = os.getenv("SMTP_FROM_NAME", "Modern Office System")

# --- Mail queue ---
EMAIL_MAX_ATTEMPTS: int = 3
EMAIL_RETRY_DELAY_SECONDS: float = 5.0

# --- Daily digest ---
DIGEST_HOUR: int = int(os.getenv("DIGEST_HOUR", "8"))
DIGEST_INTERVAL_SECONDS: float = 24 * 60 * 60
DIGEST_USER_PAUSE_SECONDS: float = 1.0
DIGEST_ITEM_LIMIT: int = 10

# --- Response cache ---
CACHE_DEFAULT_TTL_SECONDS: float = 5 * 60
CACHE_SWEEP_INTERVAL_SECONDS: float = 10 * 60

# --- Rate Limiting ---
RATE_LIMIT_RPM: int = 60
RATE_LIMIT_RPH: int = 1000
RATE_LIMIT_MAX_IDENTIFIERS: int = 10000
RATE_LIMIT_CLEANUP_INTERVAL_SECONDS: float = 5 * 60

# --- Auth ---
AUTH_CACHE_MAX_SIZE: int = 1000
AUTH_CACHE_TTL_SECONDS: int = 600
AUTH_TIMEOUT_SECONDS: float = 10.0
