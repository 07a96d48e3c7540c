"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

OFFICEHUB_ROOT = Path(__file__).parent.parent

# Environment
ENV = os.getenv("OFFICEHUB_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("OFFICEHUB_LOG_LEVEL", "INFO")

# Set only when a reverse proxy that overwrites X-Forwarded-For sits in front of the API
TRUST_PROXY_HEADERS = os.getenv("TRUST_PROXY_HEADERS", "false").lower() == "true"

# Hosted backend (Postgres + auth). Only the auth endpoint is called directly.
BAAS_URL = os.getenv("BAAS_URL", "")
BAAS_ANON_KEY = os.getenv("BAAS_ANON_KEY", "")

# Frontend links embedded in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

# Feature Flags
DIGEST_ENABLED = os.getenv("DIGEST_ENABLED", "true").lower() == "true"


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"
