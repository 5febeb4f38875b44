"""
Runtime configuration for the coordinator services and the sync client.

Everything is read from the environment once at import time. A local .env
file is honoured for development.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> frozenset[str]:
    return frozenset(part.strip() for part in os.getenv(name, default).split(",") if part.strip())


SQL_ECHO = _flag("SQL_ECHO", "false")

# Observability
TRACING_ENABLED = _flag("TRACING_ENABLED", "true")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Per-order write serialisation
ORDER_LOCK_TIMEOUT_SECONDS = float(os.getenv("ORDER_LOCK_TIMEOUT_SECONDS", "5"))

# Notification Generator retries (delay doubles on every attempt)
NOTIFICATION_RETRY_ATTEMPTS = int(os.getenv("NOTIFICATION_RETRY_ATTEMPTS", "3"))
NOTIFICATION_RETRY_DELAY_SECONDS = float(os.getenv("NOTIFICATION_RETRY_DELAY_SECONDS", "1.0"))

# Payment handshake policy: which actor roles may confirm a payment
PAYMENT_CONFIRMATION_ROLES = _csv("PAYMENT_CONFIRMATION_ROLES", "fulfiller")

# Message API rate limiting
RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", "true")
MESSAGE_RATE_LIMIT = os.getenv("MESSAGE_RATE_LIMIT", "60/minute")

# Sync client
MARKETPLACE_API_URL = os.getenv("MARKETPLACE_API_URL", "http://localhost:8000")
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "5"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
