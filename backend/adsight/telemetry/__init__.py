"""
Telemetry Module
================

Error tracking for the insights API.

Components:
- sentry.py: Error tracking (FastAPI + SQLAlchemy integrations)

Environment Variables:
- SENTRY_DSN: Sentry project DSN
- ENVIRONMENT / RELEASE_VERSION: forwarded to Sentry

Usage:
    from adsight.telemetry import init_sentry, capture_exception

Related modules:
- adsight/main.py: Initializes Sentry on startup
"""

from adsight.telemetry.sentry import (
    init_sentry,
    capture_exception,
)


__all__ = [
    "init_sentry",
    "capture_exception",
]
