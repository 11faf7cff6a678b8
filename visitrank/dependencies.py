"""
dependencies.py — Shared FastAPI Dependencies

Business Rules:
- The reference day for recency is explicit: a request body `as_of` wins,
  then the `as_of` query parameter, then today's date (UTC)
- Settings come from the cached get_settings() so tests can override them

Called by: routers/rankings.py
Depends on: config.py
"""

from datetime import date, datetime, timezone

from fastapi import Query

from .config import Settings, get_settings


def get_reference_date(as_of: date | None = Query(None, description="Reference day, YYYY-MM-DD")) -> date:
    """Dependency: the day recency is measured against."""
    return as_of or datetime.now(timezone.utc).date()


def get_app_settings() -> Settings:
    return get_settings()
