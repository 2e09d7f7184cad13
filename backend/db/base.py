"""Declarative base and shared column helpers."""

import secrets
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_object_id() -> str:
    """Generate a 24-hex-character identifier."""
    return secrets.token_hex(12)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the DB stores UTC without tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
