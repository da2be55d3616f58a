"""Shared helpers for fulfillment table models."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored by the database layer."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
