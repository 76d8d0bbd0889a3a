"""Small validation helpers shared by the schema modules."""

from datetime import datetime, timezone


def required_text(value: str | None, message: str) -> str:
    """Strip and reject blank strings with a user-facing message."""
    value = (value or "").strip()
    if not value:
        raise ValueError(message)
    return value


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
