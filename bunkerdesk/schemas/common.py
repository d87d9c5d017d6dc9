from datetime import datetime, timezone


def naive_utc(value):
    """Store datetimes as naive UTC; aware inputs are converted first."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize_phone(value):
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    raise TypeError("phone values must be strings")


def blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value
