"""
Timezone tables and helpers for the world clock and call scheduling.
"""
from datetime import datetime, timedelta

from dateutil import tz

# Business hours used when planning calls: fixed UTC offset in minutes,
# local end-of-business hour and a short label.
BUSINESS_TIMEZONES = {
    "Asia/Singapore": {"offset_minutes": 480, "end_of_business": 18, "label": "Singapore"},
    "Asia/Dubai": {"offset_minutes": 240, "end_of_business": 18, "label": "Dubai"},
    "Asia/Hong_Kong": {"offset_minutes": 480, "end_of_business": 18, "label": "Hong Kong"},
    "Asia/Tokyo": {"offset_minutes": 540, "end_of_business": 18, "label": "Tokyo"},
    "Asia/Shanghai": {"offset_minutes": 480, "end_of_business": 18, "label": "Shanghai"},
    "Asia/Kolkata": {"offset_minutes": 330, "end_of_business": 18, "label": "India"},
    "Europe/London": {"offset_minutes": 0, "end_of_business": 17, "label": "UK"},
    "Europe/Paris": {"offset_minutes": 60, "end_of_business": 18, "label": "France"},
    "Europe/Berlin": {"offset_minutes": 60, "end_of_business": 18, "label": "Germany"},
    "Europe/Amsterdam": {"offset_minutes": 60, "end_of_business": 18, "label": "Netherlands"},
    "Europe/Athens": {"offset_minutes": 120, "end_of_business": 18, "label": "Greece"},
    "America/New_York": {"offset_minutes": -300, "end_of_business": 17, "label": "US East"},
    "America/Chicago": {"offset_minutes": -360, "end_of_business": 17, "label": "US Central"},
    "America/Los_Angeles": {"offset_minutes": -480, "end_of_business": 17, "label": "US West"},
    "America/Toronto": {"offset_minutes": -300, "end_of_business": 17, "label": "Canada"},
}

DEFAULT_END_OF_BUSINESS = 17

# World clock
MAJOR_TIMEZONES = [
    ("Pacific/Honolulu", "Honolulu"),
    ("America/Anchorage", "Anchorage"),
    ("America/Los_Angeles", "Los Angeles"),
    ("America/Denver", "Denver"),
    ("America/Chicago", "Chicago"),
    ("America/New_York", "New York"),
    ("America/Caracas", "Caracas"),
    ("America/St_Johns", "St. Johns"),
    ("America/Sao_Paulo", "São Paulo"),
    ("Atlantic/Azores", "Azores"),
    ("Europe/London", "London"),
    ("Europe/Paris", "Paris"),
    ("Europe/Athens", "Athens"),
    ("Europe/Moscow", "Moscow"),
    ("Asia/Dubai", "Dubai"),
    ("Asia/Karachi", "Karachi"),
    ("Asia/Dhaka", "Dhaka"),
    ("Asia/Bangkok", "Bangkok"),
    ("Asia/Shanghai", "Shanghai"),
    ("Asia/Tokyo", "Tokyo"),
    ("Australia/Sydney", "Sydney"),
    ("Pacific/Auckland", "Auckland"),
]

REFERENCE_TIMEZONE = "Europe/London"


def timezone_label(name) -> str:
    if not name:
        return "Unknown"
    data = BUSINESS_TIMEZONES.get(name)
    return data["label"] if data else name


def _utc_offset_minutes(name: str, at: datetime):
    """Offset of a named zone at a naive UTC instant, or None if unknown."""
    zone = tz.gettz(name)
    if zone is None:
        return None
    local = at.replace(tzinfo=tz.UTC).astimezone(zone)
    return int(local.utcoffset().total_seconds() // 60)


def end_of_business_utc(name: str, now: datetime) -> datetime:
    """
    Close of business for a zone on now's date, as a naive UTC datetime.

    Known business zones use their fixed offset; other zones fall back to
    the tz database, then to 17:00 UTC.
    """
    day_start = datetime(now.year, now.month, now.day)
    data = BUSINESS_TIMEZONES.get(name)
    if data:
        local_close = day_start + timedelta(hours=data["end_of_business"])
        return local_close - timedelta(minutes=data["offset_minutes"])

    offset = _utc_offset_minutes(name, now) if name else None
    local_close = day_start + timedelta(hours=DEFAULT_END_OF_BUSINESS)
    if offset is None:
        return local_close
    return local_close - timedelta(minutes=offset)


def _format_offset(minutes: int) -> str:
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"UTC{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def world_clock(now: datetime):
    """Local time, date, offset and DST flag for each major timezone."""
    reference_offset = _utc_offset_minutes(REFERENCE_TIMEZONE, now)
    aware_now = now.replace(tzinfo=tz.UTC)

    rows = []
    for name, city in MAJOR_TIMEZONES:
        zone = tz.gettz(name)
        if zone is None:
            continue
        local = aware_now.astimezone(zone)
        offset = int(local.utcoffset().total_seconds() // 60)
        dst = local.dst()
        rows.append({
            "name": name,
            "city": city,
            "time": local.strftime("%H:%M"),
            "date": local.strftime("%a, %d %b"),
            "offset": _format_offset(offset),
            "is_dst": bool(dst and dst.total_seconds()),
            "is_london": name == REFERENCE_TIMEZONE,
            "hours_from_london": (offset - reference_offset) / 60,
        })
    return rows
