import calendar
from datetime import date, datetime
from typing import Iterable, Optional


def build_daily_activity(calls: Iterable[Optional[datetime]], emails: Iterable[Optional[datetime]],
                         deals: Iterable[Optional[datetime]], year: int, month: int) -> dict:
    """
    Bucket call, email and deal timestamps into the days of one month.

    Timestamps are naive UTC. Anything outside the month is ignored, so
    the bucket counts always add up to the in-month events.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    buckets = [
        {"date": date(year, month, day).isoformat(), "calls": 0, "emails": 0, "deals": 0}
        for day in range(1, days_in_month + 1)
    ]

    def tally(stamps, field):
        for stamp in stamps:
            if stamp is None or stamp.year != year or stamp.month != month:
                continue
            buckets[stamp.day - 1][field] += 1

    tally(calls, "calls")
    tally(emails, "emails")
    tally(deals, "deals")

    max_value = max([1] + [max(b["calls"], b["emails"], b["deals"]) for b in buckets])

    return {
        "year": year,
        "month": month,
        "days": buckets,
        "total_calls": sum(b["calls"] for b in buckets),
        "total_emails": sum(b["emails"] for b in buckets),
        "total_deals": sum(b["deals"] for b in buckets),
        "max_value": max_value,
    }
