"""
Activity summaries and list filtering for contacts.

These helpers work on already-loaded rows so the contact list can be
filtered and sorted after the SQL query has narrowed it down.
"""
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from bunkerdesk.constants import ACTIVITY_WINDOW_DAYS

SECONDS_PER_DAY = 86400


def compute_next_call_due(reminder_days: Optional[int], last_call_date: Optional[datetime],
                          created_at: Optional[datetime], now: datetime):
    """Return (next_call_due, days_until_due, is_overdue); all None without reminder_days."""
    if not reminder_days:
        return None, None, None

    base = last_call_date or created_at
    if base is None:
        return None, None, None

    due = base + timedelta(days=reminder_days)
    days_until_due = math.ceil((due - now).total_seconds() / SECONDS_PER_DAY)
    return due, days_until_due, days_until_due < 0


def _latest(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def summarize_activity(contact, call_dates, email_dates, deal_dates, tasks, now: datetime) -> dict:
    """
    Build the activity summary shown next to each contact.

    tasks is a list of objects with completed, due_date and title.
    """
    last_call_date = _latest(call_dates)
    last_email_date = _latest(email_dates)
    last_deal_date = _latest(deal_dates)

    pending = [t for t in tasks if not t.completed]
    dated_pending = sorted((t for t in pending if t.due_date), key=lambda t: t.due_date)
    next_task = dated_pending[0] if dated_pending else None

    next_call_due, days_until_due, is_overdue = compute_next_call_due(
        contact.reminder_days, last_call_date, contact.created_at, now
    )

    return {
        "last_call_date": last_call_date,
        "last_email_date": last_email_date,
        "last_deal_date": last_deal_date,
        "total_calls": len(call_dates),
        "total_emails": len(email_dates),
        "total_deals": len(deal_dates),
        "total_tasks": len(tasks),
        "pending_tasks": len(pending),
        "next_task_due": next_task.due_date if next_task else None,
        "next_task_title": next_task.title if next_task else None,
        "next_call_due": next_call_due,
        "days_until_due": days_until_due,
        "is_overdue": is_overdue,
    }


def last_activity(summary: dict) -> Optional[datetime]:
    return _latest([summary.get("last_call_date"), summary.get("last_email_date")])


def within_activity_window(summary: dict, window: str, now: datetime) -> bool:
    """True when the latest call or email falls inside the named window."""
    if window not in ACTIVITY_WINDOW_DAYS:
        return True

    latest = last_activity(summary)
    if latest is None:
        return False

    diff_days = math.floor((now - latest).total_seconds() / SECONDS_PER_DAY)
    limit = ACTIVITY_WINDOW_DAYS[window]
    if limit == 0:
        return diff_days == 0
    return diff_days <= limit


def sort_contacts(rows: list, sort_by: str) -> list:
    """
    Sort (contact, summary) pairs.

    Text sorts are case-insensitive with missing values first;
    recent-activity puts the most recently touched contacts first.
    """
    if sort_by == "recent-activity":
        return sorted(
            rows,
            key=lambda row: last_activity(row[1]) or datetime.min,
            reverse=True,
        )

    field = sort_by if sort_by in ("name", "company", "country", "timezone") else "name"
    return sorted(rows, key=lambda row: (getattr(row[0], field) or "").lower())
