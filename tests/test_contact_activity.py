from datetime import datetime, timedelta
from types import SimpleNamespace

from bunkerdesk.utils.contact_activity import (
    compute_next_call_due,
    sort_contacts,
    summarize_activity,
    within_activity_window,
)

NOW = datetime(2024, 5, 10, 12, 0)


def test_next_call_due_counts_from_last_call():
    due, days, overdue = compute_next_call_due(7, NOW - timedelta(days=2), NOW - timedelta(days=30), NOW)

    assert due == NOW + timedelta(days=5)
    assert days == 5
    assert overdue is False


def test_next_call_due_falls_back_to_creation_and_flags_overdue():
    due, days, overdue = compute_next_call_due(3, None, NOW - timedelta(days=10), NOW)

    assert due == NOW - timedelta(days=7)
    assert days == -7
    assert overdue is True


def test_next_call_due_rounds_partial_days_up():
    _, days, overdue = compute_next_call_due(1, NOW - timedelta(hours=6), None, NOW)
    assert days == 1
    assert overdue is False


def test_no_reminder_means_no_due_date():
    assert compute_next_call_due(None, NOW, NOW, NOW) == (None, None, None)


def test_summary_picks_latest_dates_and_next_pending_task():
    contact = SimpleNamespace(reminder_days=14, created_at=NOW - timedelta(days=60))
    tasks = [
        SimpleNamespace(completed=False, due_date=NOW + timedelta(days=3), title="Send quote"),
        SimpleNamespace(completed=False, due_date=NOW + timedelta(days=1), title="Confirm stem"),
        SimpleNamespace(completed=True, due_date=NOW - timedelta(days=1), title="Old"),
        SimpleNamespace(completed=False, due_date=None, title="Someday"),
    ]

    summary = summarize_activity(
        contact,
        call_dates=[NOW - timedelta(days=4), NOW - timedelta(days=1)],
        email_dates=[NOW - timedelta(days=2)],
        deal_dates=[],
        tasks=tasks,
        now=NOW,
    )

    assert summary["last_call_date"] == NOW - timedelta(days=1)
    assert summary["last_email_date"] == NOW - timedelta(days=2)
    assert summary["last_deal_date"] is None
    assert summary["total_calls"] == 2
    assert summary["pending_tasks"] == 3
    assert summary["total_tasks"] == 4
    assert summary["next_task_title"] == "Confirm stem"
    assert summary["days_until_due"] == 13


def test_activity_windows():
    today = {"last_call_date": NOW - timedelta(hours=3)}
    last_week = {"last_email_date": NOW - timedelta(days=6)}
    never = {}

    assert within_activity_window(today, "today", NOW)
    assert not within_activity_window(last_week, "today", NOW)
    assert within_activity_window(last_week, "week", NOW)
    assert not within_activity_window(last_week, "3days", NOW)
    assert not within_activity_window(never, "year", NOW)
    assert within_activity_window(never, "all", NOW)


def test_sorting_is_case_insensitive_with_missing_values_first():
    rows = [
        (SimpleNamespace(name="bravo", company="Zeta"), {}),
        (SimpleNamespace(name="Alpha", company=None), {}),
        (SimpleNamespace(name="charlie", company="alpha"), {}),
    ]

    assert [r[0].name for r in sort_contacts(rows, "name")] == ["Alpha", "bravo", "charlie"]
    assert [r[0].name for r in sort_contacts(rows, "company")] == ["Alpha", "charlie", "bravo"]


def test_recent_activity_sort_puts_latest_first():
    rows = [
        (SimpleNamespace(name="old"), {"last_call_date": NOW - timedelta(days=9)}),
        (SimpleNamespace(name="never"), {}),
        (SimpleNamespace(name="fresh"), {"last_email_date": NOW - timedelta(hours=1)}),
    ]
    assert [r[0].name for r in sort_contacts(rows, "recent-activity")] == ["fresh", "old", "never"]
